"""Turns interaction events into hierarchical category preferences."""

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from ..clock import days_between, utcnow
from ..config import EngineConfig
from ..models import InteractionEvent, InteractionType, RecomputeResult, UserCategoryPreference
from ..taxonomy import CategoryTree

logger = logging.getLogger(__name__)


class _CategoryStats:
    """Running per-category totals for one aggregation."""

    __slots__ = ("score", "clicks", "impressions", "interactions")

    def __init__(self) -> None:
        self.score = 0.0
        self.clicks = 0
        self.impressions = 0
        self.interactions = 0

    @property
    def ctr(self) -> float:
        if self.impressions == 0:
            return 0.0
        return self.clicks / self.impressions


class PreferenceAggregator:
    """Computes decayed, normalized and propagated category scores.

    The computation runs in four passes:

    1. every event contributes ``weight(type) * exp(-rate(level) * days_ago)``
       to its category;
    2. category sums are divided by the grand total so direct scores sum to 1;
    3. categories shown often but rarely clicked are penalized, and the direct
       scores are renormalized;
    4. parents without direct interactions get a damped score derived from
       their children, one level at a time from the leaves up.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        config = config or EngineConfig()
        self.weights = config.interaction_weights
        self.decay = config.decay
        self.negative = config.negative_feedback
        self.propagation = config.propagation

    def decay_rate(self, level: Optional[int]) -> float:
        """Daily decay rate for a category level."""
        if level is None:
            return self.decay.default_rate
        return self.decay.rate_by_level.get(level, self.decay.default_rate)

    def decay_weight(self, weight: float, days_ago: float, level: Optional[int]) -> float:
        """Exponentially decayed contribution of one interaction."""
        return weight * math.exp(-self.decay_rate(level) * days_ago)

    def penalty_for_ctr(self, ctr: float) -> float:
        """
        Penalty for a category below the CTR threshold.

        Zero CTR receives max_penalty, a CTR just under the threshold
        receives base_penalty, linear in between.
        """
        threshold = self.negative.ctr_threshold
        ctr = min(max(ctr, 0.0), threshold)
        severity = 1 - (ctr / threshold)
        return self.negative.base_penalty + severity * (
            self.negative.max_penalty - self.negative.base_penalty
        )

    def _collect(
        self,
        events: Iterable[InteractionEvent],
        tree: CategoryTree,
        now: datetime,
        excluded: Set[int],
    ) -> Dict[int, _CategoryStats]:
        stats: Dict[int, _CategoryStats] = {}
        for event in events:
            category_id = event.category_id
            if category_id is None:
                continue
            if not tree.is_valid(category_id):
                excluded.add(category_id)
                continue
            if category_id in excluded:
                continue

            weight = self.weights.weight_for(event.interaction_type.value)
            days_ago = days_between(event.occurred_at, now)
            contribution = self.decay_weight(weight, days_ago, tree.level(category_id))
            if not math.isfinite(contribution) or contribution < 0:
                logger.warning(
                    f"Invalid contribution {contribution} for category {category_id} "
                    f"(event on article {event.article_id}), excluding category"
                )
                excluded.add(category_id)
                stats.pop(category_id, None)
                continue

            entry = stats.setdefault(category_id, _CategoryStats())
            entry.score += contribution
            entry.interactions += 1
            if event.interaction_type == InteractionType.CLICK:
                entry.clicks += 1
            elif event.interaction_type == InteractionType.IMPRESSION:
                entry.impressions += 1
        return stats

    def _apply_negative_feedback(self, scores: Dict[int, float], stats: Dict[int, _CategoryStats]) -> List[int]:
        penalized = []
        for category_id, entry in stats.items():
            if entry.impressions < self.negative.min_impressions:
                continue
            ctr = entry.ctr
            if ctr >= self.negative.ctr_threshold:
                continue
            penalty = self.penalty_for_ctr(ctr)
            current = scores[category_id]
            scores[category_id] = max(self.negative.min_score, current - penalty)
            penalized.append(category_id)
            logger.debug(
                f"Negative feedback on category {category_id}: CTR {ctr:.1%}, "
                f"penalty {penalty:.3f}, score {current:.3f} -> {scores[category_id]:.3f}"
            )

        if penalized and self.negative.renormalize:
            total = sum(scores.values())
            for category_id in scores:
                scores[category_id] /= total
        return penalized

    def _propagate(self, scores: Dict[int, float], tree: CategoryTree) -> Dict[int, float]:
        """Derive scores for ancestors that have no direct interactions."""
        combined = dict(scores)
        propagated: Dict[int, float] = {}

        for level in (3, 2):
            children_by_parent: Dict[int, List[float]] = {}
            for category_id, score in combined.items():
                if tree.level(category_id) != level:
                    continue
                parent_id = tree.parent(category_id)
                if parent_id is None:
                    continue
                children_by_parent.setdefault(parent_id, []).append(score)

            for parent_id, child_scores in children_by_parent.items():
                if parent_id in scores:
                    continue
                average = sum(child_scores) / len(child_scores)
                parent_score = min(
                    average * self.propagation.average_factor,
                    max(child_scores) * self.propagation.max_child_factor,
                )
                if parent_score <= 0:
                    continue
                combined[parent_id] = parent_score
                propagated[parent_id] = parent_score

        return propagated

    def aggregate(
        self,
        user_id: int,
        events: Iterable[InteractionEvent],
        tree: CategoryTree,
        now: Optional[datetime] = None,
    ) -> RecomputeResult:
        """
        Compute the full preference set of a user.

        Args:
            user_id: User ID
            events: Events within the lookback window, categories resolved
            tree: Current category tree
            now: Reference time for decay, defaults to the current time

        Returns:
            Recompute result with one preference per category with a nonzero score
        """
        now = now or utcnow()
        excluded: Set[int] = set()
        stats = self._collect(events, tree, now, excluded)

        total = sum(entry.score for entry in stats.values())
        if total <= 0:
            return RecomputeResult(user_id=user_id, excluded=sorted(excluded))

        scores = {category_id: entry.score / total for category_id, entry in stats.items()}
        penalized = self._apply_negative_feedback(scores, stats)
        propagated = self._propagate(scores, tree)

        preferences = []
        for category_id, score in scores.items():
            entry = stats[category_id]
            preferences.append(
                UserCategoryPreference(
                    user_id=user_id,
                    category_id=category_id,
                    score=min(1.0, score),
                    click_count=entry.clicks,
                    impression_count=entry.impressions,
                    interaction_count=entry.interactions,
                    is_propagated=False,
                    level=tree.level(category_id),
                    last_updated=now,
                )
            )
        for category_id, score in propagated.items():
            preferences.append(
                UserCategoryPreference(
                    user_id=user_id,
                    category_id=category_id,
                    score=min(1.0, score),
                    is_propagated=True,
                    level=tree.level(category_id),
                    last_updated=now,
                )
            )
        preferences.sort(key=lambda p: p.score, reverse=True)

        return RecomputeResult(
            user_id=user_id,
            updated=len(scores),
            propagated=len(propagated),
            penalized=sorted(penalized),
            excluded=sorted(excluded),
            preferences=preferences,
        )
