"""Feed assembly: breaking slots, exploitation/exploration mix, wildcards, shuffle."""

import logging
import random
from typing import Dict, List, Optional, Sequence, Set

from ..config import EngineConfig
from ..models import ArticleCandidate, CandidateSource
from ..ranking import Diversifier

logger = logging.getLogger(__name__)

SOURCE_EXPLANATIONS = {
    CandidateSource.BREAKING: "Breaking news",
    CandidateSource.EXPLORATION_SIBLING: "Related to a category you follow",
    CandidateSource.EXPLORATION_PARENT: "More from a topic you follow",
    CandidateSource.EXPLORATION_TRENDING: "Trending in a category you have not explored",
    CandidateSource.WILDCARD: "Something different",
    CandidateSource.FALLBACK: "Latest news",
}


class FeedAssembler:
    """Builds the ordered feed from the candidate pools.

    Layout, top to bottom: up to ``breaking_slots`` breaking articles, then
    the remaining slots with exploration slots spread evenly so that
    ``exploitation_ratio`` of them are exploitation. An exploration slot
    becomes a wildcard once ``wildcard_interval`` exploitation items have
    been placed since the previous wildcard. Each slot takes the best
    candidate that keeps the diversity window, falling back to other pools
    and finally to the fallback pool. The window is relaxed only when no
    candidate fits at all.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        diversifier: Optional[Diversifier] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.diversifier = diversifier or Diversifier(
            self.config.diversity.max_same_category, self.config.diversity.window_size
        )
        self.rng = rng or random.Random()

    def slot_plan(self, slots: int) -> List[bool]:
        """Exploration flag per slot, spread evenly."""
        if slots <= 0:
            return []
        explore = slots - round(slots * self.config.feed.exploitation_ratio)
        return [((i + 1) * explore) // slots > (i * explore) // slots for i in range(slots)]

    def interleave(self, pools: Dict[CandidateSource, List[ArticleCandidate]]) -> List[ArticleCandidate]:
        """Merge exploration pools in proportion to the strategy ratios."""
        ratios = {
            CandidateSource.EXPLORATION_SIBLING: self.config.exploration.sibling_ratio,
            CandidateSource.EXPLORATION_PARENT: self.config.exploration.parent_ratio,
            CandidateSource.EXPLORATION_TRENDING: self.config.exploration.trending_ratio,
        }
        queues = {source: list(pools.get(source, [])) for source in ratios}
        credit = {source: 0.0 for source in ratios}
        merged: List[ArticleCandidate] = []
        seen: Set[int] = set()

        while True:
            active = [s for s in ratios if queues[s] and ratios[s] > 0]
            if not active:
                # Strategies with a zero ratio still drain last
                active = [s for s in ratios if queues[s]]
                if not active:
                    break
            total = sum(ratios[s] for s in active) or 1.0
            for source in active:
                credit[source] += ratios[source] or 1.0
            chosen = max(active, key=lambda s: credit[s])
            credit[chosen] -= total
            candidate = queues[chosen].pop(0)
            if candidate.article_id not in seen:
                seen.add(candidate.article_id)
                merged.append(candidate)
        return merged

    def _take(
        self,
        feed: Sequence[ArticleCandidate],
        queues: Sequence[List[ArticleCandidate]],
        used: Set[int],
        strict: bool,
    ) -> Optional[ArticleCandidate]:
        for queue in queues:
            for i, candidate in enumerate(queue):
                if candidate.article_id in used:
                    continue
                if strict and not self.diversifier.fits(feed, candidate):
                    continue
                return queue.pop(i)
        return None

    def _place(
        self,
        feed: List[ArticleCandidate],
        queues: Sequence[List[ArticleCandidate]],
        used: Set[int],
    ) -> Optional[ArticleCandidate]:
        candidate = self._take(feed, queues, used, strict=True)
        if candidate is None:
            candidate = self._take(feed, queues, used, strict=False)
            if candidate is not None:
                logger.debug(f"Diversity relaxed for article {candidate.article_id}")
        if candidate is not None:
            used.add(candidate.article_id)
            feed.append(candidate)
        return candidate

    def shuffle_window(self, feed: List[ArticleCandidate]) -> List[ArticleCandidate]:
        """Partial Fisher-Yates shuffle of the middle window, keeping diversity."""
        start = self.config.feed.shuffle_start
        end = min(self.config.feed.shuffle_end, len(feed))
        if end - start < 2:
            return feed

        must_stay_valid = self.diversifier.is_valid(feed)
        for _ in range(max(1, self.config.feed.shuffle_retries)):
            shuffled = list(feed)
            for i in range(end - 1, start, -1):
                j = self.rng.randint(start, i)
                shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
            if not must_stay_valid or self.diversifier.is_valid(shuffled):
                return shuffled

        logger.debug("Shuffle kept breaking the diversity window, keeping ranked order")
        return feed

    def annotate(self, feed: List[ArticleCandidate]) -> List[ArticleCandidate]:
        """Set positions and explanations."""
        annotated = []
        for position, candidate in enumerate(feed):
            update = {"position": position}
            if candidate.source != CandidateSource.EXPLOITATION or not candidate.explanation:
                update["explanation"] = SOURCE_EXPLANATIONS.get(candidate.source, candidate.explanation)
            annotated.append(candidate.model_copy(update=update))
        return annotated

    def assemble(
        self,
        limit: int,
        exploitation: Sequence[ArticleCandidate],
        exploration: Optional[Dict[CandidateSource, List[ArticleCandidate]]] = None,
        wildcards: Sequence[ArticleCandidate] = (),
        breaking: Sequence[ArticleCandidate] = (),
        fallback: Sequence[ArticleCandidate] = (),
        shuffle: bool = True,
    ) -> List[ArticleCandidate]:
        """
        Assemble an ordered feed.

        Args:
            limit: Number of items wanted
            exploitation: Scored, diversified exploitation candidates
            exploration: Exploration pools by strategy
            wildcards: Discovery candidates from untouched categories
            breaking: Breaking-news candidates, newest first
            fallback: Fallback chain candidates
            shuffle: Apply the bounded partial shuffle

        Returns:
            Up to limit candidates with positions set
        """
        feed: List[ArticleCandidate] = []
        used: Set[int] = set()

        breaking_queue = list(breaking)
        for _ in range(min(self.config.feed.breaking_slots, limit)):
            candidate = self._take(feed, [breaking_queue], used, strict=True)
            if candidate is None:
                break
            used.add(candidate.article_id)
            feed.append(candidate.model_copy(update={"source": CandidateSource.BREAKING}))

        exploit_queue = list(exploitation)
        explore_queue = self.interleave(exploration or {})
        wildcard_queue = list(wildcards)
        fallback_queue = list(fallback)

        since_wildcard = 0
        for is_exploration in self.slot_plan(limit - len(feed)):
            if is_exploration:
                if since_wildcard >= self.config.feed.wildcard_interval and any(
                    c.article_id not in used for c in wildcard_queue
                ):
                    queues = [wildcard_queue, explore_queue, exploit_queue, fallback_queue]
                else:
                    queues = [explore_queue, wildcard_queue, exploit_queue, fallback_queue]
            else:
                queues = [exploit_queue, explore_queue, wildcard_queue, fallback_queue]

            placed = self._place(feed, queues, used)
            if placed is None:
                break
            if placed.source == CandidateSource.EXPLOITATION:
                since_wildcard += 1
            elif placed.source == CandidateSource.WILDCARD:
                since_wildcard = 0

        if len(feed) < limit:
            logger.info(f"Feed short: {len(feed)} of {limit} items available")

        if shuffle:
            feed = self.shuffle_window(feed)
        return self.annotate(feed)
