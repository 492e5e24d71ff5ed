"""Feed engine that runs the complete personalization pipeline."""

import asyncio
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Union

from pydantic import ValidationError

from ..clock import to_utc, utcnow
from ..config import EngineConfig
from ..feed import CandidateSourcer, FeedAssembler
from ..models import (
    ArticleCandidate,
    BatchSummary,
    CandidateSource,
    FeedResult,
    InteractionEvent,
    InteractionType,
    RecomputeResult,
    UserCategoryPreference,
    UserProfile,
)
from ..prediction import ClickPredictor, ProfileBuilder, TitleAnalyzer
from ..preferences import PreferenceAggregator, RecomputeScheduler
from ..ranking import CandidateScorer
from ..store import (
    ArticleStore,
    EngineStore,
    EventLedger,
    PreferenceStore,
    ProfileStore,
    TaxonomySource,
)
from ..taxonomy import CategoryTree, TaxonomyCache
from .stages import PipelineStage, reports, run_stage

logger = logging.getLogger(__name__)

FEED_STAGES = {
    "taxonomy": "Loading category tree",
    "preferences": "Loading stored preferences",
    "profile": "Loading engagement profile",
    "events": "Reading recent interactions",
    "recompute": "Recomputing stale preferences",
    "similarity": "Content-similarity candidates",
    "category": "Category-affinity candidates",
    "exploration": "Exploration candidates",
    "wildcards": "Wildcard candidates",
    "breaking": "Breaking-news candidates",
    "fallback": "Fallback candidates",
    "chronological": "Chronological candidates",
    "prediction": "Click-prediction re-rank",
}


class FeedEngine:
    """Orchestrates preference learning and feed generation for users.

    The engine owns its taxonomy cache and recompute scheduler. Call
    ``start`` before ingesting events (or use it as an async context
    manager) so that debounced recomputes can be scheduled.
    """

    def __init__(
        self,
        events: EventLedger,
        taxonomy: TaxonomySource,
        articles: ArticleStore,
        preferences: PreferenceStore,
        profiles: ProfileStore,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.config = config or EngineConfig()
        self.events = events
        self.articles = articles
        self.preferences = preferences
        self.profiles = profiles
        self.clock = clock
        rng = rng or random.Random()

        self.taxonomy = TaxonomyCache(
            taxonomy,
            ttl_seconds=self.config.taxonomy.ttl_seconds,
            min_refresh_interval=self.config.taxonomy.min_refresh_interval_seconds,
        )
        self.aggregator = PreferenceAggregator(self.config)
        self.analyzer = TitleAnalyzer(self.config.predictor)
        self.sourcer = CandidateSourcer(articles, self.config, self.analyzer, rng)
        self.assembler = FeedAssembler(self.config, rng=rng)
        self.diversifier = self.assembler.diversifier
        self.profile_builder = ProfileBuilder(articles, self.config.predictor, self.analyzer)
        self.predictor = ClickPredictor(self.config.predictor, self.analyzer, rng)
        self.scheduler = RecomputeScheduler(
            self._recompute, debounce_seconds=self.config.scheduler.debounce_seconds
        )

    @classmethod
    def from_store(cls, store: EngineStore, config: Optional[EngineConfig] = None, **kwargs) -> "FeedEngine":
        """Build an engine over a single store implementing every interface."""
        return cls(store, store, store, store, store, config=config, **kwargs)

    async def start(self) -> None:
        """Start the recompute scheduler."""
        self.scheduler.start()
        logger.info("Feed engine started")

    async def stop(self, flush: bool = False) -> None:
        """Stop the scheduler, optionally running pending recomputes first."""
        await self.scheduler.stop(flush=flush)
        logger.info("Feed engine stopped")

    async def __aenter__(self) -> "FeedEngine":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # Preferences

    async def get_preferences(self, user_id: int) -> List[UserCategoryPreference]:
        """Stored preferences of a user, highest score first."""
        return await self.preferences.get_preferences(user_id)

    async def recompute(self, user_id: int) -> RecomputeResult:
        """Recompute a user's preferences now, replacing any pending recompute."""
        return await self.scheduler.run_now(user_id)

    async def _recompute(self, user_id: int) -> RecomputeResult:
        now = self.clock()
        events = await self.events.get_events(user_id, self.config.decay.lookback_days)
        try:
            tree = await self._tree_for(events)
        except Exception as e:
            logger.warning(f"Category tree unavailable, recomputing without hierarchy: {e}")
            tree = CategoryTree([])

        result = self.aggregator.aggregate(user_id, events, tree, now)
        await self.preferences.replace_preferences(user_id, result.preferences)

        total = await self.events.count_events(user_id)
        profile = await self.profile_builder.build(user_id, events, total, now)
        await self.profiles.save_profile(profile)
        result.profile_updated = True
        result.profile = profile

        logger.info(
            f"Recomputed user {user_id}: {result.updated} categories, "
            f"{result.propagated} propagated, {len(result.penalized)} penalized"
        )
        return result

    async def _tree_for(self, events: Sequence[InteractionEvent]) -> CategoryTree:
        """Category tree covering the events, refreshed when one is unknown."""
        tree = await self.taxonomy.get_tree()
        missing = {
            e.category_id for e in events
            if e.category_id is not None and e.category_id not in tree.nodes
        }
        if not missing:
            return tree

        for category_id in sorted(missing):
            await self.taxonomy.lookup(category_id)
        return await self.taxonomy.get_tree()

    def _needs_recompute(
        self,
        user_id: int,
        preferences: Sequence[UserCategoryPreference],
        events: Sequence[InteractionEvent],
        now: datetime,
    ) -> bool:
        if self.scheduler.is_pending(user_id):
            return True
        if not preferences:
            return bool(events)
        max_age = timedelta(minutes=self.config.feed.preference_max_age_minutes)
        for preference in preferences:
            if preference.last_updated is None:
                return True
            if to_utc(now) - to_utc(preference.last_updated) > max_age:
                return True
        return False

    # Ingestion

    async def on_interaction_batch(
        self,
        user_id: int,
        events: Iterable[Union[InteractionEvent, Dict]],
    ) -> BatchSummary:
        """
        Record a batch of interactions and schedule a debounced recompute.

        Events for other users and malformed events are dropped.
        """
        accepted: List[InteractionEvent] = []
        dropped = 0
        for raw in events:
            try:
                event = raw if isinstance(raw, InteractionEvent) else InteractionEvent.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Dropping malformed event for user {user_id}: {e}")
                dropped += 1
                continue
            if event.user_id != user_id:
                logger.warning(f"Dropping event of user {event.user_id} from batch of user {user_id}")
                dropped += 1
                continue
            accepted.append(event)

        if accepted:
            await self.events.append_events(accepted)
        scheduled = self.scheduler.schedule(user_id) if accepted else False

        return BatchSummary(
            user_id=user_id,
            processed=len(accepted),
            clicks=sum(1 for e in accepted if e.interaction_type == InteractionType.CLICK),
            views=sum(1 for e in accepted if e.interaction_type == InteractionType.VIEW),
            dropped=dropped,
            recompute_scheduled=scheduled,
        )

    # Feed

    async def get_feed(
        self,
        user_id: int,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> FeedResult:
        """
        Generate a ranked feed.

        Args:
            user_id: User ID
            limit: Page size, defaults to feed.default_limit
            offset: Items to skip

        Returns:
            Feed result, empty only when no content exists
        """
        feed_config = self.config.feed
        timeouts = self.config.timeouts
        limit = max(1, min(limit or feed_config.default_limit, feed_config.max_limit))
        offset = max(0, offset)
        wanted = limit + offset
        now = self.clock()
        stages = {name: PipelineStage(name, description) for name, description in FEED_STAGES.items()}

        tree, preferences, profile, events = await asyncio.gather(
            run_stage(stages["taxonomy"], self.taxonomy.get_tree(), timeouts.taxonomy, CategoryTree([])),
            run_stage(stages["preferences"], self.preferences.get_preferences(user_id), timeouts.preferences, []),
            run_stage(stages["profile"], self.profiles.get_profile(user_id), timeouts.profile, None),
            run_stage(
                stages["events"],
                self.events.get_events(user_id, self.config.decay.lookback_days),
                timeouts.ledger,
                [],
            ),
        )

        if self._needs_recompute(user_id, preferences, events, now):
            # Shielded so a timeout does not interrupt the writes
            result = await run_stage(
                stages["recompute"],
                asyncio.shield(self.recompute(user_id)),
                timeouts.recompute,
                None,
            )
            if result is not None:
                preferences = result.preferences
                profile = result.profile

        clicked_ids = {e.article_id for e in events if e.interaction_type == InteractionType.CLICK}
        seen_ids = {e.article_id for e in events if not e.interaction_type.is_passive}
        profile_vector = profile.profile_vector if profile else None

        if not preferences and not profile_vector:
            items = await self._chronological_feed(user_id, clicked_ids, wanted, stages)
            return FeedResult(
                user_id=user_id,
                items=items[offset:offset + limit],
                generated_at=now,
                cold_start=True,
                stages=reports(stages.values()),
            )

        items = await self._personalized_feed(
            user_id, tree, preferences, profile_vector, clicked_ids, seen_ids, wanted, now, stages
        )

        prediction_applied = False
        if self.predictor.is_ready(profile) and items:
            items = self._rerank(items, profile, {p.category_id: p.score for p in preferences}, stages)
            prediction_applied = True

        return FeedResult(
            user_id=user_id,
            items=items[offset:offset + limit],
            generated_at=now,
            prediction_applied=prediction_applied,
            stages=reports(stages.values()),
        )

    async def _chronological_feed(
        self,
        user_id: int,
        clicked_ids: Set[int],
        wanted: int,
        stages: Dict[str, PipelineStage],
    ) -> List[ArticleCandidate]:
        timeout = self.config.timeouts.fallback
        items = await run_stage(
            stages["chronological"], self.sourcer.chronological(clicked_ids, wanted), timeout, []
        )
        if not items:
            items = await run_stage(
                stages["fallback"], self.sourcer.fallback(user_id, clicked_ids, wanted), timeout, []
            )
        return self.assembler.annotate(items)

    async def _personalized_feed(
        self,
        user_id: int,
        tree: CategoryTree,
        preferences: List[UserCategoryPreference],
        profile_vector: Optional[List[float]],
        clicked_ids: Set[int],
        seen_ids: Set[int],
        wanted: int,
        now: datetime,
        stages: Dict[str, PipelineStage],
    ) -> List[ArticleCandidate]:
        timeouts = self.config.timeouts
        explore_budget = max(1, wanted - round(wanted * self.config.feed.exploitation_ratio))
        sourcer = self.sourcer

        similar, by_category, exploration, wildcards, breaking, fallback = await asyncio.gather(
            run_stage(
                stages["similarity"],
                sourcer.by_similarity(profile_vector, preferences, seen_ids, wanted),
                timeouts.candidates,
                [],
            ),
            run_stage(
                stages["category"],
                sourcer.by_category(preferences, clicked_ids, wanted),
                timeouts.candidates,
                [],
            ),
            run_stage(
                stages["exploration"],
                sourcer.exploration(tree, preferences, clicked_ids, explore_budget),
                timeouts.candidates,
                {},
            ),
            run_stage(
                stages["wildcards"],
                sourcer.wildcards(preferences, clicked_ids, explore_budget),
                timeouts.candidates,
                [],
            ),
            run_stage(
                stages["breaking"],
                sourcer.breaking(clicked_ids, self.config.feed.breaking_slots * 2),
                timeouts.candidates,
                [],
            ),
            run_stage(
                stages["fallback"],
                sourcer.fallback(user_id, clicked_ids, wanted),
                timeouts.fallback,
                [],
            ),
        )

        scorer = CandidateScorer(
            self.config.scoring, {p.category_id: p.score for p in preferences}, now
        )
        ranked = scorer.score_all(sourcer.merge(similar, by_category))
        accepted, deferred = self.diversifier.split(ranked)

        return self.assembler.assemble(
            wanted,
            exploitation=accepted + deferred,
            exploration={source: scorer.score_all(pool) for source, pool in exploration.items()},
            wildcards=[scorer.score_candidate(c) for c in wildcards],
            breaking=[scorer.score_candidate(c) for c in breaking],
            fallback=[scorer.score_candidate(c) for c in fallback],
        )

    def _rerank(
        self,
        items: List[ArticleCandidate],
        profile: UserProfile,
        preference_map: Dict[int, float],
        stages: Dict[str, PipelineStage],
    ) -> List[ArticleCandidate]:
        """Re-rank everything below the breaking slots by click prediction."""
        stage = stages["prediction"]
        stage.start()

        lead = 0
        while lead < len(items) and items[lead].source == CandidateSource.BREAKING:
            lead += 1

        ranked = self.predictor.rank(items[lead:], profile, preference_map)
        accepted, deferred = self.diversifier.split(ranked)
        reordered = self.assembler.shuffle_window(items[:lead] + accepted + deferred)

        stage.complete({"ranked": len(ranked)})
        return self.assembler.annotate(reordered)
