"""Candidate generation from the article store."""

import asyncio
import logging
import random
from typing import Dict, Iterable, List, Optional, Sequence, Set

from ..config import EngineConfig
from ..models import ArticleCandidate, ArticleRef, CandidateSource, UserCategoryPreference
from ..prediction import TitleAnalyzer
from ..store import ArticleStore
from ..taxonomy import CategoryTree

logger = logging.getLogger(__name__)


def _tag(refs: Iterable[ArticleRef], source: CandidateSource) -> List[ArticleCandidate]:
    return [ArticleCandidate.from_ref(ref, source) for ref in refs]


def dedupe(*streams: Iterable[ArticleCandidate]) -> List[ArticleCandidate]:
    """Concatenate streams keeping the first occurrence of each article."""
    seen: Set[int] = set()
    merged = []
    for stream in streams:
        for candidate in stream:
            if candidate.article_id in seen:
                continue
            seen.add(candidate.article_id)
            merged.append(candidate)
    return merged


class CandidateSourcer:
    """Queries the article store for every candidate pool of a feed."""

    def __init__(
        self,
        articles: ArticleStore,
        config: Optional[EngineConfig] = None,
        analyzer: Optional[TitleAnalyzer] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.articles = articles
        self.config = config or EngineConfig()
        self.analyzer = analyzer or TitleAnalyzer(self.config.predictor)
        self.rng = rng or random.Random()

    def top_categories(self, preferences: Sequence[UserCategoryPreference]) -> List[int]:
        """Highest-scoring preferred categories."""
        ranked = sorted(preferences, key=lambda p: p.score, reverse=True)
        return [p.category_id for p in ranked[: self.config.feed.top_categories]]

    async def by_category(
        self,
        preferences: Sequence[UserCategoryPreference],
        clicked_ids: Set[int],
        limit: int,
    ) -> List[ArticleCandidate]:
        """Recent articles from the user's top categories, excluding clicked ones."""
        category_ids = self.top_categories(preferences)
        if not category_ids:
            return []
        refs = await self.articles.find_by_category(
            category_ids,
            exclude_ids=clicked_ids,
            since_hours=self.config.feed.candidate_window_days * 24,
            limit=limit * self.config.feed.candidate_multiplier,
        )
        return _tag(refs, CandidateSource.EXPLOITATION)

    async def by_similarity(
        self,
        profile_vector: Optional[List[float]],
        preferences: Sequence[UserCategoryPreference],
        seen_ids: Set[int],
        limit: int,
    ) -> List[ArticleCandidate]:
        """Articles nearest to the user's content profile, excluding seen ones."""
        if not profile_vector:
            return []
        category_ids = self.top_categories(preferences) or None
        refs = await self.articles.find_by_similarity(
            profile_vector,
            category_ids=category_ids,
            exclude_ids=seen_ids,
            limit=limit * self.config.feed.candidate_multiplier,
        )
        return _tag(refs, CandidateSource.EXPLOITATION)

    def merge(
        self,
        similar: List[ArticleCandidate],
        by_category: List[ArticleCandidate],
    ) -> List[ArticleCandidate]:
        """Merge both exploitation streams; similarity results win duplicates."""
        return dedupe(similar, by_category)

    def exploration_categories(
        self,
        tree: CategoryTree,
        preferences: Sequence[UserCategoryPreference],
    ) -> Dict[CandidateSource, List[int]]:
        """
        Category sets for the structured exploration strategies.

        Siblings are other children of a preferred category's parent. The
        parent strategy covers the remaining descendants of preferred
        level-1 categories.
        """
        preferred = {p.category_id for p in preferences}
        ranked = sorted(preferences, key=lambda p: p.score, reverse=True)

        siblings: List[int] = []
        for pref in ranked:
            for sibling in tree.siblings(pref.category_id):
                if sibling not in preferred and sibling not in siblings:
                    siblings.append(sibling)

        family: List[int] = []
        for pref in ranked:
            if tree.level(pref.category_id) != 1:
                continue
            for descendant in tree.descendants(pref.category_id):
                if descendant in preferred or descendant in siblings or descendant in family:
                    continue
                family.append(descendant)

        return {
            CandidateSource.EXPLORATION_SIBLING: siblings,
            CandidateSource.EXPLORATION_PARENT: family,
        }

    async def exploration(
        self,
        tree: CategoryTree,
        preferences: Sequence[UserCategoryPreference],
        exclude_ids: Set[int],
        budget: int,
    ) -> Dict[CandidateSource, List[ArticleCandidate]]:
        """Fetch the sibling, parent and trending exploration pools."""
        pools = self.exploration_categories(tree, preferences)
        touched = {p.category_id for p in preferences}
        limit = max(1, budget) * self.config.feed.candidate_multiplier
        since_hours = self.config.exploration.window_days * 24

        async def fetch(category_ids: List[int]) -> List[ArticleRef]:
            if not category_ids:
                return []
            return await self.articles.find_by_category(category_ids, exclude_ids, since_hours, limit)

        siblings, family, trending = await asyncio.gather(
            fetch(pools[CandidateSource.EXPLORATION_SIBLING]),
            fetch(pools[CandidateSource.EXPLORATION_PARENT]),
            self.articles.find_trending(
                touched, self.config.exploration.trending_hours, exclude_ids, limit
            ),
        )
        return {
            CandidateSource.EXPLORATION_SIBLING: _tag(siblings, CandidateSource.EXPLORATION_SIBLING),
            CandidateSource.EXPLORATION_PARENT: _tag(family, CandidateSource.EXPLORATION_PARENT),
            CandidateSource.EXPLORATION_TRENDING: _tag(trending, CandidateSource.EXPLORATION_TRENDING),
        }

    async def wildcards(
        self,
        preferences: Sequence[UserCategoryPreference],
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleCandidate]:
        """Articles from untouched categories, attention-grabbing titles first."""
        touched = {p.category_id for p in preferences}
        refs = await self.articles.find_trending(
            touched,
            self.config.exploration.wildcard_hours,
            exclude_ids,
            limit * self.config.feed.candidate_multiplier,
        )
        ranked = sorted(
            refs,
            key=lambda r: self.analyzer.catchiness(r.title) + self.rng.random() * 5,
            reverse=True,
        )
        return _tag(ranked[:limit], CandidateSource.WILDCARD)

    async def breaking(self, exclude_ids: Set[int], limit: int) -> List[ArticleCandidate]:
        """Very recent or flagged articles."""
        if limit <= 0:
            return []
        refs = await self.articles.find_breaking(
            self.config.feed.breaking_window_hours, exclude_ids, limit
        )
        return _tag(refs, CandidateSource.BREAKING)

    async def chronological(self, exclude_ids: Set[int], limit: int) -> List[ArticleCandidate]:
        """Newest articles: the last day first, then any age."""
        recent = await self.articles.find_recent(
            exclude_ids, self.config.feed.recent_fallback_hours, limit
        )
        if len(recent) < limit:
            older = await self.articles.find_recent(
                exclude_ids | {r.id for r in recent}, None, limit - len(recent)
            )
            recent = recent + older
        return _tag(recent, CandidateSource.FALLBACK)

    async def fallback(self, user_id: int, exclude_ids: Set[int], limit: int) -> List[ArticleCandidate]:
        """
        Fallback chain used when the personalized pools run dry.

        Recent articles, then articles shown but never clicked, then the
        week's most popular, then anything left, stopping once limit is met.
        """
        feed_config = self.config.feed
        steps = [
            lambda excl, n: self.articles.find_recent(excl, feed_config.recent_fallback_hours, n),
            lambda excl, n: self.articles.find_unclicked_impressions(user_id, excl, n),
            lambda excl, n: self.articles.find_popular(feed_config.popular_days, excl, n),
            lambda excl, n: self.articles.find_recent(excl, None, n),
        ]
        collected: List[ArticleRef] = []
        excluded = set(exclude_ids)
        for step in steps:
            if len(collected) >= limit:
                break
            refs = await step(excluded, limit - len(collected))
            for ref in refs:
                if ref.id not in excluded:
                    collected.append(ref)
                    excluded.add(ref.id)
        return _tag(collected, CandidateSource.FALLBACK)
