"""In-memory store, used by tests and the demo CLI."""

from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..clock import to_utc, utcnow
from ..models import (
    ArticleRef,
    CategoryNode,
    InteractionEvent,
    InteractionType,
    UserCategoryPreference,
    UserProfile,
)
from ..vectors import cosine_similarity
from .base import EngineStore


class InMemoryStore(EngineStore):
    """Holds articles, events, categories, preferences and profiles in dicts."""

    def __init__(
        self,
        categories: Optional[Iterable[CategoryNode]] = None,
        articles: Optional[Iterable[ArticleRef]] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.clock = clock
        self.categories: List[CategoryNode] = list(categories or [])
        self.articles: Dict[int, ArticleRef] = {a.id: a for a in (articles or [])}
        self.events: List[InteractionEvent] = []
        self.preferences: Dict[Tuple[int, int], UserCategoryPreference] = {}
        self.profiles: Dict[int, UserProfile] = {}

    def add_article(self, article: ArticleRef) -> None:
        """Add or replace an article."""
        self.articles[article.id] = article

    def _since(self, hours: Optional[float]) -> Optional[datetime]:
        if hours is None:
            return None
        return to_utc(self.clock()) - timedelta(hours=hours)

    def _is_recent(self, article: ArticleRef, since: Optional[datetime]) -> bool:
        if since is None:
            return True
        if article.published_at is None:
            return False
        return to_utc(article.published_at) >= since

    @staticmethod
    def _newest_first(articles: List[ArticleRef]) -> List[ArticleRef]:
        return sorted(
            articles,
            key=lambda a: (
                a.published_at is not None,
                to_utc(a.published_at).timestamp() if a.published_at else 0.0,
            ),
            reverse=True,
        )

    def _popularity(self, article: ArticleRef, since: Optional[datetime]) -> int:
        count = article.popularity
        for event in self.events:
            if event.article_id != article.id:
                continue
            if since is None or to_utc(event.occurred_at) >= since:
                count += 1
        return count

    # Event ledger

    async def get_events(self, user_id: int, since_days: int) -> List[InteractionEvent]:
        since = self._since(since_days * 24)
        events = [
            e for e in self.events
            if e.user_id == user_id and to_utc(e.occurred_at) >= since
        ]
        return sorted(events, key=lambda e: to_utc(e.occurred_at))

    async def append_events(self, events: Sequence[InteractionEvent]) -> int:
        for event in events:
            if event.category_id is None and event.article_id in self.articles:
                event = event.model_copy(
                    update={"category_id": self.articles[event.article_id].category_id}
                )
            self.events.append(event)
        return len(events)

    async def count_events(self, user_id: int) -> int:
        return sum(1 for e in self.events if e.user_id == user_id)

    # Taxonomy

    async def get_category_tree(self) -> List[CategoryNode]:
        return list(self.categories)

    # Articles

    async def find_by_category(
        self,
        category_ids: Sequence[int],
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        wanted = set(category_ids)
        since = self._since(since_hours)
        found = [
            a for a in self.articles.values()
            if a.category_id in wanted and a.id not in exclude_ids and self._is_recent(a, since)
        ]
        return self._newest_first(found)[:limit]

    async def find_by_similarity(
        self,
        vector: Sequence[float],
        category_ids: Optional[Sequence[int]],
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        wanted = set(category_ids) if category_ids else None
        scored = []
        for article in self.articles.values():
            if article.vector is None or article.id in exclude_ids:
                continue
            if wanted is not None and article.category_id not in wanted:
                continue
            similarity = cosine_similarity(vector, article.vector)
            scored.append(article.model_copy(update={"similarity": similarity}))
        scored.sort(key=lambda a: a.similarity, reverse=True)
        return scored[:limit]

    async def get_article_vector(self, article_id: int) -> Optional[List[float]]:
        article = self.articles.get(article_id)
        return article.vector if article else None

    async def get_articles(self, article_ids: Iterable[int]) -> List[ArticleRef]:
        return [self.articles[i] for i in article_ids if i in self.articles]

    async def find_recent(
        self,
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        since = self._since(since_hours)
        found = [
            a for a in self.articles.values()
            if a.id not in exclude_ids and self._is_recent(a, since)
        ]
        return self._newest_first(found)[:limit]

    async def find_breaking(
        self,
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        since = self._since(since_hours)
        found = [
            a for a in self.articles.values()
            if a.id not in exclude_ids and (a.is_breaking or self._is_recent(a, since))
        ]
        return self._newest_first(found)[:limit]

    async def find_trending(
        self,
        exclude_category_ids: Set[int],
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        since = self._since(since_hours)
        found = []
        for article in self.articles.values():
            if article.id in exclude_ids or article.category_id is None:
                continue
            if article.category_id in exclude_category_ids:
                continue
            if not self._is_recent(article, since):
                continue
            found.append(article.model_copy(update={"popularity": self._popularity(article, since)}))
        found = self._newest_first(found)
        found.sort(key=lambda a: a.popularity, reverse=True)
        return found[:limit]

    async def find_unclicked_impressions(
        self,
        user_id: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        shown: Set[int] = set()
        clicked: Set[int] = set()
        for event in self.events:
            if event.user_id != user_id:
                continue
            if event.interaction_type == InteractionType.IMPRESSION:
                shown.add(event.article_id)
            elif event.interaction_type == InteractionType.CLICK:
                clicked.add(event.article_id)
        ids = shown - clicked - exclude_ids
        return self._newest_first([self.articles[i] for i in ids if i in self.articles])[:limit]

    async def find_popular(
        self,
        since_days: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        since = self._since(since_days * 24)
        found = [
            a.model_copy(update={"popularity": self._popularity(a, since)})
            for a in self.articles.values()
            if a.id not in exclude_ids and self._is_recent(a, since)
        ]
        found = self._newest_first(found)
        found.sort(key=lambda a: a.popularity, reverse=True)
        return found[:limit]

    # Preferences

    async def persist_preference(self, preference: UserCategoryPreference) -> None:
        self.preferences[(preference.user_id, preference.category_id)] = preference

    async def get_preferences(self, user_id: int) -> List[UserCategoryPreference]:
        prefs = [p for (uid, _), p in self.preferences.items() if uid == user_id]
        return sorted(prefs, key=lambda p: p.score, reverse=True)

    async def delete_preferences(self, user_id: int, keep: Set[int]) -> int:
        stale = [
            key for key in self.preferences
            if key[0] == user_id and key[1] not in keep
        ]
        for key in stale:
            del self.preferences[key]
        return len(stale)

    async def replace_preferences(
        self,
        user_id: int,
        preferences: Sequence[UserCategoryPreference],
    ) -> int:
        # No await between the writes, so readers never see a partial set
        keep = {p.category_id for p in preferences}
        stale = [key for key in self.preferences if key[0] == user_id and key[1] not in keep]
        for key in stale:
            del self.preferences[key]
        for preference in preferences:
            self.preferences[(user_id, preference.category_id)] = preference
        return len(stale)

    # Profiles

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def save_profile(self, profile: UserProfile) -> None:
        self.profiles[profile.user_id] = profile
