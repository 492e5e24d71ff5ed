"""Interfaces to the external stores the engine reads from and writes to.

The engine never talks to a database directly. Every read goes through one of
these async interfaces so that tests can run against ``InMemoryStore`` and
production against ``PostgresStore``.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Set

from ..models import (
    ArticleRef,
    CategoryNode,
    InteractionEvent,
    UserCategoryPreference,
    UserProfile,
)


class EventLedger(ABC):
    """Append-only interaction log."""

    @abstractmethod
    async def get_events(self, user_id: int, since_days: int) -> List[InteractionEvent]:
        """
        Get a user's events within the lookback window.

        Args:
            user_id: User ID
            since_days: Lookback window in days

        Returns:
            Events with category_id resolved from the article, oldest first
        """
        pass

    @abstractmethod
    async def append_events(self, events: Sequence[InteractionEvent]) -> int:
        """Append events, returning how many were stored."""
        pass

    @abstractmethod
    async def count_events(self, user_id: int) -> int:
        """Lifetime interaction count for a user."""
        pass


class TaxonomySource(ABC):
    """Source of the category forest."""

    @abstractmethod
    async def get_category_tree(self) -> List[CategoryNode]:
        """Get every category node."""
        pass


class ArticleStore(ABC):
    """Article queries used for candidate generation."""

    @abstractmethod
    async def find_by_category(
        self,
        category_ids: Sequence[int],
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        """Articles in the given categories, newest first."""
        pass

    @abstractmethod
    async def find_by_similarity(
        self,
        vector: Sequence[float],
        category_ids: Optional[Sequence[int]],
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        """Articles closest to a vector, with ``similarity`` populated, best first."""
        pass

    @abstractmethod
    async def get_article_vector(self, article_id: int) -> Optional[List[float]]:
        """Content vector of one article, if it has been embedded."""
        pass

    @abstractmethod
    async def get_articles(self, article_ids: Iterable[int]) -> List[ArticleRef]:
        """Fetch articles by ID. Unknown IDs are skipped."""
        pass

    @abstractmethod
    async def find_recent(
        self,
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        """Newest articles across all categories."""
        pass

    @abstractmethod
    async def find_breaking(
        self,
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        """Articles published within since_hours or flagged breaking, newest first."""
        pass

    @abstractmethod
    async def find_trending(
        self,
        exclude_category_ids: Set[int],
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        """Most interacted-with recent articles outside the given categories."""
        pass

    @abstractmethod
    async def find_unclicked_impressions(
        self,
        user_id: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        """Articles shown to the user that were never clicked, newest first."""
        pass

    @abstractmethod
    async def find_popular(
        self,
        since_days: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        """Most interacted-with articles of the period."""
        pass


class PreferenceStore(ABC):
    """Persistence of derived category preferences."""

    @abstractmethod
    async def persist_preference(self, preference: UserCategoryPreference) -> None:
        """Insert or replace one preference row."""
        pass

    @abstractmethod
    async def get_preferences(self, user_id: int) -> List[UserCategoryPreference]:
        """All preference rows of a user, highest score first."""
        pass

    @abstractmethod
    async def delete_preferences(self, user_id: int, keep: Set[int]) -> int:
        """Delete a user's rows for categories not in keep."""
        pass

    @abstractmethod
    async def replace_preferences(
        self,
        user_id: int,
        preferences: Sequence[UserCategoryPreference],
    ) -> int:
        """
        Replace a user's whole preference set in one atomic write.

        Readers see either the previous set or the new one, never a mix.

        Returns:
            Number of stale rows deleted
        """
        pass


class ProfileStore(ABC):
    """Persistence of learned user profiles."""

    @abstractmethod
    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        """Stored profile of a user."""
        pass

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> None:
        """Insert or replace a profile."""
        pass


class EngineStore(EventLedger, TaxonomySource, ArticleStore, PreferenceStore, ProfileStore):
    """A single backend implementing every store interface."""
