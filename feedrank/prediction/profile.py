"""Builds the per-user engagement profile from the event ledger."""

import logging
from datetime import datetime
from typing import List, Optional, Sequence

from ..clock import utcnow
from ..config import PredictorConfig
from ..models import InteractionEvent, InteractionType, UserProfile
from ..store import ArticleStore
from ..vectors import mean_vector
from .triggers import TitleAnalyzer

logger = logging.getLogger(__name__)


class ProfileBuilder:
    """Derives profile vector, trigger multipliers and readiness."""

    def __init__(
        self,
        articles: ArticleStore,
        config: Optional[PredictorConfig] = None,
        analyzer: Optional[TitleAnalyzer] = None,
    ) -> None:
        self.articles = articles
        self.config = config or PredictorConfig()
        self.analyzer = analyzer or TitleAnalyzer(self.config)

    def _recent_clicked_ids(self, clicks: Sequence[InteractionEvent]) -> List[int]:
        ids: List[int] = []
        for event in reversed(clicks):
            if event.article_id not in ids:
                ids.append(event.article_id)
            if len(ids) >= self.config.profile_vector_clicks:
                break
        return ids

    async def build(
        self,
        user_id: int,
        events: Sequence[InteractionEvent],
        total_interactions: int,
        now: Optional[datetime] = None,
    ) -> UserProfile:
        """
        Build a profile from the user's events.

        Args:
            user_id: User ID
            events: Events in the lookback window, oldest first
            total_interactions: Lifetime interaction count
            now: Timestamp for the profile

        Returns:
            Fresh user profile
        """
        clicks = [e for e in events if e.interaction_type == InteractionType.CLICK]
        clicked_ids = {e.article_id for e in clicks}
        shown_ids = {
            e.article_id for e in events
            if e.interaction_type == InteractionType.IMPRESSION and e.article_id not in clicked_ids
        }

        recent_ids = self._recent_clicked_ids(clicks)
        articles = await self.articles.get_articles(clicked_ids | shown_ids)
        by_id = {a.id: a for a in articles}

        vectors = [by_id[i].vector for i in recent_ids if i in by_id and by_id[i].vector]
        profile_vector = mean_vector(vectors)

        clicked_titles = [by_id[e.article_id].title for e in clicks if e.article_id in by_id]
        shown_titles = [by_id[i].title for i in shown_ids if i in by_id]
        triggers = self.analyzer.learn_triggers(clicked_titles, shown_titles)

        profile = UserProfile(
            user_id=user_id,
            profile_vector=profile_vector,
            triggers=triggers,
            total_interactions=total_interactions,
            total_clicks=len(clicks),
            prediction_enabled=total_interactions >= self.config.min_interactions,
            updated_at=now or utcnow(),
        )
        logger.debug(
            f"Profile for user {user_id}: {len(vectors)} vectors, "
            f"{len(clicks)} clicks, prediction {'on' if profile.prediction_enabled else 'off'}"
        )
        return profile
