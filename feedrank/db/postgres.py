"""PostgreSQL implementation of the engine stores."""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from psycopg.types.json import Jsonb

from ..models import (
    ArticleRef,
    CategoryNode,
    EngagementTriggers,
    InteractionEvent,
    UserCategoryPreference,
    UserProfile,
)
from ..store import EngineStore
from .connection import Database

logger = logging.getLogger(__name__)

ARTICLE_COLUMNS = """
    a.id, a.title, a.category_id, a.published_at, a.is_breaking,
    a.embedding::text AS vector
"""

UPSERT_PREFERENCE_SQL = """
    INSERT INTO user_category_preferences (
        user_id, category_id, score, click_count, impression_count,
        interaction_count, is_propagated, last_updated
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
    ON CONFLICT (user_id, category_id) DO UPDATE SET
        score = EXCLUDED.score,
        click_count = EXCLUDED.click_count,
        impression_count = EXCLUDED.impression_count,
        interaction_count = EXCLUDED.interaction_count,
        is_propagated = EXCLUDED.is_propagated,
        last_updated = EXCLUDED.last_updated
"""

DELETE_STALE_PREFERENCES_SQL = """
    DELETE FROM user_category_preferences
    WHERE user_id = %s AND category_id <> ALL(%s::int[])
"""


def to_vector_literal(vector: Sequence[float]) -> str:
    """Format a vector as a pgvector text literal."""
    return "[" + ",".join(repr(float(x)) for x in vector) + "]"


def parse_vector(text: Optional[str]) -> Optional[List[float]]:
    """Parse a pgvector text value."""
    if not text:
        return None
    return [float(x) for x in json.loads(text)]


def _article(row: Dict[str, Any]) -> ArticleRef:
    return ArticleRef(
        id=row["id"],
        title=row["title"] or "",
        category_id=row["category_id"],
        published_at=row["published_at"],
        is_breaking=row["is_breaking"],
        vector=parse_vector(row.get("vector")),
        similarity=row.get("similarity"),
        popularity=row.get("popularity") or 0,
    )


class PostgresStore(EngineStore):
    """Engine store backed by PostgreSQL with the pgvector extension."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def _fetch(self, query: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    async def _articles(self, query: str, params: Sequence[Any] = ()) -> List[ArticleRef]:
        return [_article(row) for row in await self._fetch(query, params)]

    # Event ledger

    async def get_events(self, user_id: int, since_days: int) -> List[InteractionEvent]:
        rows = await self._fetch(
            """
            SELECT ui.user_id, ui.article_id, a.category_id, ui.interaction_type,
                   ui.duration_ms, ui.occurred_at
            FROM user_interactions ui
            JOIN articles a ON a.id = ui.article_id
            WHERE ui.user_id = %s
              AND ui.occurred_at >= NOW() - make_interval(days => %s)
            ORDER BY ui.occurred_at ASC
            """,
            (user_id, since_days),
        )
        return [InteractionEvent.model_validate(row) for row in rows]

    async def append_events(self, events: Sequence[InteractionEvent]) -> int:
        if not events:
            return 0
        async with self.db.connection() as conn:
            async with conn.cursor() as cur:
                await cur.executemany(
                    """
                    INSERT INTO user_interactions (
                        user_id, article_id, interaction_type, duration_ms, occurred_at
                    ) VALUES (%s, %s, %s, %s, %s)
                    """,
                    [
                        (
                            e.user_id,
                            e.article_id,
                            e.interaction_type.value,
                            e.duration_ms,
                            e.occurred_at,
                        )
                        for e in events
                    ],
                )
            await conn.commit()
        return len(events)

    async def count_events(self, user_id: int) -> int:
        rows = await self._fetch(
            "SELECT COUNT(*) AS total FROM user_interactions WHERE user_id = %s",
            (user_id,),
        )
        return rows[0]["total"] if rows else 0

    # Taxonomy

    async def get_category_tree(self) -> List[CategoryNode]:
        rows = await self._fetch(
            "SELECT id, parent_id, level, name, slug, path FROM categories ORDER BY level, id"
        )
        return [CategoryNode.model_validate(row) for row in rows]

    # Articles

    async def find_by_category(
        self,
        category_ids: Sequence[int],
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles a
            WHERE a.category_id = ANY(%s)
              AND a.id <> ALL(%s::int[])
              AND (%s::float8 IS NULL
                   OR a.published_at >= NOW() - make_interval(secs => %s::float8 * 3600))
            ORDER BY a.published_at DESC NULLS LAST
            LIMIT %s
            """,
            (list(category_ids), list(exclude_ids), since_hours, since_hours, limit),
        )

    async def find_by_similarity(
        self,
        vector: Sequence[float],
        category_ids: Optional[Sequence[int]],
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        category_filter = list(category_ids) if category_ids else None
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS},
                   1 - (a.embedding <=> %s::vector) AS similarity
            FROM articles a
            WHERE a.embedding IS NOT NULL
              AND (%s::int[] IS NULL OR a.category_id = ANY(%s::int[]))
              AND a.id <> ALL(%s::int[])
            ORDER BY similarity DESC
            LIMIT %s
            """,
            (
                to_vector_literal(vector),
                category_filter,
                category_filter,
                list(exclude_ids),
                limit,
            ),
        )

    async def get_article_vector(self, article_id: int) -> Optional[List[float]]:
        rows = await self._fetch(
            "SELECT embedding::text AS vector FROM articles WHERE id = %s",
            (article_id,),
        )
        return parse_vector(rows[0]["vector"]) if rows else None

    async def get_articles(self, article_ids: Iterable[int]) -> List[ArticleRef]:
        ids = list(article_ids)
        if not ids:
            return []
        return await self._articles(
            f"SELECT {ARTICLE_COLUMNS} FROM articles a WHERE a.id = ANY(%s)",
            (ids,),
        )

    async def find_recent(
        self,
        exclude_ids: Set[int],
        since_hours: Optional[float],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles a
            WHERE a.id <> ALL(%s::int[])
              AND (%s::float8 IS NULL
                   OR a.published_at >= NOW() - make_interval(secs => %s::float8 * 3600))
            ORDER BY a.published_at DESC NULLS LAST
            LIMIT %s
            """,
            (list(exclude_ids), since_hours, since_hours, limit),
        )

    async def find_breaking(
        self,
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles a
            WHERE a.id <> ALL(%s::int[])
              AND (a.is_breaking
                   OR a.published_at >= NOW() - make_interval(secs => %s::float8 * 3600))
            ORDER BY a.published_at DESC NULLS LAST
            LIMIT %s
            """,
            (list(exclude_ids), since_hours, limit),
        )

    async def find_trending(
        self,
        exclude_category_ids: Set[int],
        since_hours: float,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}, COUNT(ui.id) AS popularity
            FROM articles a
            LEFT JOIN user_interactions ui
              ON ui.article_id = a.id
             AND ui.occurred_at >= NOW() - make_interval(secs => %s::float8 * 3600)
            WHERE a.category_id IS NOT NULL
              AND a.category_id <> ALL(%s::int[])
              AND a.id <> ALL(%s::int[])
              AND a.published_at >= NOW() - make_interval(secs => %s::float8 * 3600)
            GROUP BY a.id
            ORDER BY popularity DESC, a.published_at DESC
            LIMIT %s
            """,
            (since_hours, list(exclude_category_ids), list(exclude_ids), since_hours, limit),
        )

    async def find_unclicked_impressions(
        self,
        user_id: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}
            FROM articles a
            WHERE a.id <> ALL(%s::int[])
              AND EXISTS (
                SELECT 1 FROM user_interactions ui
                WHERE ui.article_id = a.id AND ui.user_id = %s
                  AND ui.interaction_type = 'impression'
              )
              AND NOT EXISTS (
                SELECT 1 FROM user_interactions ui
                WHERE ui.article_id = a.id AND ui.user_id = %s
                  AND ui.interaction_type = 'click'
              )
            ORDER BY a.published_at DESC NULLS LAST
            LIMIT %s
            """,
            (list(exclude_ids), user_id, user_id, limit),
        )

    async def find_popular(
        self,
        since_days: int,
        exclude_ids: Set[int],
        limit: int,
    ) -> List[ArticleRef]:
        return await self._articles(
            f"""
            SELECT {ARTICLE_COLUMNS}, COUNT(ui.id) AS popularity
            FROM articles a
            LEFT JOIN user_interactions ui
              ON ui.article_id = a.id
             AND ui.occurred_at >= NOW() - make_interval(days => %s)
            WHERE a.id <> ALL(%s::int[])
              AND a.published_at >= NOW() - make_interval(days => %s)
            GROUP BY a.id
            ORDER BY popularity DESC, a.published_at DESC
            LIMIT %s
            """,
            (since_days, list(exclude_ids), since_days, limit),
        )

    # Preferences

    async def _upsert_preference(self, conn, preference: UserCategoryPreference) -> None:
        await conn.execute(
            UPSERT_PREFERENCE_SQL,
            (
                preference.user_id,
                preference.category_id,
                preference.score,
                preference.click_count,
                preference.impression_count,
                preference.interaction_count,
                preference.is_propagated,
                preference.last_updated,
            ),
        )

    async def persist_preference(self, preference: UserCategoryPreference) -> None:
        async with self.db.connection() as conn:
            await self._upsert_preference(conn, preference)
            await conn.commit()

    async def get_preferences(self, user_id: int) -> List[UserCategoryPreference]:
        rows = await self._fetch(
            """
            SELECT p.user_id, p.category_id, p.score, p.click_count, p.impression_count,
                   p.interaction_count, p.is_propagated, p.last_updated, c.level
            FROM user_category_preferences p
            LEFT JOIN categories c ON c.id = p.category_id
            WHERE p.user_id = %s
            ORDER BY p.score DESC
            """,
            (user_id,),
        )
        return [UserCategoryPreference.model_validate(row) for row in rows]

    async def delete_preferences(self, user_id: int, keep: Set[int]) -> int:
        async with self.db.connection() as conn:
            cur = await conn.execute(DELETE_STALE_PREFERENCES_SQL, (user_id, list(keep)))
            await conn.commit()
            return cur.rowcount

    async def replace_preferences(
        self,
        user_id: int,
        preferences: Sequence[UserCategoryPreference],
    ) -> int:
        keep = [p.category_id for p in preferences]
        async with self.db.connection() as conn:
            async with conn.transaction():
                for preference in preferences:
                    await self._upsert_preference(conn, preference)
                cur = await conn.execute(DELETE_STALE_PREFERENCES_SQL, (user_id, keep))
        logger.debug(f"Replaced preferences of user {user_id}: {len(keep)} kept, {cur.rowcount} deleted")
        return cur.rowcount

    # Profiles

    async def get_profile(self, user_id: int) -> Optional[UserProfile]:
        rows = await self._fetch(
            """
            SELECT user_id, profile_vector::text AS profile_vector, triggers,
                   total_interactions, total_clicks, prediction_enabled, updated_at
            FROM user_profiles
            WHERE user_id = %s
            """,
            (user_id,),
        )
        if not rows:
            return None
        row = rows[0]
        return UserProfile(
            user_id=row["user_id"],
            profile_vector=parse_vector(row["profile_vector"]),
            triggers=EngagementTriggers.model_validate(row["triggers"] or {}),
            total_interactions=row["total_interactions"],
            total_clicks=row["total_clicks"],
            prediction_enabled=row["prediction_enabled"],
            updated_at=row["updated_at"],
        )

    async def save_profile(self, profile: UserProfile) -> None:
        vector = to_vector_literal(profile.profile_vector) if profile.profile_vector else None
        async with self.db.connection() as conn:
            await conn.execute(
                """
                INSERT INTO user_profiles (
                    user_id, profile_vector, triggers, total_interactions,
                    total_clicks, prediction_enabled, updated_at
                ) VALUES (%s, %s::vector, %s, %s, %s, %s, COALESCE(%s, CURRENT_TIMESTAMP))
                ON CONFLICT (user_id) DO UPDATE SET
                    profile_vector = EXCLUDED.profile_vector,
                    triggers = EXCLUDED.triggers,
                    total_interactions = EXCLUDED.total_interactions,
                    total_clicks = EXCLUDED.total_clicks,
                    prediction_enabled = EXCLUDED.prediction_enabled,
                    updated_at = EXCLUDED.updated_at
                """,
                (
                    profile.user_id,
                    vector,
                    Jsonb(profile.triggers.model_dump()),
                    profile.total_interactions,
                    profile.total_clicks,
                    profile.prediction_enabled,
                    profile.updated_at,
                ),
            )
            await conn.commit()
        logger.debug(f"Saved profile for user {profile.user_id}")
