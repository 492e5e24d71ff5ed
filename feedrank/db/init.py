"""Database initialization and schema management."""

import logging

from .connection import Database

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;

-- Category forest
CREATE TABLE IF NOT EXISTS categories (
    id SERIAL PRIMARY KEY,
    parent_id INTEGER REFERENCES categories(id),
    level SMALLINT NOT NULL CHECK (level BETWEEN 1 AND 3),
    name TEXT NOT NULL,
    slug TEXT NOT NULL UNIQUE,
    path TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Articles with content embeddings
CREATE TABLE IF NOT EXISTS articles (
    id SERIAL PRIMARY KEY,
    title TEXT NOT NULL,
    category_id INTEGER REFERENCES categories(id),
    published_at TIMESTAMPTZ,
    is_breaking BOOLEAN NOT NULL DEFAULT FALSE,
    embedding vector,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Append-only interaction ledger
CREATE TABLE IF NOT EXISTS user_interactions (
    id BIGSERIAL PRIMARY KEY,
    user_id INTEGER NOT NULL,
    article_id INTEGER NOT NULL REFERENCES articles(id),
    interaction_type TEXT NOT NULL CHECK (interaction_type IN (
        'impression', 'scroll_stop', 'click', 'view', 'like', 'share', 'bookmark'
    )),
    duration_ms INTEGER CHECK (duration_ms IS NULL OR interaction_type = 'view'),
    occurred_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Derived category preferences
CREATE TABLE IF NOT EXISTS user_category_preferences (
    user_id INTEGER NOT NULL,
    category_id INTEGER NOT NULL REFERENCES categories(id),
    score DOUBLE PRECISION NOT NULL CHECK (score >= 0 AND score <= 1),
    click_count INTEGER NOT NULL DEFAULT 0,
    impression_count INTEGER NOT NULL DEFAULT 0,
    interaction_count INTEGER NOT NULL DEFAULT 0,
    is_propagated BOOLEAN NOT NULL DEFAULT FALSE,
    last_updated TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, category_id)
);

-- Learned engagement profiles
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id INTEGER PRIMARY KEY,
    profile_vector vector,
    triggers JSONB NOT NULL DEFAULT '{}'::jsonb,
    total_interactions INTEGER NOT NULL DEFAULT 0,
    total_clicks INTEGER NOT NULL DEFAULT 0,
    prediction_enabled BOOLEAN NOT NULL DEFAULT FALSE,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_categories_parent_id ON categories(parent_id);
CREATE INDEX IF NOT EXISTS idx_articles_category_id ON articles(category_id);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles(published_at);
CREATE INDEX IF NOT EXISTS idx_interactions_user_time ON user_interactions(user_id, occurred_at);
CREATE INDEX IF NOT EXISTS idx_interactions_article_time ON user_interactions(article_id, occurred_at);
"""


async def validate_connection(db: Database) -> bool:
    """Validate database connection."""
    try:
        async with db.connection() as conn:
            cur = await conn.execute("SELECT 1 AS ok")
            result = await cur.fetchone()
            return result is not None and result["ok"] == 1
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def init_database(db: Database) -> None:
    """Initialize database schema."""
    async with db.connection() as conn:
        await conn.execute(SCHEMA_SQL)
        await conn.commit()
    logger.info("Database schema initialized successfully")
