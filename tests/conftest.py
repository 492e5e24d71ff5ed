"""Shared fixtures."""

import random
from datetime import datetime

import pytest

from feedrank.config import EngineConfig
from feedrank.store import InMemoryStore
from feedrank.taxonomy import CategoryTree

from .factories import NOW, category_nodes, make_article

pytest_plugins = ('pytest_asyncio',)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def tree() -> CategoryTree:
    return CategoryTree(category_nodes())


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def store() -> InMemoryStore:
    """Store with the taxonomy and no articles."""
    return InMemoryStore(categories=category_nodes(), clock=lambda: NOW)


@pytest.fixture
def rich_store() -> InMemoryStore:
    """Store with plenty of fresh articles in every category."""
    store = InMemoryStore(categories=category_nodes(), clock=lambda: NOW)
    article_id = 1000
    for node in category_nodes():
        for i in range(15):
            article_id += 1
            store.add_article(
                make_article(article_id, node.id, hours_ago=3 + i * 2, title=f"{node.name} story {i}")
            )
    return store
