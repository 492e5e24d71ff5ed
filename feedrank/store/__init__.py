"""Store interfaces and the in-memory implementation."""

from .base import (
    ArticleStore,
    EngineStore,
    EventLedger,
    PreferenceStore,
    ProfileStore,
    TaxonomySource,
)
from .memory import InMemoryStore

__all__ = [
    "ArticleStore",
    "EngineStore",
    "EventLedger",
    "InMemoryStore",
    "PreferenceStore",
    "ProfileStore",
    "TaxonomySource",
]
