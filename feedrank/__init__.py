"""Personalized feed ranking engine."""

from .config import EngineConfig
from .pipeline import FeedEngine
from .store import InMemoryStore

__version__ = "0.1.0"

__all__ = ["EngineConfig", "FeedEngine", "InMemoryStore"]
