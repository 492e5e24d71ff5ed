"""Preference aggregation and recompute scheduling."""

from .aggregator import PreferenceAggregator
from .scheduler import RecomputeScheduler

__all__ = ["PreferenceAggregator", "RecomputeScheduler"]
