"""Candidate scoring and diversity."""

from .diversity import Diversifier
from .ranker import CandidateScorer, print_feed_summary
from .scorers import (
    BaseScorer,
    CategoryAffinityScorer,
    FreshnessScorer,
    SimilarityScorer,
    build_freshness_scorer,
)

__all__ = [
    "BaseScorer",
    "CandidateScorer",
    "CategoryAffinityScorer",
    "Diversifier",
    "FreshnessScorer",
    "SimilarityScorer",
    "build_freshness_scorer",
    "print_feed_summary",
]
