"""Individual scoring components for candidate ranking."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional

from ..clock import hours_between, utcnow
from ..config import ScoringConfig
from ..config.models import FreshnessBand
from ..models import ArticleCandidate


class BaseScorer(ABC):
    """Base class for scoring components."""

    @abstractmethod
    def score(self, candidate: ArticleCandidate, context: Optional[Dict] = None) -> float:
        """
        Score a candidate from 0.0 to 1.0.

        Args:
            candidate: Feed candidate
            context: Additional context (e.g., reference time)

        Returns:
            Score between 0.0 and 1.0
        """
        pass


class FreshnessScorer(BaseScorer):
    """Step-function score by article age."""

    def __init__(
        self,
        bands: List[FreshnessBand],
        stale_score: float = 0.1,
        unknown_age_score: float = 0.5,
    ) -> None:
        self.bands = sorted(bands, key=lambda b: b.max_age_hours)
        self.stale_score = stale_score
        self.unknown_age_score = unknown_age_score

    def score_age(self, age_hours: Optional[float]) -> float:
        """Score for an age in hours."""
        if age_hours is None:
            return self.unknown_age_score
        for band in self.bands:
            if age_hours < band.max_age_hours:
                return band.score
        return self.stale_score

    def score(self, candidate: ArticleCandidate, context: Optional[Dict] = None) -> float:
        """Score based on publication date."""
        now: datetime = (context or {}).get("now") or utcnow()
        return self.score_age(hours_between(candidate.published_at, now))


class CategoryAffinityScorer(BaseScorer):
    """Score from the user's stored category preference."""

    def __init__(self, preferences: Dict[int, float], default: float = 0.3) -> None:
        self.preferences = preferences
        self.default = default

    def score(self, candidate: ArticleCandidate, context: Optional[Dict] = None) -> float:
        if candidate.category_id is None:
            return self.default
        value = self.preferences.get(candidate.category_id, self.default)
        return max(0.0, min(1.0, value))


class SimilarityScorer(BaseScorer):
    """Cosine similarity to the user's content profile, clamped to [0, 1]."""

    def score(self, candidate: ArticleCandidate, context: Optional[Dict] = None) -> float:
        if candidate.similarity is None:
            return 0.0
        return max(0.0, min(1.0, candidate.similarity))


def build_freshness_scorer(config: ScoringConfig) -> FreshnessScorer:
    """Freshness scorer from scoring config."""
    return FreshnessScorer(
        bands=config.freshness_bands,
        stale_score=config.stale_score,
        unknown_age_score=config.unknown_age_score,
    )
