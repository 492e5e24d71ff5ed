"""Articles as seen by the ranking pipeline."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import Field

from .base import FeedModel
from .prediction import ClickPrediction


class ArticleRef(FeedModel):
    """Article returned by the article store."""

    id: int = Field(..., description="Article ID")
    title: str = Field("", description="Article title")
    category_id: Optional[int] = Field(None, description="Classified category")
    published_at: Optional[datetime] = Field(None, description="Publication time")
    is_breaking: bool = Field(False, description="Flagged as breaking news upstream")
    vector: Optional[List[float]] = Field(None, description="Content embedding")
    similarity: Optional[float] = Field(None, description="Cosine similarity to the query vector")
    popularity: int = Field(0, ge=0, description="Recent interaction count")


class CandidateSource(str, Enum):
    """Where a feed candidate came from."""

    EXPLOITATION = "exploitation"
    EXPLORATION_SIBLING = "exploration_sibling"
    EXPLORATION_PARENT = "exploration_parent"
    EXPLORATION_TRENDING = "exploration_trending"
    BREAKING = "breaking"
    WILDCARD = "wildcard"
    FALLBACK = "fallback"

    @property
    def is_exploration(self) -> bool:
        """Whether the candidate fills an exploration slot."""
        return self in (
            CandidateSource.EXPLORATION_SIBLING,
            CandidateSource.EXPLORATION_PARENT,
            CandidateSource.EXPLORATION_TRENDING,
            CandidateSource.WILDCARD,
        )


class ArticleCandidate(FeedModel):
    """Transient feed candidate for one feed request."""

    article_id: int = Field(..., description="Article ID")
    title: str = Field("", description="Article title")
    category_id: Optional[int] = Field(None, description="Article category")
    published_at: Optional[datetime] = Field(None, description="Publication time")
    vector: Optional[List[float]] = Field(None, description="Content embedding")
    similarity: Optional[float] = Field(None, description="Similarity to the user profile")
    is_breaking: bool = False
    popularity: int = 0
    source: CandidateSource = Field(CandidateSource.EXPLOITATION, description="Candidate source tag")
    score: float = Field(0.0, description="Composite relevance score")
    score_breakdown: Dict[str, float] = Field(default_factory=dict)
    prediction: Optional[ClickPrediction] = Field(None, description="Click prediction, if re-ranked")
    explanation: str = Field("", description="Human-readable placement reason")
    position: Optional[int] = Field(None, description="Zero-based feed position")

    @classmethod
    def from_ref(cls, ref: ArticleRef, source: CandidateSource) -> "ArticleCandidate":
        """Build a candidate from an article store row."""
        return cls(
            article_id=ref.id,
            title=ref.title,
            category_id=ref.category_id,
            published_at=ref.published_at,
            vector=ref.vector,
            similarity=ref.similarity,
            is_breaking=ref.is_breaking,
            popularity=ref.popularity,
            source=source,
        )


class FeedResult(FeedModel):
    """Ordered feed returned to callers."""

    user_id: int
    items: List[ArticleCandidate] = Field(default_factory=list)
    generated_at: datetime
    cold_start: bool = Field(False, description="Served chronologically for lack of history")
    prediction_applied: bool = False
    stages: Dict[str, Dict] = Field(default_factory=dict, description="Per-stage status report")

    @property
    def counts_by_source(self) -> Dict[str, int]:
        """Number of items per source tag."""
        counts: Dict[str, int] = {}
        for item in self.items:
            counts[item.source.value] = counts.get(item.source.value, 0) + 1
        return counts
