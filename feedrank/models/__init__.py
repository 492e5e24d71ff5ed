"""Data models for the feed ranking engine."""

from .article import ArticleCandidate, ArticleRef, CandidateSource, FeedResult
from .category import CategoryNode
from .events import InteractionEvent, InteractionType
from .prediction import ClickPrediction, PredictionFactor
from .preference import BatchSummary, RecomputeResult, UserCategoryPreference
from .profile import EngagementTriggers, UserProfile

__all__ = [
    "ArticleCandidate",
    "ArticleRef",
    "BatchSummary",
    "CandidateSource",
    "CategoryNode",
    "ClickPrediction",
    "EngagementTriggers",
    "FeedResult",
    "InteractionEvent",
    "InteractionType",
    "PredictionFactor",
    "RecomputeResult",
    "UserCategoryPreference",
    "UserProfile",
]
