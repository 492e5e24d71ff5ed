"""Learned per-user engagement profile."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import FeedModel


class EngagementTriggers(FeedModel):
    """Title traits the user clicks more often than baseline."""

    urgency_multiplier: float = Field(1.0, ge=1.0)
    numbers_multiplier: float = Field(1.0, ge=1.0)
    controversy_multiplier: float = Field(1.0, ge=1.0)
    exclusivity_multiplier: float = Field(1.0, ge=1.0)
    high_ctr_keywords: List[str] = Field(default_factory=list)
    enabled: bool = Field(False, description="Enough clicks to trust the multipliers")


class UserProfile(FeedModel):
    """Engagement profile derived from the event ledger."""

    user_id: int
    profile_vector: Optional[List[float]] = Field(None, description="Mean vector of recent clicks")
    triggers: EngagementTriggers = Field(default_factory=EngagementTriggers)
    total_interactions: int = Field(0, ge=0)
    total_clicks: int = Field(0, ge=0)
    prediction_enabled: bool = Field(False, description="Enough history for click prediction")
    updated_at: Optional[datetime] = None
