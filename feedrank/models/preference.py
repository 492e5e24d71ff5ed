"""User category preferences and recompute reports."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from .base import FeedModel
from .profile import UserProfile


class UserCategoryPreference(FeedModel):
    """Derived interest of a user in one category."""

    user_id: int = Field(..., description="User ID")
    category_id: int = Field(..., description="Category ID")
    score: float = Field(..., ge=0.0, le=1.0, description="Relative preference score")
    click_count: int = Field(0, ge=0)
    impression_count: int = Field(0, ge=0)
    interaction_count: int = Field(0, ge=0)
    is_propagated: bool = Field(False, description="Inferred from child categories")
    level: Optional[int] = Field(None, description="Category level when known")
    last_updated: Optional[datetime] = Field(None, description="Last recompute time")

    @property
    def ctr(self) -> float:
        """Click-through rate for the category."""
        if self.impression_count == 0:
            return 0.0
        return self.click_count / self.impression_count


class RecomputeResult(FeedModel):
    """Outcome of one preference recompute."""

    user_id: int
    updated: int = Field(0, description="Directly scored categories")
    propagated: int = Field(0, description="Ancestor categories scored by propagation")
    penalized: List[int] = Field(default_factory=list, description="Categories hit by negative feedback")
    excluded: List[int] = Field(default_factory=list, description="Categories dropped as invalid")
    profile_updated: bool = False
    profile: Optional[UserProfile] = Field(None, description="Profile rebuilt during the recompute")
    preferences: List[UserCategoryPreference] = Field(default_factory=list)


class BatchSummary(FeedModel):
    """Summary returned by the interaction ingestion hook."""

    user_id: int
    processed: int = 0
    clicks: int = 0
    views: int = 0
    dropped: int = 0
    recompute_scheduled: bool = False
