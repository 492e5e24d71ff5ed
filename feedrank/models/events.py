"""Interaction events."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field, model_validator

from .base import FeedModel


class InteractionType(str, Enum):
    """Closed set of implicit feedback signals."""

    IMPRESSION = "impression"
    SCROLL_STOP = "scroll_stop"
    CLICK = "click"
    VIEW = "view"
    LIKE = "like"
    SHARE = "share"
    BOOKMARK = "bookmark"

    @property
    def is_passive(self) -> bool:
        """Whether the article merely passed through the viewport."""
        return self in (InteractionType.IMPRESSION, InteractionType.SCROLL_STOP)


class InteractionEvent(FeedModel):
    """A single recorded interaction. Immutable once created."""

    user_id: int = Field(..., description="User who interacted")
    article_id: int = Field(..., description="Article interacted with")
    category_id: Optional[int] = Field(None, description="Category resolved via the article")
    interaction_type: InteractionType = Field(..., description="Kind of interaction")
    duration_ms: Optional[int] = Field(None, ge=0, description="Read time, views only")
    occurred_at: datetime = Field(..., description="When the interaction happened")

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True

    @model_validator(mode="after")
    def validate_duration(self) -> "InteractionEvent":
        """Only view events carry a duration."""
        if self.duration_ms is not None and self.interaction_type != InteractionType.VIEW:
            raise ValueError(
                f"duration_ms is only valid for view events, not {self.interaction_type.value}"
            )
        return self
