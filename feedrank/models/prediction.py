"""Click prediction results."""

from typing import List, Optional

from pydantic import Field

from .base import FeedModel


class PredictionFactor(FeedModel):
    """One signal that moved a click prediction."""

    type: str = Field(..., description="Factor name, e.g. similarity or trigger_urgency")
    value: Optional[float] = Field(None, description="Raw signal value")
    contribution: float = Field(0.0, description="Additive contribution or multiplier")
    matched: List[str] = Field(default_factory=list, description="Matched keywords, if any")


class ClickPrediction(FeedModel):
    """Estimated click probability for one article."""

    article_id: int
    score: float = Field(..., ge=0.0, le=1.0)
    authoritative: bool = Field(True, description="False when the neutral fallback was used")
    reason: Optional[str] = None
    factors: List[PredictionFactor] = Field(default_factory=list)

    @property
    def predicted_ctr(self) -> int:
        """Score as a rounded percentage."""
        return round(self.score * 100)
