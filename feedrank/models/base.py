"""Base model class for engine models."""

from pydantic import BaseModel


class FeedModel(BaseModel):
    """Base model for all engine models."""

    class Config:
        """Pydantic config."""

        from_attributes = True
