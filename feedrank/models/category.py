"""Category taxonomy node."""

from typing import Optional

from pydantic import Field

from .base import FeedModel


class CategoryNode(FeedModel):
    """Node of the three-level category forest."""

    id: int = Field(..., description="Category ID")
    parent_id: Optional[int] = Field(None, description="Parent category, None for roots")
    level: int = Field(..., ge=1, le=3, description="Hierarchy level, 1 is broadest")
    name: str = Field("", description="Display name")
    slug: Optional[str] = Field(None, description="URL slug")
    path: Optional[str] = Field(None, description="Slash-separated slug path from the root")
