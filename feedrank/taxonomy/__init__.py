"""Category taxonomy index and cache."""

from .cache import TaxonomyCache
from .tree import CategoryTree

__all__ = ["CategoryTree", "TaxonomyCache"]
