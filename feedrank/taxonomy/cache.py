"""Read-through TTL cache for the category tree."""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..models import CategoryNode
from ..store import TaxonomySource
from .tree import CategoryTree

logger = logging.getLogger(__name__)


class TaxonomyCache:
    """Caches the category tree with a TTL.

    A lookup for an unknown category forces a refresh, at most once per
    ``min_refresh_interval`` seconds. If a refresh fails the previous tree
    keeps being served.
    """

    def __init__(
        self,
        source: TaxonomySource,
        ttl_seconds: float = 300,
        min_refresh_interval: float = 10,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.min_refresh_interval = min_refresh_interval
        self.clock = clock
        self._tree: Optional[CategoryTree] = None
        self._expiry = 0.0
        self._last_miss_refresh: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def is_fresh(self) -> bool:
        return self._tree is not None and self.clock() < self._expiry

    def invalidate(self) -> None:
        """Expire the cached tree; the next read reloads it."""
        self._expiry = 0.0

    async def _refresh(self) -> CategoryTree:
        async with self._lock:
            # Another caller may have refreshed while we waited
            if self.is_fresh:
                return self._tree
            try:
                nodes = await self.source.get_category_tree()
            except Exception as e:
                if self._tree is None:
                    raise
                logger.warning(f"Taxonomy refresh failed, serving stale tree: {e}")
                return self._tree
            self._tree = CategoryTree(nodes)
            self._expiry = self.clock() + self.ttl_seconds
            logger.debug(f"Loaded {len(self._tree)} categories")
            return self._tree

    async def get_tree(self) -> CategoryTree:
        """Get the category tree, reloading it when expired."""
        if self.is_fresh:
            return self._tree
        return await self._refresh()

    async def lookup(self, category_id: int) -> Optional[CategoryNode]:
        """Find a category, refreshing once on a miss."""
        tree = await self.get_tree()
        node = tree.get(category_id)
        if node is not None or category_id in tree.invalid:
            return node

        now = self.clock()
        if self._last_miss_refresh is not None and now - self._last_miss_refresh < self.min_refresh_interval:
            return None

        self._last_miss_refresh = now
        self.invalidate()
        tree = await self._refresh()
        return tree.get(category_id)
