"""Indexed view over the category forest."""

import logging
from typing import Dict, Iterable, List, Optional, Set

from ..models import CategoryNode

logger = logging.getLogger(__name__)


class CategoryTree:
    """Parent/child index over category nodes with cycle and level checks.

    Nodes that sit on a parent cycle, hang below one, or break the
    ``level(child) == level(parent) + 1`` rule are collected in ``invalid``
    and excluded from every traversal.
    """

    def __init__(self, nodes: Iterable[CategoryNode]) -> None:
        self.nodes: Dict[int, CategoryNode] = {n.id: n for n in nodes}
        self.invalid: Set[int] = set()
        self._children: Dict[int, List[int]] = {}

        self._find_cycles()
        self._check_levels()

        for node in self.nodes.values():
            if node.id in self.invalid or node.parent_id is None:
                continue
            if node.parent_id not in self.nodes:
                logger.warning(f"Category {node.id} references unknown parent {node.parent_id}")
                continue
            self._children.setdefault(node.parent_id, []).append(node.id)

    def _find_cycles(self) -> None:
        for start in self.nodes:
            if start in self.invalid:
                continue
            seen: List[int] = []
            current: Optional[int] = start
            while current is not None and current in self.nodes:
                if current in self.invalid:
                    self.invalid.update(seen)
                    break
                if current in seen:
                    cycle = seen[seen.index(current):]
                    logger.warning(f"Category cycle detected: {cycle}")
                    self.invalid.update(seen)
                    break
                seen.append(current)
                current = self.nodes[current].parent_id

    def _check_levels(self) -> None:
        for node in self.nodes.values():
            if node.id in self.invalid:
                continue
            if node.parent_id is None:
                if node.level != 1:
                    logger.warning(f"Root category {node.id} has level {node.level}, expected 1")
                    self.invalid.add(node.id)
                continue
            parent = self.nodes.get(node.parent_id)
            if parent is not None and node.level != parent.level + 1:
                logger.warning(
                    f"Category {node.id} has level {node.level} but parent "
                    f"{parent.id} has level {parent.level}"
                )
                self.invalid.add(node.id)

        # Descendants of an excluded node are excluded with it
        changed = True
        while changed:
            changed = False
            for node in self.nodes.values():
                if node.id not in self.invalid and node.parent_id in self.invalid:
                    self.invalid.add(node.id)
                    changed = True

    def __contains__(self, category_id: object) -> bool:
        return category_id in self.nodes and category_id not in self.invalid

    def __len__(self) -> int:
        return len(self.nodes) - len(self.invalid)

    @property
    def ids(self) -> Set[int]:
        """IDs of all valid categories."""
        return set(self.nodes) - self.invalid

    def get(self, category_id: int) -> Optional[CategoryNode]:
        """Get a valid node by ID."""
        if category_id not in self:
            return None
        return self.nodes[category_id]

    def is_valid(self, category_id: int) -> bool:
        """Whether a category may be scored."""
        return category_id not in self.invalid

    def level(self, category_id: int) -> Optional[int]:
        node = self.get(category_id)
        return node.level if node else None

    def parent(self, category_id: int) -> Optional[int]:
        node = self.get(category_id)
        if node is None or node.parent_id not in self:
            return None
        return node.parent_id

    def children(self, category_id: int) -> List[int]:
        return list(self._children.get(category_id, []))

    def siblings(self, category_id: int) -> List[int]:
        """Other children of the same parent."""
        parent = self.parent(category_id)
        if parent is None:
            return []
        return [c for c in self.children(parent) if c != category_id]

    def ancestors(self, category_id: int) -> List[int]:
        """Ancestors, nearest first."""
        chain = []
        current = self.parent(category_id)
        while current is not None:
            chain.append(current)
            current = self.parent(current)
        return chain

    def descendants(self, category_id: int) -> List[int]:
        found = []
        stack = self.children(category_id)
        while stack:
            current = stack.pop()
            found.append(current)
            stack.extend(self.children(current))
        return found
