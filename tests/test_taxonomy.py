"""Tests for the category tree and its cache."""

import pytest

from feedrank.models import CategoryNode
from feedrank.store import TaxonomySource
from feedrank.taxonomy import CategoryTree, TaxonomyCache

from .factories import (
    AI,
    BALL_SPORTS,
    BASKETBALL,
    F1,
    FOOTBALL,
    MOTORSPORT,
    RALLY,
    SPORTS,
    TENNIS,
    category_nodes,
)


class FakeSource(TaxonomySource):
    def __init__(self, nodes):
        self.nodes = list(nodes)
        self.calls = 0
        self.fail = False

    async def get_category_tree(self):
        self.calls += 1
        if self.fail:
            raise ConnectionError("taxonomy service down")
        return list(self.nodes)


class FakeClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self):
        return self.value


class TestCategoryTree:
    """Navigation over a valid forest."""

    def test_parent_and_children(self, tree):
        assert tree.parent(FOOTBALL) == BALL_SPORTS
        assert tree.parent(SPORTS) is None
        assert sorted(tree.children(BALL_SPORTS)) == [FOOTBALL, BASKETBALL, TENNIS]

    def test_siblings(self, tree):
        assert sorted(tree.siblings(FOOTBALL)) == [BASKETBALL, TENNIS]
        assert tree.siblings(SPORTS) == []

    def test_ancestors_nearest_first(self, tree):
        assert tree.ancestors(FOOTBALL) == [BALL_SPORTS, SPORTS]

    def test_descendants(self, tree):
        assert sorted(tree.descendants(MOTORSPORT)) == [F1, RALLY]
        assert len(tree.descendants(SPORTS)) == 7

    def test_levels(self, tree):
        assert tree.level(SPORTS) == 1
        assert tree.level(AI) == 2
        assert tree.level(FOOTBALL) == 3
        assert tree.level(9999) is None

    def test_unknown_category(self, tree):
        assert 9999 not in tree
        assert tree.get(9999) is None
        assert tree.is_valid(9999)


class TestInvalidTrees:
    """Cycles and level mismatches are excluded, not fatal."""

    def test_cycle_excluded(self):
        nodes = category_nodes() + [
            CategoryNode(id=500, parent_id=501, level=2, name="Loop A"),
            CategoryNode(id=501, parent_id=500, level=3, name="Loop B"),
        ]
        tree = CategoryTree(nodes)
        assert {500, 501} <= tree.invalid
        assert not tree.is_valid(500)
        assert FOOTBALL in tree

    def test_level_mismatch_excludes_subtree(self):
        nodes = category_nodes() + [
            CategoryNode(id=600, parent_id=SPORTS, level=3, name="Wrong level"),
            CategoryNode(id=601, parent_id=600, level=3, name="Below wrong level"),
        ]
        tree = CategoryTree(nodes)
        assert 600 in tree.invalid
        assert 601 in tree.invalid
        assert 600 not in tree.children(SPORTS)

    def test_root_must_be_level_one(self):
        tree = CategoryTree([CategoryNode(id=7, parent_id=None, level=2, name="Orphan")])
        assert 7 in tree.invalid
        assert 7 not in tree
        assert len(tree) == 0


class TestTaxonomyCache:
    """TTL, rate-limited refresh on miss and stale serving."""

    @pytest.mark.asyncio
    async def test_cached_within_ttl(self):
        source = FakeSource(category_nodes())
        clock = FakeClock()
        cache = TaxonomyCache(source, ttl_seconds=300, clock=clock)

        await cache.get_tree()
        clock.value += 100
        await cache.get_tree()
        assert source.calls == 1

        clock.value += 300
        await cache.get_tree()
        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_lookup_miss_refreshes_once_per_interval(self):
        source = FakeSource(category_nodes())
        clock = FakeClock()
        cache = TaxonomyCache(source, ttl_seconds=300, min_refresh_interval=10, clock=clock)

        await cache.get_tree()
        clock.value += 20
        source.nodes.append(CategoryNode(id=900, parent_id=None, level=1, name="Science"))

        node = await cache.lookup(900)
        assert node is not None and node.name == "Science"
        assert source.calls == 2

        # A second miss right away does not hit the source again
        assert await cache.lookup(901) is None
        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_lookup_miss_right_after_load_refreshes(self):
        source = FakeSource(category_nodes())
        clock = FakeClock()
        cache = TaxonomyCache(source, ttl_seconds=300, min_refresh_interval=10, clock=clock)

        await cache.get_tree()
        source.nodes.append(CategoryNode(id=112, parent_id=MOTORSPORT, level=3, name="Karting"))

        node = await cache.lookup(112)
        assert node is not None and node.parent_id == MOTORSPORT
        assert source.calls == 2

    @pytest.mark.asyncio
    async def test_serves_stale_tree_on_failure(self):
        source = FakeSource(category_nodes())
        clock = FakeClock()
        cache = TaxonomyCache(source, ttl_seconds=300, clock=clock)

        first = await cache.get_tree()
        source.fail = True
        clock.value += 600
        assert await cache.get_tree() is first

    @pytest.mark.asyncio
    async def test_raises_without_any_tree(self):
        source = FakeSource([])
        source.fail = True
        cache = TaxonomyCache(source, clock=FakeClock())
        with pytest.raises(ConnectionError):
            await cache.get_tree()
