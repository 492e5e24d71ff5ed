"""Tests for feed assembly."""

import pytest

from feedrank.config import EngineConfig
from feedrank.feed import FeedAssembler
from feedrank.models import ArticleCandidate, CandidateSource


def pool(source, start, count, categories, score=0.5):
    return [
        ArticleCandidate(
            article_id=start + i,
            category_id=categories[i % len(categories)],
            source=source,
            score=score - i * 0.001,
        )
        for i in range(count)
    ]


@pytest.fixture
def assembler(rng):
    return FeedAssembler(EngineConfig(), rng=rng)


@pytest.fixture
def pools():
    return {
        "exploitation": pool(CandidateSource.EXPLOITATION, 1, 120, list(range(100, 110))),
        "exploration": {
            CandidateSource.EXPLORATION_SIBLING: pool(CandidateSource.EXPLORATION_SIBLING, 1000, 20, [201, 202, 203]),
            CandidateSource.EXPLORATION_PARENT: pool(CandidateSource.EXPLORATION_PARENT, 2000, 20, [301, 302]),
            CandidateSource.EXPLORATION_TRENDING: pool(CandidateSource.EXPLORATION_TRENDING, 3000, 20, [401, 402]),
        },
        "wildcards": pool(CandidateSource.WILDCARD, 4000, 10, [501, 502, 503]),
        "fallback": pool(CandidateSource.FALLBACK, 5000, 60, [601, 602, 603, 604]),
    }


class TestSlotPlan:
    def test_exploration_share(self, assembler):
        plan = assembler.slot_plan(50)
        assert len(plan) == 50
        assert sum(plan) == 10

    def test_exploration_spread_evenly(self, assembler):
        plan = assembler.slot_plan(50)
        positions = [i for i, explore in enumerate(plan) if explore]
        assert positions == list(range(4, 50, 5))

    def test_empty(self, assembler):
        assert assembler.slot_plan(0) == []


class TestInterleave:
    def test_follows_strategy_ratios(self, assembler, pools):
        merged = assembler.interleave(pools["exploration"])
        first_ten = [c.source for c in merged[:10]]
        assert first_ten.count(CandidateSource.EXPLORATION_SIBLING) == 5
        assert first_ten.count(CandidateSource.EXPLORATION_PARENT) == 3
        assert first_ten.count(CandidateSource.EXPLORATION_TRENDING) == 2
        assert len(merged) == 60

    def test_drains_remaining_pool(self, assembler):
        merged = assembler.interleave({
            CandidateSource.EXPLORATION_PARENT: pool(CandidateSource.EXPLORATION_PARENT, 1, 4, [1, 2]),
        })
        assert len(merged) == 4


class TestAssemble:
    """Ratio, breaking slots, wildcards, diversity and fallbacks."""

    def test_exploitation_exploration_ratio(self, assembler, pools):
        feed = assembler.assemble(50, **pools)
        exploitation = sum(1 for c in feed if c.source == CandidateSource.EXPLOITATION)
        exploration = sum(1 for c in feed if c.source.is_exploration)

        assert len(feed) == 50
        assert abs(exploitation - 40) <= 2
        assert abs(exploration - 10) <= 2

    def test_breaking_on_top(self, assembler, pools):
        breaking = pool(CandidateSource.BREAKING, 9000, 3, [701, 702, 703])
        feed = assembler.assemble(50, breaking=breaking, **pools)

        assert [c.source for c in feed[:2]] == [CandidateSource.BREAKING] * 2
        assert sum(1 for c in feed if c.source == CandidateSource.BREAKING) == 2
        assert len(feed) == 50

    def test_wildcard_after_exploitation_run(self, assembler, pools):
        feed = assembler.assemble(50, shuffle=False, **pools)
        assert feed[4].source == CandidateSource.EXPLORATION_SIBLING
        assert feed[9].source == CandidateSource.WILDCARD

    def test_diversity_window_respected(self, assembler, pools):
        feed = assembler.assemble(50, **pools)
        assert assembler.diversifier.is_valid(feed)

    def test_no_duplicates(self, assembler, pools):
        exploitation = pools["exploitation"]
        pools["fallback"] = pools["fallback"] + exploitation[:10]
        feed = assembler.assemble(100, **pools)
        ids = [c.article_id for c in feed]
        assert len(ids) == len(set(ids))

    def test_fallback_fills_gaps(self, assembler, pools):
        feed = assembler.assemble(
            20,
            exploitation=pools["exploitation"][:5],
            fallback=pools["fallback"],
        )
        assert len(feed) == 20
        assert any(c.source == CandidateSource.FALLBACK for c in feed)

    def test_short_feed_when_content_runs_out(self, assembler):
        feed = assembler.assemble(10, exploitation=pool(CandidateSource.EXPLOITATION, 1, 4, [1, 2]))
        assert len(feed) == 4

    def test_positions_and_explanations(self, assembler, pools):
        feed = assembler.assemble(30, **pools)
        assert [c.position for c in feed] == list(range(30))
        for item in feed:
            if item.source.is_exploration:
                assert item.explanation


class TestShuffle:
    def test_only_window_moves(self, assembler, pools):
        feed = pools["exploitation"][:30]
        shuffled = assembler.shuffle_window(feed)

        assert shuffled[:5] == feed[:5]
        assert shuffled[20:] == feed[20:]
        assert {c.article_id for c in shuffled[5:20]} == {c.article_id for c in feed[5:20]}

    def test_short_feed_untouched(self, assembler):
        feed = pool(CandidateSource.EXPLOITATION, 1, 5, [1, 2])
        assert assembler.shuffle_window(feed) == feed

    def test_keeps_diversity(self, assembler):
        feed = pool(CandidateSource.EXPLOITATION, 1, 25, [1, 2])
        assert assembler.diversifier.is_valid(assembler.shuffle_window(feed))
