"""Tests for candidate scoring."""

from datetime import timedelta

import pytest

from feedrank.config import ScoringConfig
from feedrank.models import ArticleCandidate
from feedrank.ranking import (
    CandidateScorer,
    CategoryAffinityScorer,
    SimilarityScorer,
    build_freshness_scorer,
)

from .factories import FOOTBALL, NOW, POLITICS


def candidate(article_id=1, category_id=FOOTBALL, hours_ago=2.0, similarity=None):
    return ArticleCandidate(
        article_id=article_id,
        category_id=category_id,
        published_at=NOW - timedelta(hours=hours_ago) if hours_ago is not None else None,
        similarity=similarity,
    )


class TestFreshnessScorer:
    """Step function over article age."""

    @pytest.fixture
    def scorer(self):
        return build_freshness_scorer(ScoringConfig())

    @pytest.mark.parametrize(
        "hours,expected",
        [(0.5, 1.0), (2, 0.95), (5, 0.9), (10, 0.8), (20, 0.7), (30, 0.5), (60, 0.3), (100, 0.1)],
    )
    def test_bands(self, scorer, hours, expected):
        assert scorer.score_age(hours) == expected

    def test_unknown_age(self, scorer):
        assert scorer.score(candidate(hours_ago=None), {"now": NOW}) == 0.5

    def test_uses_reference_time(self, scorer):
        assert scorer.score(candidate(hours_ago=0.5), {"now": NOW}) == 1.0
        assert scorer.score(candidate(hours_ago=0.5), {"now": NOW + timedelta(days=5)}) == 0.1


class TestComponentScorers:
    def test_category_default_for_unknown(self):
        scorer = CategoryAffinityScorer({FOOTBALL: 0.7}, default=0.3)
        assert scorer.score(candidate(category_id=FOOTBALL)) == 0.7
        assert scorer.score(candidate(category_id=POLITICS)) == 0.3
        assert scorer.score(candidate(category_id=None)) == 0.3

    def test_similarity_clamped(self):
        scorer = SimilarityScorer()
        assert scorer.score(candidate(similarity=-0.4)) == 0.0
        assert scorer.score(candidate(similarity=0.6)) == 0.6
        assert scorer.score(candidate(similarity=None)) == 0.0


class TestCandidateScorer:
    """Composite weights with and without similarity."""

    def test_without_similarity(self):
        scorer = CandidateScorer(ScoringConfig(), {FOOTBALL: 0.5}, NOW)
        scored = scorer.score_candidate(candidate(hours_ago=0.5))
        assert scored.score == pytest.approx(0.5 * 0.6 + 1.0 * 0.4)
        assert set(scored.score_breakdown) == {"category", "freshness"}

    def test_with_similarity(self):
        scorer = CandidateScorer(ScoringConfig(), {FOOTBALL: 0.5}, NOW)
        scored = scorer.score_candidate(candidate(hours_ago=0.5, similarity=0.9))
        assert scored.score == pytest.approx(0.5 * 0.4 + 0.9 * 0.3 + 1.0 * 0.3)
        assert scored.score_breakdown["similarity"] == 0.9

    def test_score_all_sorted(self):
        scorer = CandidateScorer(ScoringConfig(), {FOOTBALL: 0.9, POLITICS: 0.1}, NOW)
        ranked = scorer.score_all([
            candidate(1, POLITICS, hours_ago=1),
            candidate(2, FOOTBALL, hours_ago=1),
            candidate(3, FOOTBALL, hours_ago=80),
        ])
        assert [c.article_id for c in ranked] == [2, 3, 1]
        assert ranked[0].score >= ranked[1].score >= ranked[2].score

    def test_explanation_set(self):
        scorer = CandidateScorer(ScoringConfig(), {FOOTBALL: 0.9}, NOW)
        scored = scorer.score_candidate(candidate(hours_ago=0.5))
        assert "favourite category" in scored.explanation
        assert "just published" in scored.explanation

    def test_existing_explanation_kept(self):
        scorer = CandidateScorer(ScoringConfig(), {}, NOW)
        original = candidate().model_copy(update={"explanation": "Breaking news"})
        assert scorer.score_candidate(original).explanation == "Breaking news"
