"""Tests for the data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from feedrank.models import (
    ArticleCandidate,
    CandidateSource,
    ClickPrediction,
    FeedResult,
    InteractionEvent,
    InteractionType,
    UserCategoryPreference,
)

from .factories import NOW, make_article


class TestInteractionEvent:
    """Event validation."""

    def test_view_with_duration(self):
        event = InteractionEvent(
            user_id=1,
            article_id=2,
            interaction_type="view",
            duration_ms=45000,
            occurred_at=NOW,
        )
        assert event.interaction_type == InteractionType.VIEW
        assert event.duration_ms == 45000

    def test_duration_only_for_views(self):
        with pytest.raises(ValidationError):
            InteractionEvent(
                user_id=1,
                article_id=2,
                interaction_type="click",
                duration_ms=100,
                occurred_at=NOW,
            )

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            InteractionEvent(user_id=1, article_id=2, interaction_type="hover", occurred_at=NOW)

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            InteractionEvent(
                user_id=1, article_id=2, interaction_type="view", duration_ms=-1, occurred_at=NOW
            )

    def test_events_are_immutable(self):
        event = InteractionEvent(user_id=1, article_id=2, interaction_type="click", occurred_at=NOW)
        with pytest.raises(ValidationError):
            event.article_id = 3

    def test_passive_types(self):
        assert InteractionType.IMPRESSION.is_passive
        assert InteractionType.SCROLL_STOP.is_passive
        assert not InteractionType.CLICK.is_passive


class TestPreferenceModel:
    def test_ctr(self):
        pref = UserCategoryPreference(
            user_id=1, category_id=5, score=0.2, click_count=2, impression_count=40
        )
        assert pref.ctr == pytest.approx(0.05)

    def test_ctr_without_impressions(self):
        pref = UserCategoryPreference(user_id=1, category_id=5, score=0.2)
        assert pref.ctr == 0.0

    def test_score_bounded(self):
        with pytest.raises(ValidationError):
            UserCategoryPreference(user_id=1, category_id=5, score=1.5)


class TestCandidates:
    def test_from_ref_copies_fields(self):
        ref = make_article(7, 100, hours_ago=2, title="Cup final", vector=[1.0, 0.0])
        candidate = ArticleCandidate.from_ref(ref, CandidateSource.WILDCARD)

        assert candidate.article_id == 7
        assert candidate.category_id == 100
        assert candidate.title == "Cup final"
        assert candidate.vector == [1.0, 0.0]
        assert candidate.source == CandidateSource.WILDCARD

    def test_exploration_sources(self):
        assert CandidateSource.EXPLORATION_SIBLING.is_exploration
        assert CandidateSource.WILDCARD.is_exploration
        assert not CandidateSource.EXPLOITATION.is_exploration
        assert not CandidateSource.BREAKING.is_exploration
        assert not CandidateSource.FALLBACK.is_exploration

    def test_counts_by_source(self):
        items = [
            ArticleCandidate(article_id=1, source=CandidateSource.EXPLOITATION),
            ArticleCandidate(article_id=2, source=CandidateSource.EXPLOITATION),
            ArticleCandidate(article_id=3, source=CandidateSource.BREAKING),
        ]
        result = FeedResult(user_id=1, items=items, generated_at=datetime.now(timezone.utc))
        assert result.counts_by_source == {"exploitation": 2, "breaking": 1}

    def test_predicted_ctr_percentage(self):
        assert ClickPrediction(article_id=1, score=0.634).predicted_ctr == 63
