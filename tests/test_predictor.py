"""Tests for click prediction and profile building."""

import random

import pytest

from feedrank.config import PredictorConfig
from feedrank.models import ArticleCandidate, EngagementTriggers, InteractionType, UserProfile
from feedrank.prediction import ClickPredictor, ProfileBuilder

from .factories import FOOTBALL, NOW, POLITICS, make_article, make_event


@pytest.fixture
def predictor():
    return ClickPredictor(PredictorConfig(), rng=random.Random(7))


def ready_profile(**kwargs):
    return UserProfile(user_id=1, prediction_enabled=True, total_interactions=2000, **kwargs)


def candidate(article_id=1, title="Plain headline", vector=None, category_id=FOOTBALL):
    return ArticleCandidate(article_id=article_id, title=title, vector=vector, category_id=category_id)


class TestPredict:
    """Neutral fallbacks and signal combination."""

    def test_no_profile(self, predictor):
        prediction = predictor.predict(candidate(), None)
        assert prediction.score == 0.5
        assert not prediction.authoritative
        assert prediction.reason == "no_profile"

    def test_not_ready(self, predictor):
        profile = UserProfile(user_id=1, prediction_enabled=False)
        prediction = predictor.predict(candidate(), profile)
        assert prediction.reason == "not_ready"
        assert not predictor.is_ready(profile)

    def test_no_signal(self, predictor):
        prediction = predictor.predict(candidate(), ready_profile())
        assert prediction.score == 0.5
        assert prediction.reason == "no_signal"

    def test_similarity(self, predictor):
        profile = ready_profile(profile_vector=[1.0, 0.0])
        close = predictor.predict(candidate(vector=[1.0, 0.0]), profile)
        far = predictor.predict(candidate(vector=[0.0, 1.0]), profile)

        assert close.score == pytest.approx(0.9)
        assert far.score == pytest.approx(0.1)
        assert close.authoritative

    def test_triggers_capped(self, predictor):
        profile = ready_profile(
            triggers=EngagementTriggers(urgency_multiplier=1.4, numbers_multiplier=1.3, enabled=True)
        )
        prediction = predictor.predict(candidate(title="Breaking: 3 injured"), profile)
        assert prediction.score == pytest.approx(0.5 * 1.5)

    def test_disabled_triggers_ignored(self, predictor):
        profile = ready_profile(
            profile_vector=[1.0, 0.0],
            triggers=EngagementTriggers(urgency_multiplier=1.4, enabled=False),
        )
        prediction = predictor.predict(candidate(title="Breaking news", vector=[1.0, 0.0]), profile)
        assert prediction.score == pytest.approx(0.9)

    def test_keywords_and_category(self, predictor):
        profile = ready_profile(
            triggers=EngagementTriggers(high_ctr_keywords=["transfer", "football"])
        )
        prediction = predictor.predict(candidate(title="Football transfer window"), profile, 0.9)

        assert prediction.score == pytest.approx(0.5 + 0.1 + 0.4 * 0.15 * 2)
        keyword_factor = next(f for f in prediction.factors if f.type == "keywords")
        assert keyword_factor.matched == ["football", "transfer"]

    def test_clamped(self, predictor):
        profile = ready_profile(
            profile_vector=[1.0, 0.0],
            triggers=EngagementTriggers(urgency_multiplier=2.0, enabled=True, high_ctr_keywords=["breaking"]),
        )
        prediction = predictor.predict(candidate(title="Breaking", vector=[1.0, 0.0]), profile, 1.0)
        assert prediction.score == 0.95


class TestRank:
    def test_orders_by_prediction(self, predictor):
        profile = ready_profile(profile_vector=[1.0, 0.0])
        ranked = predictor.rank(
            [
                candidate(1, vector=[0.0, 1.0]),
                candidate(2, vector=[1.0, 0.0]),
                candidate(3, vector=[0.7, 0.7]),
            ],
            profile,
        )
        assert [c.article_id for c in ranked] == [2, 3, 1]
        assert all(c.prediction is not None for c in ranked)

    def test_uses_category_preferences(self, predictor):
        profile = ready_profile()
        ranked = predictor.rank(
            [candidate(1, category_id=POLITICS), candidate(2, category_id=FOOTBALL)],
            profile,
            {FOOTBALL: 0.9, POLITICS: 0.05},
        )
        assert ranked[0].article_id == 2


class TestProfileBuilder:
    """Profiles learned from the ledger."""

    @pytest.mark.asyncio
    async def test_profile_vector_is_mean_of_clicks(self, store):
        store.add_article(make_article(1, FOOTBALL, vector=[1.0, 0.0]))
        store.add_article(make_article(2, FOOTBALL, vector=[0.0, 1.0]))
        store.add_article(make_article(3, FOOTBALL, vector=[5.0, 5.0]))
        events = [
            make_event(1, FOOTBALL, days_ago=2),
            make_event(2, FOOTBALL, days_ago=1),
            make_event(3, FOOTBALL, InteractionType.IMPRESSION),
        ]
        builder = ProfileBuilder(store, PredictorConfig())
        profile = await builder.build(1, events, total_interactions=3, now=NOW)

        assert profile.profile_vector == pytest.approx([0.5, 0.5])
        assert profile.total_clicks == 2
        assert profile.total_interactions == 3
        assert not profile.prediction_enabled
        assert profile.updated_at == NOW

    @pytest.mark.asyncio
    async def test_vector_uses_most_recent_clicks(self, store):
        config = PredictorConfig(profile_vector_clicks=1)
        store.add_article(make_article(1, FOOTBALL, vector=[1.0, 0.0]))
        store.add_article(make_article(2, FOOTBALL, vector=[0.0, 1.0]))
        events = [make_event(1, FOOTBALL, days_ago=2), make_event(2, FOOTBALL, days_ago=1)]

        profile = await ProfileBuilder(store, config).build(1, events, 2, NOW)
        assert profile.profile_vector == [0.0, 1.0]

    @pytest.mark.asyncio
    async def test_prediction_enabled_with_history(self, store):
        profile = await ProfileBuilder(store, PredictorConfig()).build(1, [], 1500, NOW)
        assert profile.prediction_enabled
        assert profile.profile_vector is None

    @pytest.mark.asyncio
    async def test_keywords_from_clicks_and_impressions(self, store):
        store.add_article(make_article(1, FOOTBALL, title="Transfer deadline drama"))
        store.add_article(make_article(2, FOOTBALL, title="Transfer deadline drama"))
        store.add_article(make_article(3, POLITICS, title="Budget debate continues"))
        events = [
            make_event(1, FOOTBALL),
            make_event(2, FOOTBALL),
            make_event(3, POLITICS, InteractionType.IMPRESSION),
        ]
        profile = await ProfileBuilder(store, PredictorConfig()).build(1, events, 3, NOW)
        assert "transfer" in profile.triggers.high_ctr_keywords
        assert "budget" not in profile.triggers.high_ctr_keywords
