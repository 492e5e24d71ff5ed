"""Tests for title analysis and trigger learning."""

import pytest

from feedrank.config import PredictorConfig
from feedrank.prediction import TitleAnalyzer, normalize


@pytest.fixture
def analyzer():
    return TitleAnalyzer(PredictorConfig())


class TestTitleAnalysis:
    def test_normalize_strips_accents(self):
        assert normalize("Économie Française") == "economie francaise"

    def test_all_traits(self, analyzer):
        traits = analyzer.traits("BREAKING: 5 things revealed in scandal")
        assert traits == {
            "urgency": True,
            "numbers": True,
            "controversy": True,
            "exclusivity": True,
        }

    def test_plain_title(self, analyzer):
        assert not any(analyzer.traits("Council approves new park").values())

    def test_words_match_at_word_start(self, analyzer):
        # "live" inside "delivered" is not urgency
        assert not analyzer.traits("Parcel delivered on time")["urgency"]
        assert analyzer.traits("Live: election night")["urgency"]
        assert analyzer.traits("A controversial decision")["controversy"]

    def test_keywords(self, analyzer):
        assert analyzer.keywords("Which countries would benefit") == ["countries", "benefit"]
        assert analyzer.keywords("L'économie française résiste") == ["economie", "francaise", "resiste"]

    def test_keywords_capped_per_title(self, analyzer):
        title = "alpha1 bravo2 charlie delta4 echo55 foxtrot golfer"
        assert len(analyzer.keywords(title)) == 5

    def test_catchiness(self, analyzer):
        assert analyzer.catchiness("Exclusive: urgent update") == 6
        assert analyzer.catchiness("Weather stays mild") == 0


class TestLearnTriggers:
    """Multipliers and high-CTR keywords from click history."""

    def test_multiplier(self, analyzer):
        assert analyzer.multiplier(0.1) == 1.0
        assert analyzer.multiplier(0.25) == 1.0
        assert analyzer.multiplier(0.75) == pytest.approx(2.0)

    def test_urgency_learned(self, analyzer):
        clicked = ["Breaking: markets fall"] * 40 + ["Gardening tips for spring"] * 20
        triggers = analyzer.learn_triggers(clicked)

        assert triggers.enabled
        assert triggers.urgency_multiplier == pytest.approx(1 + (40 / 60 - 0.25) * 2)
        assert triggers.numbers_multiplier == 1.0

    def test_disabled_below_click_threshold(self, analyzer):
        triggers = analyzer.learn_triggers(["Breaking: markets fall"] * 10)
        assert not triggers.enabled

    def test_high_ctr_keywords(self, analyzer):
        clicked = ["Football transfer rumours"] * 10 + ["Election results analysis"] * 10
        shown = ["Election results analysis"] * 30
        triggers = analyzer.learn_triggers(clicked, shown)

        keywords = triggers.high_ctr_keywords
        assert set(keywords[:3]) == {"football", "transfer", "rumours"}
        assert keywords.index("election") > 2

    def test_keyword_needs_repeat_clicks(self, analyzer):
        triggers = analyzer.learn_triggers(["Volcano erupts overnight"])
        assert triggers.high_ctr_keywords == []
