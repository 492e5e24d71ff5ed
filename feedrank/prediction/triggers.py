"""Title traits and keywords that drive engagement."""

import re
import unicodedata
from typing import Dict, Iterable, List, Optional

from ..config import PredictorConfig
from ..models import EngagementTriggers

STOPWORDS = frozenset([
    "about", "after", "again", "against", "among", "another", "around", "because",
    "before", "being", "below", "between", "could", "doing", "during", "every",
    "first", "their", "there", "these", "thing", "those", "three", "through",
    "under", "until", "where", "which", "while", "whose", "would", "years",
    "should", "since", "still", "other", "others", "today", "says",
    "might", "shall", "never", "always", "within", "without",
])

TRAITS = ("urgency", "numbers", "controversy", "exclusivity")

_WORD_RE = re.compile(r"[a-z0-9]+")
_DIGIT_RE = re.compile(r"\d+")


def normalize(text: str) -> str:
    """Lowercase and strip accents."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


class TitleAnalyzer:
    """Detects engagement traits in titles and learns per-user multipliers."""

    def __init__(self, config: Optional[PredictorConfig] = None) -> None:
        self.config = config or PredictorConfig()
        self._patterns = {
            "urgency": self._compile(self.config.urgency_words),
            "controversy": self._compile(self.config.controversy_words),
            "exclusivity": self._compile(self.config.exclusivity_words),
        }

    @staticmethod
    def _compile(words: Iterable[str]) -> Optional[re.Pattern]:
        words = [normalize(w) for w in words if w]
        if not words:
            return None
        # Word-start anchored so stems like "controvers" still match
        return re.compile(r"\b(?:" + "|".join(re.escape(w) for w in words) + ")")

    def traits(self, title: str) -> Dict[str, bool]:
        """Which engagement traits a title exhibits."""
        text = normalize(title)
        found = {"numbers": bool(_DIGIT_RE.search(text))}
        for trait, pattern in self._patterns.items():
            found[trait] = bool(pattern and pattern.search(text))
        return found

    def words(self, title: str) -> List[str]:
        """Normalized words of a title."""
        return _WORD_RE.findall(normalize(title))

    def keywords(self, title: str) -> List[str]:
        """Significant words of a title, first ones only."""
        result = []
        for word in self.words(title):
            if len(word) < self.config.min_keyword_length or word in STOPWORDS:
                continue
            if word not in result:
                result.append(word)
            if len(result) >= self.config.keywords_per_title:
                break
        return result

    def catchiness(self, title: str) -> int:
        """Attention score of a title from the configured catchy words."""
        text = normalize(title)
        return sum(
            weight for word, weight in self.config.catchy_words.items()
            if normalize(word) in text
        )

    def multiplier(self, rate: float) -> float:
        """Multiplier for a trait clicked at the given rate."""
        baseline = self.config.trigger_baseline
        if rate <= baseline:
            return 1.0
        return 1.0 + (rate - baseline) * 2

    def learn_triggers(
        self,
        clicked_titles: List[str],
        shown_titles: Iterable[str] = (),
    ) -> EngagementTriggers:
        """
        Learn trigger multipliers and high-CTR keywords.

        Args:
            clicked_titles: Titles of clicked articles, one per click
            shown_titles: Titles of articles shown without a click

        Returns:
            Engagement triggers, enabled once enough clicks are known
        """
        total = len(clicked_titles)
        counts = {trait: 0 for trait in TRAITS}
        keyword_clicks: Dict[str, int] = {}
        keyword_shown: Dict[str, int] = {}

        for title in clicked_titles:
            for trait, present in self.traits(title).items():
                if present:
                    counts[trait] += 1
            for word in self.keywords(title):
                keyword_clicks[word] = keyword_clicks.get(word, 0) + 1

        for title in shown_titles:
            for word in self.keywords(title):
                keyword_shown[word] = keyword_shown.get(word, 0) + 1

        rates = {trait: (counts[trait] / total if total else 0.0) for trait in TRAITS}

        ranked = []
        for word, clicks in keyword_clicks.items():
            if clicks < self.config.keyword_min_clicks:
                continue
            ctr = clicks / (clicks + keyword_shown.get(word, 0))
            ranked.append((ctr, clicks, word))
        ranked.sort(key=lambda r: (-r[0], -r[1], r[2]))

        return EngagementTriggers(
            urgency_multiplier=self.multiplier(rates["urgency"]),
            numbers_multiplier=self.multiplier(rates["numbers"]),
            controversy_multiplier=self.multiplier(rates["controversy"]),
            exclusivity_multiplier=self.multiplier(rates["exclusivity"]),
            high_ctr_keywords=[word for _, _, word in ranked[: self.config.keyword_limit]],
            enabled=total >= self.config.min_clicks_for_triggers,
        )
