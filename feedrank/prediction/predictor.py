"""Click-probability predictor used to re-rank an assembled feed."""

import logging
import math
import random
from typing import Dict, List, Optional

from ..config import PredictorConfig
from ..models import ArticleCandidate, ClickPrediction, PredictionFactor, UserProfile
from ..vectors import cosine_similarity
from .triggers import TitleAnalyzer

logger = logging.getLogger(__name__)


class ClickPredictor:
    """Estimates the probability that a user clicks a candidate.

    Starting from a neutral 0.5 the score is moved by profile similarity,
    multiplied by learned title triggers, boosted by high-CTR keywords and
    moved by category preference, then clamped. When the user is not ready
    or no signal applies the neutral score is returned as non-authoritative.
    """

    def __init__(
        self,
        config: Optional[PredictorConfig] = None,
        analyzer: Optional[TitleAnalyzer] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or PredictorConfig()
        self.analyzer = analyzer or TitleAnalyzer(self.config)
        self.rng = rng or random.Random()

    def is_ready(self, profile: Optional[UserProfile]) -> bool:
        """Whether predictions for this user are trusted."""
        return profile is not None and profile.prediction_enabled

    def _neutral(self, candidate: ArticleCandidate, reason: str) -> ClickPrediction:
        return ClickPrediction(
            article_id=candidate.article_id,
            score=self.config.base_score,
            authoritative=False,
            reason=reason,
        )

    def predict(
        self,
        candidate: ArticleCandidate,
        profile: Optional[UserProfile],
        category_preference: Optional[float] = None,
    ) -> ClickPrediction:
        """Predict click probability for one candidate. Never raises on missing signals."""
        if profile is None:
            return self._neutral(candidate, "no_profile")
        if not profile.prediction_enabled:
            return self._neutral(candidate, "not_ready")

        cfg = self.config
        score = cfg.base_score
        factors: List[PredictionFactor] = []

        if profile.profile_vector and candidate.vector:
            similarity = cosine_similarity(profile.profile_vector, candidate.vector)
            contribution = (similarity - 0.5) * cfg.similarity_weight * 2
            score += contribution
            factors.append(PredictionFactor(type="similarity", value=similarity, contribution=contribution))

        triggers = profile.triggers
        if triggers.enabled and candidate.title:
            traits = self.analyzer.traits(candidate.title)
            multiplier = 1.0
            for trait in ("urgency", "numbers", "controversy", "exclusivity"):
                if not traits[trait]:
                    continue
                trait_multiplier = getattr(triggers, f"{trait}_multiplier")
                multiplier *= trait_multiplier
                factors.append(PredictionFactor(type=f"trigger_{trait}", contribution=trait_multiplier))
            multiplier = min(cfg.trigger_cap, multiplier)
            score *= multiplier

        if triggers.high_ctr_keywords and candidate.title:
            keywords = set(triggers.high_ctr_keywords)
            matched = [w for w in self.analyzer.words(candidate.title) if w in keywords]
            if matched:
                boost = min(cfg.keyword_boost_cap, len(matched) * cfg.keyword_boost_per_match)
                score += boost
                factors.append(PredictionFactor(type="keywords", contribution=boost, matched=matched))

        if category_preference is not None:
            contribution = (category_preference - 0.5) * cfg.category_weight * 2
            score += contribution
            factors.append(
                PredictionFactor(type="category", value=category_preference, contribution=contribution)
            )

        if not factors:
            return self._neutral(candidate, "no_signal")
        if not math.isfinite(score):
            logger.warning(f"Non-finite prediction for article {candidate.article_id}, using neutral score")
            return self._neutral(candidate, "invalid_score")

        return ClickPrediction(
            article_id=candidate.article_id,
            score=max(cfg.min_score, min(cfg.max_score, score)),
            authoritative=True,
            factors=factors,
        )

    def rank(
        self,
        candidates: List[ArticleCandidate],
        profile: Optional[UserProfile],
        preferences: Optional[Dict[int, float]] = None,
    ) -> List[ArticleCandidate]:
        """
        Attach predictions and order candidates by them, with small jitter.

        Args:
            candidates: Candidates to rank
            profile: User profile
            preferences: Category ID to preference score

        Returns:
            Copies of the candidates, most likely click first
        """
        preferences = preferences or {}
        predicted = []
        for candidate in candidates:
            prediction = self.predict(
                candidate,
                profile,
                preferences.get(candidate.category_id) if candidate.category_id is not None else None,
            )
            jittered = prediction.score + self.rng.uniform(-self.config.jitter, self.config.jitter)
            predicted.append((jittered, candidate.model_copy(update={"prediction": prediction})))

        predicted.sort(key=lambda p: p[0], reverse=True)
        return [candidate for _, candidate in predicted]
