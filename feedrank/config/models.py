"""Configuration models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("feedrank", description="Database name")
    user: str = Field("feedrank_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    min_pool_size: int = Field(1, ge=1)
    max_pool_size: int = Field(10, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


class InteractionWeights(BaseModel):
    """Raw weight of each interaction type before decay."""

    impression: float = Field(0.05, ge=0.0)
    scroll_stop: float = Field(0.15, ge=0.0)
    click: float = Field(0.50, ge=0.0)
    view: float = Field(0.30, ge=0.0)
    like: float = Field(0.80, ge=0.0)
    share: float = Field(1.00, ge=0.0)
    bookmark: float = Field(0.70, ge=0.0)

    def weight_for(self, interaction_type: str) -> float:
        """Get the raw weight for an interaction type name."""
        return float(getattr(self, interaction_type, 0.0))


class DecayConfig(BaseModel):
    """Temporal decay of interaction weights, per hierarchy level."""

    rate_by_level: Dict[int, float] = Field(
        default_factory=lambda: {1: 0.015, 2: 0.03, 3: 0.05},
        description="Daily decay rate by category level",
    )
    default_rate: float = Field(0.05, gt=0.0, description="Rate for categories of unknown level")
    lookback_days: int = Field(90, ge=1, le=365, description="Event lookback window")

    @field_validator("rate_by_level")
    @classmethod
    def validate_levels(cls, v: Dict[int, float]) -> Dict[int, float]:
        """Validate levels are 1-3 and rates positive."""
        for level, rate in v.items():
            if level not in (1, 2, 3):
                raise ValueError(f"Decay level must be 1, 2 or 3, got {level}")
            if rate <= 0:
                raise ValueError(f"Decay rate for level {level} must be positive")
        return v


class NegativeFeedbackConfig(BaseModel):
    """Penalty for categories the user sees but does not click."""

    min_impressions: int = Field(10, ge=1)
    ctr_threshold: float = Field(0.05, gt=0.0, le=1.0)
    base_penalty: float = Field(0.10, ge=0.0, le=1.0)
    max_penalty: float = Field(0.25, ge=0.0, le=1.0)
    min_score: float = Field(0.005, gt=0.0, le=1.0)
    renormalize: bool = Field(True, description="Renormalize direct scores after penalties")

    @field_validator("max_penalty")
    @classmethod
    def validate_penalty_range(cls, v: float, info) -> float:
        """Validate max penalty is not below base penalty."""
        base = info.data.get("base_penalty", 0.10)
        if v < base:
            raise ValueError(f"max_penalty ({v}) must be >= base_penalty ({base})")
        return v


class PropagationConfig(BaseModel):
    """Damping applied when deriving parent scores from children."""

    average_factor: float = Field(0.5, gt=0.0, le=1.0)
    max_child_factor: float = Field(0.8, gt=0.0, le=1.0)


class FreshnessBand(BaseModel):
    """Freshness score for articles younger than max_age_hours."""

    max_age_hours: float = Field(..., gt=0.0)
    score: float = Field(..., ge=0.0, le=1.0)


def _default_bands() -> List[FreshnessBand]:
    return [
        FreshnessBand(max_age_hours=1, score=1.0),
        FreshnessBand(max_age_hours=3, score=0.95),
        FreshnessBand(max_age_hours=6, score=0.9),
        FreshnessBand(max_age_hours=12, score=0.8),
        FreshnessBand(max_age_hours=24, score=0.7),
        FreshnessBand(max_age_hours=48, score=0.5),
        FreshnessBand(max_age_hours=72, score=0.3),
    ]


class ScoringConfig(BaseModel):
    """Composite relevance scoring."""

    category_weight: float = Field(0.6, ge=0.0, le=1.0)
    freshness_weight: float = Field(0.4, ge=0.0, le=1.0)
    similarity_category_weight: float = Field(0.4, ge=0.0, le=1.0)
    similarity_weight: float = Field(0.3, ge=0.0, le=1.0)
    similarity_freshness_weight: float = Field(0.3, ge=0.0, le=1.0)
    default_category_preference: float = Field(0.3, ge=0.0, le=1.0)
    freshness_bands: List[FreshnessBand] = Field(default_factory=_default_bands)
    stale_score: float = Field(0.1, ge=0.0, le=1.0, description="Score beyond the last band")
    unknown_age_score: float = Field(0.5, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringConfig":
        """Validate that both weight sets sum to 1.0."""
        plain = self.category_weight + self.freshness_weight
        if abs(plain - 1.0) > 0.001:
            raise ValueError(f"Category and freshness weights must sum to 1.0, got {plain}")
        with_sim = (
            self.similarity_category_weight
            + self.similarity_weight
            + self.similarity_freshness_weight
        )
        if abs(with_sim - 1.0) > 0.001:
            raise ValueError(f"Similarity weights must sum to 1.0, got {with_sim}")
        self.freshness_bands = sorted(self.freshness_bands, key=lambda b: b.max_age_hours)
        return self


class DiversityConfig(BaseModel):
    """Category diversity window."""

    max_same_category: int = Field(3, ge=1)
    window_size: int = Field(4, ge=1)

    @field_validator("window_size")
    @classmethod
    def validate_window(cls, v: int, info) -> int:
        """Validate the window can hold max_same_category items."""
        max_same = info.data.get("max_same_category", 3)
        if v < max_same:
            raise ValueError(f"window_size ({v}) must be >= max_same_category ({max_same})")
        return v


class ExplorationConfig(BaseModel):
    """Split of the exploration budget across strategies."""

    sibling_ratio: float = Field(0.5, ge=0.0, le=1.0)
    parent_ratio: float = Field(0.3, ge=0.0, le=1.0)
    trending_ratio: float = Field(0.2, ge=0.0, le=1.0)
    window_days: int = Field(3, ge=1, description="Age window for sibling/parent articles")
    trending_hours: int = Field(24, ge=1, description="Age window for trending articles")
    wildcard_hours: int = Field(24, ge=1)

    @field_validator("sibling_ratio", "parent_ratio", "trending_ratio")
    @classmethod
    def validate_ratios(cls, v: float, info) -> float:
        """Validate that ratios sum to 1.0."""
        if info.field_name == "trending_ratio":
            total = (
                info.data.get("sibling_ratio", 0.5)
                + info.data.get("parent_ratio", 0.3)
                + v
            )
            if abs(total - 1.0) > 0.001:
                raise ValueError(f"Exploration ratios must sum to 1.0, got {total}")
        return v


class FeedConfig(BaseModel):
    """Feed assembly parameters."""

    default_limit: int = Field(50, ge=1)
    max_limit: int = Field(100, ge=1)
    exploitation_ratio: float = Field(0.8, ge=0.0, le=1.0)
    breaking_slots: int = Field(2, ge=0, le=5)
    breaking_window_hours: float = Field(2.0, gt=0.0)
    wildcard_interval: int = Field(6, ge=1, description="Exploitation slots between wildcards")
    shuffle_start: int = Field(5, ge=0)
    shuffle_end: int = Field(20, ge=0)
    shuffle_retries: int = Field(5, ge=0)
    top_categories: int = Field(20, ge=1, description="Preferred categories queried")
    candidate_window_days: int = Field(7, ge=1)
    candidate_multiplier: int = Field(2, ge=1, description="Over-fetch factor per query")
    recent_fallback_hours: int = Field(24, ge=1)
    popular_days: int = Field(7, ge=1)
    preference_max_age_minutes: int = Field(60, ge=1, description="Recompute before serving when older")

    @field_validator("shuffle_end")
    @classmethod
    def validate_shuffle_window(cls, v: int, info) -> int:
        """Validate shuffle window bounds."""
        start = info.data.get("shuffle_start", 5)
        if v <= start:
            raise ValueError(f"shuffle_end ({v}) must be greater than shuffle_start ({start})")
        return v


class PredictorConfig(BaseModel):
    """Click-probability predictor."""

    base_score: float = Field(0.5, ge=0.0, le=1.0)
    similarity_weight: float = Field(0.40, ge=0.0, le=1.0)
    category_weight: float = Field(0.15, ge=0.0, le=1.0)
    min_score: float = Field(0.05, ge=0.0, le=1.0)
    max_score: float = Field(0.95, ge=0.0, le=1.0)
    trigger_cap: float = Field(1.5, ge=1.0)
    keyword_boost_per_match: float = Field(0.05, ge=0.0)
    keyword_boost_cap: float = Field(0.2, ge=0.0)
    jitter: float = Field(0.025, ge=0.0, le=0.1)
    min_interactions: int = Field(1000, ge=0, description="Lifetime interactions before predicting")
    min_clicks_for_triggers: int = Field(50, ge=1)
    trigger_baseline: float = Field(0.25, gt=0.0, lt=1.0)
    profile_vector_clicks: int = Field(50, ge=1)
    keyword_min_clicks: int = Field(2, ge=1)
    keyword_limit: int = Field(10, ge=1)
    keywords_per_title: int = Field(5, ge=1)
    min_keyword_length: int = Field(5, ge=1)
    urgency_words: List[str] = Field(
        default_factory=lambda: ["urgent", "breaking", "live", "just in", "right now"]
    )
    controversy_words: List[str] = Field(
        default_factory=lambda: ["scandal", "shocking", "controvers", "reveals", "bombshell", "outrage"]
    )
    exclusivity_words: List[str] = Field(
        default_factory=lambda: ["exclusive", "unprecedented", "revealed", "first", "never before"]
    )
    catchy_words: Dict[str, int] = Field(
        default_factory=lambda: {
            "exclusive": 3,
            "urgent": 3,
            "unprecedented": 2,
            "revealed": 2,
            "surprising": 2,
        },
        description="Title words that make a wildcard attractive, with weights",
    )

    @model_validator(mode="after")
    def validate_bounds(self) -> "PredictorConfig":
        """Validate score clamp bounds."""
        if self.min_score >= self.max_score:
            raise ValueError("min_score must be lower than max_score")
        return self


class TimeoutConfig(BaseModel):
    """Per-stage timeouts in seconds for external reads."""

    ledger: float = Field(2.0, gt=0.0)
    taxonomy: float = Field(2.0, gt=0.0)
    preferences: float = Field(1.0, gt=0.0)
    profile: float = Field(1.0, gt=0.0)
    candidates: float = Field(3.0, gt=0.0)
    recompute: float = Field(5.0, gt=0.0, description="Lazy recompute before serving")
    fallback: float = Field(3.0, gt=0.0)


class TaxonomyConfig(BaseModel):
    """Category tree cache."""

    ttl_seconds: int = Field(300, ge=1)
    min_refresh_interval_seconds: int = Field(10, ge=0, description="Rate limit for refresh on miss")


class SchedulerConfig(BaseModel):
    """Debounced preference recompute."""

    debounce_seconds: float = Field(30.0, ge=0.0)


class EngineConfig(BaseModel):
    """All tunables of the ranking engine."""

    interaction_weights: InteractionWeights = Field(default_factory=InteractionWeights)
    decay: DecayConfig = Field(default_factory=DecayConfig)
    negative_feedback: NegativeFeedbackConfig = Field(default_factory=NegativeFeedbackConfig)
    propagation: PropagationConfig = Field(default_factory=PropagationConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    diversity: DiversityConfig = Field(default_factory=DiversityConfig)
    exploration: ExplorationConfig = Field(default_factory=ExplorationConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    predictor: PredictorConfig = Field(default_factory=PredictorConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    taxonomy: TaxonomyConfig = Field(default_factory=TaxonomyConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)


class ConfigModel(EngineConfig):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
