"""Configuration management for the feed ranking engine."""

from .loader import DEFAULT_CONFIG_PATH, Config, load_config, save_config
from .models import (
    ConfigModel,
    DecayConfig,
    DiversityConfig,
    EngineConfig,
    ExplorationConfig,
    FeedConfig,
    InteractionWeights,
    LoggingConfig,
    NegativeFeedbackConfig,
    PostgresConfig,
    PredictorConfig,
    PropagationConfig,
    ScoringConfig,
    SchedulerConfig,
    TaxonomyConfig,
    TimeoutConfig,
)

__all__ = [
    "Config",
    "ConfigModel",
    "DEFAULT_CONFIG_PATH",
    "DecayConfig",
    "DiversityConfig",
    "EngineConfig",
    "ExplorationConfig",
    "FeedConfig",
    "InteractionWeights",
    "LoggingConfig",
    "NegativeFeedbackConfig",
    "PostgresConfig",
    "PredictorConfig",
    "PropagationConfig",
    "ScoringConfig",
    "SchedulerConfig",
    "TaxonomyConfig",
    "TimeoutConfig",
    "load_config",
    "save_config",
]
