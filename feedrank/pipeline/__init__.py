"""Feed generation pipeline."""

from .orchestrator import FEED_STAGES, FeedEngine
from .stages import PipelineStage, print_stage_summary, run_stage

__all__ = ["FEED_STAGES", "FeedEngine", "PipelineStage", "print_stage_summary", "run_stage"]
