"""Timed pipeline stages with timeout and graceful degradation."""

import asyncio
import logging
import time
from typing import Any, Awaitable, Dict, Iterable, Optional, TypeVar

from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)
console = Console()

T = TypeVar("T")


class PipelineStage:
    """Represents a pipeline stage."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.error: Optional[str] = None
        self.stats: Dict = {}

    def start(self):
        """Mark stage as started."""
        self.start_time = time.time()

    def complete(self, stats: Optional[Dict] = None):
        """Mark stage as completed successfully."""
        self.end_time = time.time()
        self.success = True
        if stats:
            self.stats.update(stats)

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.time()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0

    def report(self) -> Dict[str, Any]:
        """Stage status as a plain dict."""
        return {
            "description": self.description,
            "success": self.success,
            "duration": self.duration,
            "error": self.error,
            "stats": dict(self.stats),
        }


async def run_stage(
    stage: PipelineStage,
    awaitable: Awaitable[T],
    timeout: float,
    default: T,
) -> T:
    """
    Await a stage under a timeout.

    On timeout or error the stage is marked failed and default is returned
    so that downstream stages can use their fallbacks.
    """
    stage.start()
    try:
        result = await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        stage.fail(f"timed out after {timeout:.1f}s")
        logger.warning(f"Stage {stage.name} timed out after {timeout:.1f}s")
        return default
    except Exception as e:
        stage.fail(str(e) or type(e).__name__)
        logger.warning(f"Stage {stage.name} failed: {e}")
        return default

    stats = {"count": len(result)} if isinstance(result, (list, dict, set)) else None
    stage.complete(stats)
    return result


def print_stage_summary(stages: Dict[str, Dict[str, Any]]) -> None:
    """Print stage reports as a table."""
    table = Table(title="Pipeline Stages")
    table.add_column("Stage", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Duration", style="yellow")
    table.add_column("Details", style="dim")

    for name, report in stages.items():
        status = "[green]ok[/green]" if report["success"] else "[red]degraded[/red]"
        duration = f"{report['duration'] * 1000:.0f}ms" if report["duration"] > 0 else "-"
        if report["success"]:
            details = ", ".join(f"{k}={v}" for k, v in report["stats"].items())
        else:
            details = report["error"] or "Failed"
        table.add_row(name, status, duration, details)

    console.print(table)


def reports(stages: Iterable[PipelineStage]) -> Dict[str, Dict[str, Any]]:
    """Collect reports of stages that ran."""
    return {s.name: s.report() for s in stages if s.start_time is not None}
