"""Time helpers shared by the aggregator, scorers and sourcer."""

from datetime import datetime
from typing import Optional

import pendulum


def utcnow() -> datetime:
    """Current time in UTC."""
    return pendulum.now("UTC")


def to_utc(value: datetime) -> datetime:
    """Make a datetime timezone-aware in UTC."""
    if value.tzinfo is None:
        return pendulum.instance(value, tz="UTC")
    return pendulum.instance(value).in_timezone("UTC")


def hours_between(earlier: Optional[datetime], later: datetime) -> Optional[float]:
    """Elapsed hours from earlier to later, or None when earlier is unknown."""
    if earlier is None:
        return None
    return (to_utc(later) - to_utc(earlier)).total_seconds() / 3600


def days_between(earlier: datetime, later: datetime) -> float:
    """Elapsed fractional days from earlier to later, never negative."""
    hours = hours_between(earlier, later) or 0.0
    return max(0.0, hours / 24)
