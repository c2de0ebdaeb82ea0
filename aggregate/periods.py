"""
Reporting periods: trailing windows that all end at the invocation instant.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

# ordered (label, lookback days)
PERIODS: List[Tuple[str, int]] = [
    ("Last 2 weeks", 14),
    ("Last 4 weeks", 28),
    ("Last 12 weeks", 84),
    ("Last 24 weeks", 168),
]

PERIOD_LABELS = [label for label, _ in PERIODS]

ISO_FORMAT = '%Y-%m-%dT%H:%M:%SZ'


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC timestamp (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(ISO_FORMAT)


def generate_periods(now: Optional[datetime] = None, clock: Optional[Callable[[], datetime]] = None) -> List[Tuple[str, str]]:
    """
    Return the (label, since) pairs for every reporting period, shortest window first.

    Parameters:
        now (datetime): the instant the windows end at; overrides `clock`.
        clock (callable): zero-argument callable returning the current instant.
    """
    if now is None:
        now = (clock or _utc_now)()
    return [(label, format_timestamp(now - timedelta(days=days))) for label, days in PERIODS]
