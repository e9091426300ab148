"""
UTC calendar helpers shared by the aggregators.

Naive datetimes are treated as already being in UTC.
"""
from datetime import datetime, timezone


def to_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def day_key(ts: datetime) -> str:
    return to_utc(ts).strftime("%Y-%m-%d")


def month_key(ts: datetime) -> str:
    return to_utc(ts).strftime("%Y-%m")


def utc_hour(ts: datetime) -> int:
    return to_utc(ts).hour


def day_start(key: str) -> datetime:
    """Midnight UTC for a YYYY-MM-DD key."""
    return datetime.strptime(key, "%Y-%m-%d").replace(tzinfo=timezone.utc)


def minutes_between(later: datetime, earlier: datetime) -> int:
    # Whole minutes, truncated toward zero
    return int((to_utc(later) - to_utc(earlier)).total_seconds() / 60)
