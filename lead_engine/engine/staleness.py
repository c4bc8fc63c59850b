"""
Staleness checks that gate AI re-scoring and action suggestion.

Both are pure functions of their timestamps and `now`. Elapsed time is
measured in whole milliseconds and divided by the unit without rounding, so
2.9999 days is still under a 3 day threshold. Naive datetimes are read as UTC.
"""
from datetime import datetime, timezone
from typing import Optional

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR

DEFAULT_RESCORE_DAYS = 3
DEFAULT_SUGGEST_HOURS = 24


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _elapsed_ms(since: datetime, now: datetime) -> int:
    delta = _as_utc(now) - _as_utc(since)
    return (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000


def _is_stale(last_run_at, last_contact_at, threshold, unit_ms, now):
    if last_run_at is None:
        return True
    now = now or datetime.now(timezone.utc)
    if _elapsed_ms(last_run_at, now) / unit_ms >= threshold:
        return True
    if last_contact_at is not None and _as_utc(last_contact_at) > _as_utc(last_run_at):
        return True
    return False


def should_rescore(
    last_scored_at: Optional[datetime],
    last_contact_at: Optional[datetime],
    threshold_days: float = DEFAULT_RESCORE_DAYS,
    now: Optional[datetime] = None,
) -> bool:
    """
    True if the lead has never been scored, its score is at least
    threshold_days old, or there was contact after it was scored.
    """
    return _is_stale(last_scored_at, last_contact_at, threshold_days, MS_PER_DAY, now)


def should_suggest_actions(
    last_suggested_at: Optional[datetime],
    last_contact_at: Optional[datetime],
    threshold_hours: float = DEFAULT_SUGGEST_HOURS,
    now: Optional[datetime] = None,
) -> bool:
    """Same rule as should_rescore with an hour-granularity threshold."""
    return _is_stale(last_suggested_at, last_contact_at, threshold_hours, MS_PER_HOUR, now)
