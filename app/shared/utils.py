"""Shared utility functions."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize datetime to UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def combine_local(day: date, at: time, zone: ZoneInfo) -> datetime:
    """Interpret salon wall-clock date and time, return it in UTC."""
    return datetime.combine(day, at, tzinfo=zone).astimezone(timezone.utc)


def local_today(zone: ZoneInfo) -> date:
    """Current calendar date at the salon."""
    return utc_now().astimezone(zone).date()
