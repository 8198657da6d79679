"""Timestamp helpers for the loosely typed dates coming from upstream JSON."""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any


def utc_now() -> datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def iso_timestamp(moment: datetime | None = None) -> str:
    """ISO-8601 with millisecond precision and a trailing Z, as browsers emit."""
    moment = moment or utc_now()
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts ISO strings (with or without a Z suffix), plain dates, datetimes and
    numbers (epoch milliseconds). Naive values are taken as UTC. Returns None
    for anything unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)
