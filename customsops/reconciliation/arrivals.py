"""
Arrival list views: filtering, ordering, statistics and bulk checks.

Arrivals are raw dicts from the master records file. Missing fields fall back
to defaults here; nothing is validated against a schema.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import UTC, date, datetime, time
from typing import Any

from customsops.config import ATTENTION_THRESHOLD_DAYS, BULK_CHECK_DEFAULT_NOTE, UNKNOWN_USER
from customsops.reconciliation.status import (
    ShipmentStatus,
    classify_arrival,
    coerce_saldo,
    outbounds_count,
)
from customsops.tracking.models import TrackingEntry
from customsops.utils.dates import iso_timestamp, parse_datetime, utc_now

_SECONDS_PER_DAY = 24 * 60 * 60


def days_since_release(release: Any, now: datetime | None = None) -> int:
    """Whole days between release and now, rounded up. 0 when the date is missing."""
    released_at = parse_datetime(release)
    if released_at is None:
        return 0
    now = now or utc_now()
    elapsed = abs((now - released_at).total_seconds())
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def _matches_search(arrival: dict[str, Any], term: str) -> bool:
    if not term:
        return True
    needle = term.lower()
    for field in ("MRN", "COMMERCIALREFERENCE"):
        value = arrival.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    declaration_id = arrival.get("DECLARATIONID")
    return declaration_id is not None and needle in str(declaration_id).lower()


def _within_dates(arrival: dict[str, Any], start: date | None, end: date | None) -> bool:
    if start is None and end is None:
        return True
    released_at = parse_datetime(arrival.get("GDSREL_DATETIME"))
    if released_at is None:
        return False
    if start is not None and released_at < datetime.combine(start, time.min, tzinfo=UTC):
        return False
    if end is not None and released_at > datetime.combine(end, time.max, tzinfo=UTC):
        return False
    return True


def filter_arrivals(
    arrivals: Iterable[dict[str, Any]],
    search: str = "",
    status: str = "all",
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict[str, Any]]:
    """
    Apply the search box, status dropdown and release-date range together.

    The end date is inclusive up to 23:59:59.999 UTC. When either bound is set,
    arrivals without a release date are dropped.
    """
    result = []
    for arrival in arrivals:
        if not _matches_search(arrival, search):
            continue
        if status and status != "all" and classify_arrival(arrival).value != status:
            continue
        if not _within_dates(arrival, start_date, end_date):
            continue
        result.append(arrival)
    return result


def sort_arrivals(arrivals: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Most recently released first; arrivals without a date go last."""
    epoch = datetime.min.replace(tzinfo=UTC)
    return sorted(
        arrivals,
        key=lambda a: parse_datetime(a.get("GDSREL_DATETIME")) or epoch,
        reverse=True,
    )


def arrival_stats(arrivals: list[dict[str, Any]], now: datetime | None = None) -> dict[str, int]:
    """Counters for the header cards. Computed over all arrivals, not the filtered set."""
    now = now or utc_now()
    stats = {
        "total": len(arrivals),
        "complete": 0,
        "error": 0,
        "waiting": 0,
        "criticalErrors": 0,
        "longWaiting": 0,
    }
    for arrival in arrivals:
        status = classify_arrival(arrival)
        if status is ShipmentStatus.UNKNOWN:
            continue
        stats[status.value] += 1
        if status in (ShipmentStatus.ERROR, ShipmentStatus.WAITING):
            overdue = days_since_release(arrival.get("GDSREL_DATETIME"), now) >= ATTENTION_THRESHOLD_DAYS
            if overdue and status is ShipmentStatus.ERROR:
                stats["criticalErrors"] += 1
            elif overdue:
                stats["longWaiting"] += 1
    return stats


def _normalize_mrn(mrn: Any) -> str:
    return str(mrn).strip().upper()


def latest_check(tracking_records: Iterable[dict[str, Any]], mrn: Any) -> dict[str, Any] | None:
    """
    Newest 'checked' entry for an MRN across the whole tracking store.

    MRNs are compared trimmed and case-insensitively.
    """
    wanted = _normalize_mrn(mrn)
    record = next(
        (r for r in tracking_records if _normalize_mrn(r.get("MRN")) == wanted),
        None,
    )
    if not record:
        return None

    checks = [e for e in record.get("tracking_records") or [] if e.get("action") == "checked"]
    if not checks:
        return None

    epoch = datetime.min.replace(tzinfo=UTC)
    return max(checks, key=lambda e: parse_datetime(e.get("timestamp")) or epoch)


def tracking_entry_for(
    arrival: dict[str, Any],
    user: str | None,
    action: str,
    note: str = "",
    now: datetime | None = None,
) -> dict[str, Any]:
    """Snapshot the arrival's reconciliation state into a tracking entry."""
    entry = TrackingEntry(
        user=user or UNKNOWN_USER,
        action=action,
        note=note,
        status=classify_arrival(arrival).value,
        saldo=coerce_saldo(arrival.get("saldo")),
        outbounds_count=outbounds_count(arrival),
        timestamp=iso_timestamp(now),
    )
    return entry.model_dump()


def build_bulk_check(
    arrivals: Iterable[dict[str, Any]],
    mrns: Iterable[str],
    user: str | None,
    note: str | None = None,
    now: datetime | None = None,
) -> list[tuple[str, dict[str, Any]]]:
    """
    Build (mrn, entry) pairs marking the selected arrivals as checked.

    Unknown MRNs and arrivals that are already complete are skipped.
    """
    by_mrn = {a.get("MRN"): a for a in arrivals}
    pairs = []
    for mrn in mrns:
        arrival = by_mrn.get(mrn)
        if arrival is None:
            continue
        if classify_arrival(arrival) is ShipmentStatus.COMPLETE:
            continue
        entry = tracking_entry_for(
            arrival, user, "checked", note or BULK_CHECK_DEFAULT_NOTE, now
        )
        pairs.append((mrn, entry))
    return pairs


def find_arrival(arrivals: Iterable[dict[str, Any]], mrn: str) -> dict[str, Any] | None:
    return next((a for a in arrivals if a.get("MRN") == mrn), None)


def sort_outbounds(
    outbounds: Iterable[dict[str, Any]],
    key: str | None = None,
    direction: str = "asc",
) -> list[dict[str, Any]]:
    """Sort outbound declarations by a column. Missing values sort as empty."""
    items = list(outbounds)
    if not key:
        return items

    def sort_key(outbound: dict[str, Any]) -> tuple[int, Any]:
        value = outbound.get(key)
        if value is None or value == "":
            return (0, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (1, value)
        return (2, str(value))

    return sorted(items, key=sort_key, reverse=direction == "desc")

