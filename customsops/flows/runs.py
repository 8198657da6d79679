"""
Flow run list: transformation of raw log entries, filtering and de-duplication.

Raw entries come from the Function App ``/api/logs`` endpoint. The list view
works on a flattened shape::

    {id, projectName, triggerTime, status, duration, createdBy, fileRef, timestamp, rawData}
"""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from customsops.config import SHADOW_PENDING_WINDOW_MINUTES
from customsops.observability.telemetry import counter
from customsops.utils.dates import parse_datetime, utc_now

TIME_RANGES = ("today", "week", "month", "all")

_EXPLICIT_STATUSES = {"success": "Success", "failed": "Failed", "pending": "Pending"}


def run_status(run: dict[str, Any]) -> str:
    """Success / Failed / Pending for the list view.

    An explicit ``status`` on the raw entry wins; otherwise a run counts as
    failed unless ``finalResult.allStepsSucceeded`` is true.
    """
    explicit = str(run.get("status") or "").strip().lower()
    if explicit in _EXPLICIT_STATUSES:
        return _EXPLICIT_STATUSES[explicit]
    final_result = run.get("finalResult") or {}
    if not final_result.get("allStepsSucceeded"):
        return "Failed"
    return "Success"


def run_duration(run: dict[str, Any]) -> str:
    """Seconds from the first email's arrival to the Logic App timestamp, or N/A."""
    steps = run.get("Steps") or []
    if not run.get("logicAppTimestamp") or not steps:
        return "N/A"

    first = steps[0] if isinstance(steps[0], dict) else {}
    email = first.get("email") or {}
    started = parse_datetime(email.get("receivedAt") if isinstance(email, dict) else None)
    finished = parse_datetime(run.get("logicAppTimestamp"))
    if started is None or finished is None:
        return "N/A"

    return f"{math.floor((finished - started).total_seconds())}s"


def transform_run(run: dict[str, Any]) -> dict[str, Any]:
    final_result = run.get("finalResult") or {}
    trigger_time = run.get("logicAppTimestamp") or run.get("timestamp")
    return {
        "id": run.get("runId") or run.get("id"),
        "projectName": run.get("companyName") or run.get("projectName") or "",
        "triggerTime": trigger_time,
        "status": run_status(run),
        "duration": run_duration(run),
        "createdBy": final_result.get("checker") or "Unknown",
        "fileRef": run.get("fileRef"),
        "timestamp": run.get("timestamp") or trigger_time,
        "rawData": run,
    }


# ----------------------------------------------------------------------------
# De-duplication
# ----------------------------------------------------------------------------


def _identity(run: dict[str, Any]) -> str:
    for key in ("runId", "id"):
        if run.get(key):
            return str(run[key])
    return "|".join(
        str(run.get(key) or "") for key in ("fileRef", "projectName", "status", "timestamp")
    )


def _is_pending(run: dict[str, Any]) -> bool:
    return str(run.get("status") or "").strip().lower() == "pending"


def dedupe_runs(
    runs: Iterable[dict[str, Any]],
    window: timedelta = timedelta(minutes=SHADOW_PENDING_WINDOW_MINUTES),
) -> list[dict[str, Any]]:
    """
    Drop repeated runs and stale pending "shadows" of runs that since finished.

    1. Identity: ``runId``, else ``id``, else fileRef|projectName|status|timestamp.
       The first occurrence is kept and order is preserved.
    2. A pending run is dropped when a non-pending run with the same fileRef and
       projectName has a timestamp within ``window`` of it (inclusive).

    Runs without a parseable timestamp are never treated as shadows. This is a
    best-effort display filter, not a uniqueness guarantee.
    """
    unique: list[dict[str, Any]] = []
    seen: set[str] = set()
    for run in runs:
        key = _identity(run)
        if key in seen:
            continue
        seen.add(key)
        unique.append(run)

    settled: dict[tuple[Any, Any], list[datetime]] = {}
    for run in unique:
        if _is_pending(run):
            continue
        stamp = parse_datetime(run.get("timestamp"))
        if stamp is not None:
            settled.setdefault((run.get("fileRef"), run.get("projectName")), []).append(stamp)

    result = []
    for run in unique:
        if _is_pending(run):
            stamp = parse_datetime(run.get("timestamp"))
            others = settled.get((run.get("fileRef"), run.get("projectName")), [])
            if stamp is not None and any(abs(stamp - other) <= window for other in others):
                counter("flows.shadow_pending_dropped")
                continue
        result.append(run)
    return result


# ----------------------------------------------------------------------------
# Filtering
# ----------------------------------------------------------------------------


def _one_month_back(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def time_range_cutoff(time_range: str, now: datetime | None = None) -> datetime | None:
    """Earliest trigger time kept for a range; None means no lower bound."""
    now = now or utc_now()
    if time_range == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_range == "week":
        return now - timedelta(days=7)
    if time_range == "month":
        return _one_month_back(now)
    return None


def filter_runs(
    runs: Iterable[dict[str, Any]],
    search: str = "",
    project: str = "",
    status: str = "",
    time_range: str = "today",
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Search box, project and status dropdowns, and the time range selector."""
    term = search.lower()
    cutoff = time_range_cutoff(time_range, now)
    result = []
    for run in runs:
        if term and not any(
            term in str(run.get(field) or "").lower() for field in ("id", "projectName", "createdBy")
        ):
            continue
        if project and run.get("projectName") != project:
            continue
        if status and run.get("status") != status:
            continue
        if cutoff is not None:
            triggered = parse_datetime(run.get("triggerTime"))
            if triggered is None or triggered < cutoff:
                continue
        result.append(run)
    return result


def facet_values(runs: list[dict[str, Any]], field: str) -> list[str]:
    """Distinct values for a dropdown, in first-seen order."""
    values: list[str] = []
    for run in runs:
        value = run.get(field)
        if value and value not in values:
            values.append(value)
    return values
