"""
Productivity statistics built on the ``/api/performance`` payloads.

Three shapes come back from the performance API:

- no arguments: a list of users with ``team`` and ``daily_file_creations``
- ``all_users=true``: a ``{user: metrics}`` mapping (or a list with ``user``)
- ``user=<id>``: one user's ``daily_metrics`` and ``summary``
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any

from customsops.config import ACTIVE_HOURS, ACTIVITY_CALENDAR_DAYS, EXPORT_USERS, IMPORT_USERS
from customsops.utils.dates import parse_datetime


class PerformanceDataError(ValueError):
    """The performance API answered with a payload missing required sections."""

    pass


# ----------------------------------------------------------------------------
# Team overview
# ----------------------------------------------------------------------------


def _files_created(user: dict[str, Any]) -> int:
    return sum((user.get("daily_file_creations") or {}).values())


def team_totals(users: Iterable[dict[str, Any]]) -> dict[str, int]:
    totals = {"importTotal": 0, "exportTotal": 0}
    for user in users:
        team = user.get("team")
        if team == "import":
            totals["importTotal"] += _files_created(user)
        elif team == "export":
            totals["exportTotal"] += _files_created(user)
    return totals


def daily_totals(users: Sequence[dict[str, Any]]) -> list[dict[str, Any]]:
    """Import/export files per day. The date axis is taken from the first user."""
    if not users:
        return []
    dates = list((users[0].get("daily_file_creations") or {}).keys())
    rows = []
    for day in dates:
        row = {"date": day, "import": 0, "export": 0}
        for user in users:
            team = user.get("team")
            if team in ("import", "export"):
                row[team] += (user.get("daily_file_creations") or {}).get(day, 0)
        rows.append(row)
    return rows


# ----------------------------------------------------------------------------
# Monthly report
# ----------------------------------------------------------------------------


def team_of(username: str) -> str:
    if username in IMPORT_USERS:
        return "Import"
    if username in EXPORT_USERS:
        return "Export"
    return "Unknown"


def split_teams(payload: Any) -> dict[str, list[dict[str, Any]]]:
    """Assign users from an ``all_users`` payload to the import and export rosters."""
    if isinstance(payload, dict):
        users = [{"user": name, **(metrics or {})} for name, metrics in payload.items()]
    elif isinstance(payload, list):
        users = [u for u in payload if isinstance(u, dict)]
    else:
        users = []

    return {
        "import": [u for u in users if u.get("user") in IMPORT_USERS],
        "export": [u for u in users if u.get("user") in EXPORT_USERS],
    }


def display_name(username: str) -> str:
    """'JOHN.DOE' -> 'JOHN DOE' (only the first dot is replaced)."""
    return username.replace(".", " ", 1)


def monthly_summary(team: list[dict[str, Any]]) -> dict[str, Any]:
    """Top manual and automatic producers plus the team's file total."""
    if not team:
        return {"topManual": "N/A", "topAutomatic": "N/A", "totalFiles": 0}

    top_manual = max(team, key=lambda u: u.get("manual_files") or 0)
    top_automatic = max(team, key=lambda u: u.get("automatic_files") or 0)
    return {
        "topManual": display_name(top_manual.get("user", "")),
        "topAutomatic": display_name(top_automatic.get("user", "")),
        "totalFiles": sum(u.get("total_files_created") or 0 for u in team),
    }


def sort_team(team: list[dict[str, Any]], key: str | None, direction: str = "desc") -> list[dict[str, Any]]:
    """Column sort for the report table; rows missing the column go last."""
    if not key:
        return list(team)
    present = [u for u in team if u.get(key) is not None]
    missing = [u for u in team if u.get(key) is None]

    def rank(user: dict[str, Any]) -> tuple[int, Any]:
        value = user[key]
        if value == "":
            return (0, "")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return (1, value)
        return (2, str(value))

    present.sort(key=rank, reverse=direction == "desc")
    return present + missing


# ----------------------------------------------------------------------------
# Single user dashboard
# ----------------------------------------------------------------------------


def _title_name(username: str) -> str:
    spaced = username.replace(".", " ", 1).lower()
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), spaced)


def _day(value: Any) -> date | None:
    moment = parse_datetime(value)
    return moment.date() if moment else None


def user_dashboard(api_data: dict[str, Any], today: date) -> dict[str, Any]:
    """
    Per-user dashboard: headline numbers, daily metrics and chart series.

    Raises:
        PerformanceDataError: if the payload is not an object or lacks
            ``user``, ``daily_metrics`` or ``summary``
    """
    if (
        not isinstance(api_data, dict)
        or not api_data.get("user")
        or api_data.get("daily_metrics") is None
        or not api_data.get("summary")
    ):
        raise PerformanceDataError("Incomplete performance data")

    summary = api_data["summary"]

    daily = []
    for day in api_data["daily_metrics"]:
        manual = day.get("manual_files_created") or 0
        auto = day.get("automatic_files_created") or 0
        daily.append(
            {
                "date": day.get("date"),
                "manual": manual,
                "auto": auto,
                "files": manual + auto,
                "modifs": day.get("modification_count") or 0,
                "avgTime": day.get("avg_creation_time"),
                "manualFileIds": day.get("manual_file_ids") or [],
                "autoFileIds": day.get("automatic_file_ids") or [],
                "modificationFileIds": day.get("modification_file_ids") or [],
            }
        )
    daily.sort(key=lambda d: _day(d["date"]) or date.min)

    specialization = sorted(
        (
            {"company": company, "files": files}
            for company, files in (summary.get("company_specialization") or {}).items()
        ),
        key=lambda c: c["files"],
        reverse=True,
    )
    most_active = specialization[0] if specialization else {"company": "N/A", "files": 0}

    by_hour = summary.get("activity_by_hour") or {}
    first_hour, last_hour = ACTIVE_HOURS
    hourly = [
        {"hour": f"{h}:00", "activity": by_hour.get(str(h), by_hour.get(h, 0)) or 0}
        for h in range(first_hour, last_hour + 1)
    ]

    activity_days = summary.get("activity_days") or {}
    inactivity_days = set(summary.get("inactivity_days") or [])
    calendar = []
    for offset in range(ACTIVITY_CALENDAR_DAYS + 1):
        key = (today - timedelta(days=offset)).isoformat()
        calendar.append(
            {
                "date": key,
                "count": activity_days.get(key, 0),
                "active": key in activity_days and key not in inactivity_days,
            }
        )

    ratio = summary.get("manual_vs_auto_ratio") or {}
    manual_pct = round(ratio.get("manual_percent") or 0)
    auto_pct = round(ratio.get("automatic_percent") or 0)
    avg_time = summary.get("avg_creation_time")
    busiest_hour = summary.get("hour_with_most_activity")
    productive_day = _day(summary.get("most_productive_day"))

    return {
        "user": {
            "id": api_data["user"],
            "name": _title_name(api_data["user"]),
            "team": team_of(api_data["user"]),
            "totalFiles": summary.get("total_files_handled") or 0,
            "totalModifications": summary.get("total_modifications") or 0,
            "manualPercentage": manual_pct,
            "autoPercentage": auto_pct,
            "avgTime": f"{avg_time:.2f}" if avg_time is not None else "Very Quick",
            "avgFilesPerDay": f"{summary.get('avg_files_per_day') or 0:.1f}",
            "mostProductiveDay": productive_day.isoformat() if productive_day else None,
            "mostActiveCompany": most_active["company"],
            "mostActiveCompanyFiles": most_active["files"],
            "mostActiveHour": f"{busiest_hour}:00" if busiest_hour is not None else "N/A",
            "daysActive": summary.get("days_active") or 0,
            "modificationsPerFile": f"{summary.get('modifications_per_file') or 0:.1f}",
        },
        "dailyMetrics": daily,
        "chartData": {
            "dailyFiles": [{"date": d["date"], "total": d["files"]} for d in daily],
            "companySpecialization": specialization,
            "manualVsAuto": [
                {"name": "Manual", "value": manual_pct},
                {"name": "Auto", "value": auto_pct},
            ],
            "activeDays": calendar,
            "fileTypes": [
                {"type": file_type, "count": count}
                for file_type, count in (summary.get("file_type_counts") or {}).items()
            ],
            "hourlyActivity": hourly,
        },
    }


def comparison_warning(first: str, second: str) -> str | None:
    """Message when two users from different teams are compared."""
    team1, team2 = team_of(first), team_of(second)
    if team1 != team2 and "Unknown" not in (team1, team2):
        return (
            f"You are comparing a {team1} user with an {team2} user. "
            "This comparison may not be meaningful as they work in different teams."
        )
    return None
