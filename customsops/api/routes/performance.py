"""
Productivity statistics endpoints.

Thin wrappers over the performance API: fetch, then shape with
``customsops.statistics.performance``.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from customsops.infrastructure.retry import UpstreamError
from customsops.observability.logging import get_logger
from customsops.statistics.performance import (
    PerformanceDataError,
    comparison_warning,
    daily_totals,
    monthly_summary,
    sort_team,
    split_teams,
    team_totals,
    user_dashboard,
)
from customsops.upstream import FunctionAppClient, get_function_app_client
from customsops.utils.dates import utc_now
from customsops.utils.error_sanitizer import get_safe_error_detail

router = APIRouter(prefix="/api/performance", tags=["performance"])
logger = get_logger(__name__)

MAX_COMPARED_USERS = 2


def _fetch(client: FunctionAppClient, **params: Any) -> Any:
    try:
        return client.get_performance(**params)
    except UpstreamError as e:
        status_code = 404 if e.status_code == 404 else 502
        raise HTTPException(
            status_code=status_code,
            detail=get_safe_error_detail(e, status_code, "Failed to load performance data"),
        ) from None


def _dashboard(client: FunctionAppClient, username: str) -> dict[str, Any]:
    data = _fetch(client, user=username)
    try:
        return user_dashboard(data, utc_now().date())
    except PerformanceDataError as e:
        raise HTTPException(status_code=502, detail=get_safe_error_detail(e, 502, str(e))) from None


@router.get("/summary")
def team_overview(client: FunctionAppClient = Depends(get_function_app_client)) -> dict[str, Any]:
    """Per-user daily file counts with import/export totals and the daily chart series."""
    users = _fetch(client)
    if not isinstance(users, list):
        users = []
    return {
        "users": users,
        "totals": team_totals(users),
        "dailyTotals": daily_totals(users),
    }


@router.get("/monthly")
def monthly_report(
    sort_key: str | None = Query("total_files_created", max_length=100),
    sort_direction: Literal["asc", "desc"] = "desc",
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    teams = split_teams(_fetch(client, all_users=True))
    return {
        name: {
            "users": sort_team(members, sort_key, sort_direction),
            "summary": monthly_summary(members),
        }
        for name, members in teams.items()
    }


@router.get("/compare")
def compare_users(
    users: list[str] = Query(...),
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    """Side-by-side dashboards for up to two users."""
    if len(users) > MAX_COMPARED_USERS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_COMPARED_USERS} users can be compared")

    dashboards = [_dashboard(client, username) for username in users]
    warning = comparison_warning(users[0], users[1]) if len(users) == 2 else None
    return {"users": dashboards, "warning": warning}


@router.get("/users/{username}")
def user_performance(
    username: str,
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    return _dashboard(client, username)
