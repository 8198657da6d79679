"""Flow run history endpoints (automation runs logged by the Function App)."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query

from customsops.config import FLOW_RUNS_PAGE_SIZE
from customsops.flows.runs import dedupe_runs, facet_values, filter_runs, transform_run
from customsops.flows.steps import describe_steps, overall_status
from customsops.infrastructure.retry import UpstreamError
from customsops.observability.logging import get_logger
from customsops.upstream import FunctionAppClient, get_function_app_client
from customsops.utils.error_sanitizer import get_safe_error_detail
from customsops.utils.pagination import paginate

router = APIRouter(prefix="/api/flows", tags=["flows"])
logger = get_logger(__name__)


def _load_runs(client: FunctionAppClient, company: str = "") -> list[dict[str, Any]]:
    try:
        return client.get_logs(company)
    except UpstreamError as e:
        raise HTTPException(
            status_code=502,
            detail=get_safe_error_detail(e, 502, "Failed to load flow runs"),
        ) from None


@router.get("")
def list_runs(
    search: str = Query("", max_length=200),
    project: str = Query("", max_length=200),
    status: str = Query("", max_length=20),
    time_range: Literal["today", "week", "month", "all"] = "today",
    company: str = Query("", max_length=200),
    page: int = Query(1, ge=1),
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    """
    Flow runs for the table, newest log order preserved.

    Repeated runs and pending shadows of finished runs are dropped before
    filtering. ``projects`` and ``statuses`` list the dropdown values.
    """
    runs = dedupe_runs(transform_run(run) for run in _load_runs(client, company))
    filtered = filter_runs(runs, search, project, status, time_range)

    result = paginate(filtered, page, FLOW_RUNS_PAGE_SIZE)
    result["projects"] = facet_values(runs, "projectName")
    result["statuses"] = facet_values(runs, "status")
    return result


@router.get("/{run_id}")
def get_run(
    run_id: str,
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    """One run with its steps described for the detail panel."""
    raw = next(
        (r for r in _load_runs(client) if str(r.get("runId") or r.get("id") or "") == run_id),
        None,
    )
    if raw is None:
        raise HTTPException(status_code=404, detail="Flow run not found")

    return {
        **transform_run(raw),
        "overallStatus": overall_status(raw),
        "steps": describe_steps(raw),
    }
