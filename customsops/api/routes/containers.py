"""Container weight violation endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query

from customsops.api.middleware.auth import require_role
from customsops.config import VIOLATIONS_PAGE_SIZE
from customsops.containers.violations import (
    companies,
    filter_violations,
    sort_violations,
    violation_summary,
)
from customsops.infrastructure.retry import UpstreamError
from customsops.observability.logging import get_logger
from customsops.observability.telemetry import log_event
from customsops.upstream import FunctionAppClient, get_function_app_client
from customsops.utils.error_sanitizer import get_safe_error_detail
from customsops.utils.pagination import paginate

router = APIRouter(prefix="/api/containers", tags=["containers"])
logger = get_logger(__name__)


@router.get("/violations")
def list_violations(
    search: str = Query("", max_length=200),
    company: str = Query("", max_length=200),
    page: int = Query(1, ge=1),
    refresh: bool = False,
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    """Violations newest first, with header stats for the filtered set."""
    if refresh:
        client.invalidate(("container_checks",))
    try:
        entries = client.get_container_checks()
    except UpstreamError as e:
        raise HTTPException(
            status_code=502,
            detail=get_safe_error_detail(e, 502, "Failed to load container checks"),
        ) from None

    filtered = sort_violations(filter_violations(entries, search, company))
    result = paginate(filtered, page, VIOLATIONS_PAGE_SIZE)
    result["summary"] = violation_summary(filtered)
    result["companies"] = companies(filter_violations(entries))
    return result


@router.delete(
    "/violations/{declaration_id}",
    dependencies=[Depends(require_role("admin", "manager"))],
)
def delete_violation(
    declaration_id: str,
    client: FunctionAppClient = Depends(get_function_app_client),
) -> dict[str, Any]:
    """Remove a violation upstream. Restricted to admins and managers."""
    try:
        result = client.delete_violation(declaration_id)
    except UpstreamError as e:
        status_code = 404 if e.status_code == 404 else 502
        raise HTTPException(
            status_code=status_code,
            detail=get_safe_error_detail(e, status_code, "Failed to delete violation"),
        ) from None

    log_event("containers.violation_deleted", declaration_id=declaration_id)
    return {
        "success": True,
        "declarationId": declaration_id,
        "remainingViolations": result.get("remainingViolations"),
    }
