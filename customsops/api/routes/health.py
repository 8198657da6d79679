"""Health check and identity endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from customsops.api.middleware.auth import AuthenticatedUser, get_optional_user
from customsops.config import (
    APP_VERSION,
    FUNCTION_APP_KEY,
    MASTER_RECORDS_URL,
    PERFORMANCE_API_CODE,
    REQUEST_FLOW_URL,
    TRACKING_FILE,
)
from customsops.observability.telemetry import snapshot_counters

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Reports which upstreams are configured (presence only, no calls are made)
    and whether the tracking file exists yet.
    """
    return {
        "status": "healthy",
        "service": "CustomsOps API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "upstreams": {
            "function_app_key": bool(FUNCTION_APP_KEY),
            "performance_code": bool(PERFORMANCE_API_CODE),
            "master_records": bool(MASTER_RECORDS_URL),
            "request_flow": bool(REQUEST_FLOW_URL),
        },
        "tracking_file_present": TRACKING_FILE.exists(),
        "counters": snapshot_counters(),
    }


@router.get("/api/me")
async def me(user: AuthenticatedUser | None = Depends(get_optional_user)) -> dict[str, Any]:
    """The signed-in user and their roles; ``user`` is null for anonymous requests."""
    if user is None:
        return {"user": None, "roles": [], "isAuthenticated": False}
    return {"user": user.to_dict(), "roles": user.roles, "isAuthenticated": True}
