"""
Tracking note endpoints.

Operators leave "checked" marks and free-text notes on arrivals. Notes live in
a JSON file (see ``customsops.tracking.store``). Error bodies use ``{"error":
...}`` with status 400, which the dashboard already understands.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from customsops.api.middleware.auth import AuthenticatedUser, get_optional_user
from customsops.api.models import ErrorResponse, validate_dict_structure
from customsops.config import API_BATCH_SIZE_MAX
from customsops.observability.logging import get_logger
from customsops.tracking import TrackingStore, TrackingStoreError, get_tracking_store
from customsops.tracking.models import (
    BulkTrackingRequest,
    TrackingEntriesResponse,
    TrackingListResponse,
    TrackingPostRequest,
    TrackingWriteResponse,
)
from customsops.utils.error_sanitizer import get_safe_error_detail, sanitize_error_message

router = APIRouter(prefix="/api/tracking", tags=["tracking"])
logger = get_logger(__name__)

MISSING_FIELDS = "Missing required fields"
INVALID_RECORDS = "Invalid input containing records array"


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _store_failure(error: TrackingStoreError, context: str) -> HTTPException:
    return HTTPException(status_code=500, detail=get_safe_error_detail(error, 500, context))


def _with_user(tracking_data: dict[str, Any], user: AuthenticatedUser | None) -> dict[str, Any]:
    """Fill in the caller's name when the client did not say who made the entry."""
    if user is not None and not tracking_data.get("user"):
        return {**tracking_data, "user": user.name}
    return tracking_data


@router.get("", response_model=TrackingListResponse)
def list_tracking(store: TrackingStore = Depends(get_tracking_store)) -> dict[str, Any]:
    try:
        return {"records": store.list_records()}
    except TrackingStoreError as e:
        raise _store_failure(e, "Failed to read tracking data") from None


@router.get("/{mrn}", response_model=TrackingEntriesResponse)
def get_tracking(mrn: str, store: TrackingStore = Depends(get_tracking_store)) -> dict[str, Any]:
    """Entries for one MRN, newest first. Unknown MRNs give an empty list."""
    try:
        return {"tracking_records": store.get_entries(mrn)}
    except TrackingStoreError as e:
        raise _store_failure(e, "Failed to read tracking data") from None


@router.post("", response_model=TrackingWriteResponse, responses={400: {"model": ErrorResponse}})
def add_tracking(
    payload: TrackingPostRequest | None = None,
    store: TrackingStore = Depends(get_tracking_store),
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> Any:
    if payload is None or not payload.mrn or payload.tracking_data is None:
        return _bad_request(MISSING_FIELDS)

    try:
        validate_dict_structure(payload.tracking_data)
    except ValueError as e:
        return _bad_request(sanitize_error_message(str(e), 400))

    try:
        store.add_entry(payload.mrn, _with_user(payload.tracking_data, user))
    except TrackingStoreError as e:
        raise _store_failure(e, "Failed to record tracking data") from None

    return {"success": True, "message": "Tracking recorded"}


@router.post("/bulk", response_model=TrackingWriteResponse, responses={400: {"model": ErrorResponse}})
def add_tracking_bulk(
    payload: BulkTrackingRequest | None = None,
    store: TrackingStore = Depends(get_tracking_store),
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> Any:
    """
    Add one entry per ``{mrn, tracking_data}`` item in a single file write.

    The whole batch is rejected if any item is incomplete.
    """
    if payload is None or not isinstance(payload.records, list):
        return _bad_request(INVALID_RECORDS)

    if len(payload.records) > API_BATCH_SIZE_MAX:
        return _bad_request(f"Too many records: maximum {API_BATCH_SIZE_MAX} per request")

    pairs = []
    for item in payload.records:
        if not isinstance(item, dict):
            return _bad_request(MISSING_FIELDS)
        mrn, tracking_data = item.get("mrn"), item.get("tracking_data")
        if not mrn or not isinstance(mrn, str) or not isinstance(tracking_data, dict):
            return _bad_request(MISSING_FIELDS)
        try:
            validate_dict_structure(tracking_data)
        except ValueError as e:
            return _bad_request(sanitize_error_message(str(e), 400))
        pairs.append((mrn, _with_user(tracking_data, user)))

    try:
        update_count = store.add_entries(pairs)
    except TrackingStoreError as e:
        raise _store_failure(e, "Failed to record tracking data") from None

    logger.info("Bulk tracking update: %d records", update_count)
    return {"success": True, "message": f"{update_count} records updated successfully"}
