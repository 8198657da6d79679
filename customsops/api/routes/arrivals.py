"""
Arrival reconciliation endpoints.

Arrivals come from the master records Logic App; operator checks come from the
tracking store. Status is always classified here, never taken from the client.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from customsops.api.middleware.auth import AuthenticatedUser, get_optional_user
from customsops.api.models import BulkCheckRequest, BulkCheckResponse
from customsops.config import ARRIVALS_PAGE_SIZE, ATTENTION_THRESHOLD_DAYS
from customsops.infrastructure.retry import UpstreamError
from customsops.observability.logging import get_logger
from customsops.reconciliation.arrivals import (
    arrival_stats,
    build_bulk_check,
    days_since_release,
    filter_arrivals,
    find_arrival,
    latest_check,
    sort_arrivals,
    sort_outbounds,
)
from customsops.reconciliation.email_draft import generate_email_draft
from customsops.reconciliation.export import export_filename, export_rows, to_csv
from customsops.reconciliation.status import (
    ShipmentStatus,
    classify_arrival,
    outbounds_count,
    saldo_label,
)
from customsops.tracking import TrackingStore, TrackingStoreError, get_tracking_store
from customsops.upstream import LogicAppClient, get_logic_app_client
from customsops.utils.dates import utc_now
from customsops.utils.error_sanitizer import get_safe_error_detail
from customsops.utils.pagination import paginate

router = APIRouter(prefix="/api/arrivals", tags=["arrivals"])
logger = get_logger(__name__)

StatusFilter = Literal["all", "complete", "error", "waiting", "unknown"]


def _load_arrivals(client: LogicAppClient, refresh: bool = False) -> list[dict[str, Any]]:
    if refresh:
        client.refresh_master_records()
    try:
        return client.get_master_records()
    except UpstreamError as e:
        status_code = 503 if e.status_code == 503 else 502
        raise HTTPException(
            status_code=status_code,
            detail=get_safe_error_detail(e, status_code, "Failed to load arrivals"),
        ) from None


def _load_tracking(store: TrackingStore) -> list[dict[str, Any]]:
    """Tracking notes decorate the table; a broken file must not hide the arrivals."""
    try:
        return store.list_records()
    except TrackingStoreError as e:
        logger.warning("Tracking data unavailable, showing arrivals without checks: %s", e)
        return []


def _row(arrival: dict[str, Any], tracking_records: list[dict[str, Any]], now: Any) -> dict[str, Any]:
    status = classify_arrival(arrival)
    return {
        **{k: v for k, v in arrival.items() if k != "Outbounds"},
        "status": status.value,
        "statusLabel": status.label,
        "outboundsCount": outbounds_count(arrival),
        "daysSinceRelease": days_since_release(arrival.get("GDSREL_DATETIME"), now),
        "latestCheck": latest_check(tracking_records, arrival.get("MRN")),
    }


@router.get("")
def list_arrivals(
    search: str = Query("", max_length=200),
    status: StatusFilter = "all",
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(1, ge=1),
    refresh: bool = False,
    client: LogicAppClient = Depends(get_logic_app_client),
    store: TrackingStore = Depends(get_tracking_store),
) -> dict[str, Any]:
    """
    Filtered, paginated arrivals plus header statistics.

    Stats are computed over every arrival, not just the filtered page.
    """
    now = utc_now()
    arrivals = _load_arrivals(client, refresh)
    tracking_records = _load_tracking(store)

    filtered = sort_arrivals(filter_arrivals(arrivals, search, status, start_date, end_date))
    result = paginate(filtered, page, ARRIVALS_PAGE_SIZE)
    result["items"] = [_row(a, tracking_records, now) for a in result["items"]]
    result["stats"] = arrival_stats(arrivals, now)
    return result


@router.get("/export.csv")
def export_arrivals(
    search: str = Query("", max_length=200),
    status: StatusFilter = "all",
    start_date: date | None = None,
    end_date: date | None = None,
    mrns: list[str] | None = Query(None),
    client: LogicAppClient = Depends(get_logic_app_client),
    store: TrackingStore = Depends(get_tracking_store),
) -> Response:
    """CSV of the selected MRNs when given, otherwise of the filtered table."""
    now = utc_now()
    arrivals = _load_arrivals(client)
    if mrns:
        wanted = set(mrns)
        selected = [a for a in arrivals if a.get("MRN") in wanted]
    else:
        selected = filter_arrivals(arrivals, search, status, start_date, end_date)

    body = to_csv(export_rows(sort_arrivals(selected), _load_tracking(store), now))
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(now)}"'},
    )


@router.post("/check", response_model=BulkCheckResponse)
def bulk_check(
    request: BulkCheckRequest,
    client: LogicAppClient = Depends(get_logic_app_client),
    store: TrackingStore = Depends(get_tracking_store),
    user: AuthenticatedUser | None = Depends(get_optional_user),
) -> dict[str, Any]:
    """Mark the selected arrivals as checked. Complete or unknown MRNs are skipped."""
    arrivals = _load_arrivals(client)
    pairs = build_bulk_check(arrivals, request.mrns, user.name if user else None, request.note, utc_now())

    updated = 0
    if pairs:
        try:
            updated = store.add_entries(pairs)
        except TrackingStoreError as e:
            raise HTTPException(
                status_code=500,
                detail=get_safe_error_detail(e, 500, "Failed to record tracking data"),
            ) from None

    checked = {mrn for mrn, _ in pairs}
    return {
        "success": True,
        "updated": updated,
        "skipped": [mrn for mrn in request.mrns if mrn not in checked],
    }


@router.get("/{mrn}")
def get_arrival(
    mrn: str,
    sort_key: str | None = Query(None, max_length=100),
    sort_direction: Literal["asc", "desc"] = "asc",
    client: LogicAppClient = Depends(get_logic_app_client),
) -> dict[str, Any]:
    """Inbound declaration with its outbound declarations."""
    arrival = find_arrival(_load_arrivals(client), mrn)
    if arrival is None:
        raise HTTPException(status_code=404, detail="Arrival not found")

    status = classify_arrival(arrival)
    return {
        "arrival": {k: v for k, v in arrival.items() if k != "Outbounds"},
        "status": status.value,
        "statusLabel": status.label,
        "saldoLabel": saldo_label(arrival.get("saldo")),
        "daysSinceRelease": days_since_release(arrival.get("GDSREL_DATETIME")),
        "outboundsCount": outbounds_count(arrival),
        "outbounds": sort_outbounds(arrival.get("Outbounds") or [], sort_key, sort_direction),
    }


@router.get("/{mrn}/email-draft")
def get_email_draft(
    mrn: str,
    client: LogicAppClient = Depends(get_logic_app_client),
) -> dict[str, Any]:
    """Follow-up email for an arrival that is still waiting or in error, with a mailto link."""
    arrival = find_arrival(_load_arrivals(client), mrn)
    if arrival is None:
        raise HTTPException(status_code=404, detail="Arrival not found")
    if classify_arrival(arrival) is ShipmentStatus.COMPLETE:
        raise HTTPException(status_code=400, detail="Arrival is already complete")

    days_waiting = days_since_release(arrival.get("GDSREL_DATETIME"))
    draft = generate_email_draft(arrival, days_waiting)
    return {
        **draft,
        "daysWaiting": days_waiting,
        "alertRequired": classify_arrival(arrival) is ShipmentStatus.WAITING
        and days_waiting >= ATTENTION_THRESHOLD_DAYS,
        "mailto": f"mailto:?subject={quote(draft['subject'])}&body={quote(draft['body'])}",
    }
