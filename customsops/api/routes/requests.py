"""New automation flow requests, forwarded to the Logic App trigger."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from customsops.api.models import FlowRequest, FlowRequestResponse
from customsops.infrastructure.retry import UpstreamError
from customsops.observability.logging import get_logger
from customsops.upstream import LogicAppClient, get_logic_app_client
from customsops.utils.dates import iso_timestamp
from customsops.utils.error_sanitizer import get_safe_error_detail

router = APIRouter(prefix="/api/requests", tags=["requests"])
logger = get_logger(__name__)


@router.post("", response_model=FlowRequestResponse)
def submit_request(
    request: FlowRequest,
    client: LogicAppClient = Depends(get_logic_app_client),
) -> dict[str, Any]:
    """
    Forward the request form to the Logic App.

    Without a configured trigger the request is only logged and still accepted.
    """
    payload = request.model_dump()
    payload["submittedAt"] = payload.get("submittedAt") or iso_timestamp()

    try:
        forwarded = client.submit_flow_request(payload)
    except UpstreamError as e:
        raise HTTPException(
            status_code=502,
            detail=get_safe_error_detail(e, 502, "Failed to submit request"),
        ) from None

    logger.info("Flow request from %s (%s), forwarded=%s", request.senderEmail, request.flowType, forwarded)
    return {"success": True, "forwarded": forwarded}
