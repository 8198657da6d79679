"""
Azure Logic App HTTP triggers: master records retrieval and flow requests.

Trigger URLs are SAS-signed, so they are treated as secrets and never logged.
"""

from __future__ import annotations

import threading
from typing import Any

import httpx
from cachetools import TTLCache

from customsops.config import (
    MASTER_RECORDS_URL,
    REQUEST_FLOW_URL,
    UPSTREAM_CACHE_TTL,
    UPSTREAM_MAX_ATTEMPTS,
    UPSTREAM_TIMEOUT,
)
from customsops.infrastructure.retry import RetryPolicy, UpstreamError
from customsops.observability.logging import get_logger
from customsops.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


class LogicAppClient:
    def __init__(
        self,
        master_records_url: str = MASTER_RECORDS_URL,
        request_flow_url: str = REQUEST_FLOW_URL,
        client: httpx.Client | None = None,
        timeout: float = UPSTREAM_TIMEOUT,
        cache_ttl: int = UPSTREAM_CACHE_TTL,
        max_attempts: int = UPSTREAM_MAX_ATTEMPTS,
    ):
        self.master_records_url = master_records_url
        self.request_flow_url = request_flow_url
        self.client = client or httpx.Client(timeout=timeout)
        self.max_attempts = max_attempts
        self._cache: TTLCache[str, list[dict[str, Any]]] = TTLCache(maxsize=1, ttl=cache_ttl)
        self._cache_lock = threading.Lock()

    def _post(self, stage: str, url: str, payload: dict[str, Any]) -> httpx.Response:
        try:
            response = self.client.post(url, json=payload)
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{stage} timed out") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"{stage} request failed: {type(e).__name__}") from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"{stage} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def _send(self, stage: str, url: str, payload: dict[str, Any]) -> httpx.Response:
        policy = RetryPolicy(stage=stage, max_attempts=self.max_attempts)
        with time_block(f"upstream.{stage}"):
            try:
                return policy.execute(self._post, stage, url, payload)
            except UpstreamError as e:
                counter("upstream.errors")
                logger.warning("Upstream call %s failed: %s", stage, e)
                raise

    # ------------------------------------------------------------------
    # Master records
    # ------------------------------------------------------------------

    def get_master_records(self) -> list[dict[str, Any]]:
        """
        All arrival records from the master file.

        The trigger answers ``{"records": [...]}``; a bare list is accepted too.

        Raises:
            UpstreamError: if the trigger is not configured or the call fails
        """
        if not self.master_records_url:
            raise UpstreamError("Master records source is not configured", status_code=503)

        with self._cache_lock:
            cached = self._cache.get("records")
        if cached is not None:
            counter("upstream.cache_hits")
            return cached

        response = self._send("master_records", self.master_records_url, {})
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError("master_records returned invalid JSON", status_code=502) from e

        records = data.get("records") if isinstance(data, dict) else data
        if not isinstance(records, list):
            raise UpstreamError("master_records returned no records array", status_code=502)

        with self._cache_lock:
            self._cache["records"] = records
        return records

    def refresh_master_records(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Flow requests
    # ------------------------------------------------------------------

    def submit_flow_request(self, payload: dict[str, Any]) -> bool:
        """
        Forward a new-flow request to the Logic App.

        Returns False when no trigger is configured; the request is then only
        logged (file contents omitted).
        """
        summary = {k: v for k, v in payload.items() if k != "files"}
        summary["file_count"] = len(payload.get("files") or [])

        if not self.request_flow_url:
            logger.warning("No request flow trigger configured; request logged only")
            log_event("requests.not_forwarded", **summary)
            return False

        self._send("request_flow", self.request_flow_url, payload)
        log_event("requests.forwarded", **summary)
        return True


# Singleton instance
_client: LogicAppClient | None = None


def get_logic_app_client() -> LogicAppClient:
    global _client
    if _client is None:
        _client = LogicAppClient()
    return _client
