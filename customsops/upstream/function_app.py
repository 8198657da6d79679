"""
Azure Function App client: flow logs, container weight checks, performance stats.

All calls authenticate with a ``code`` query parameter. Read responses are
cached for ``UPSTREAM_CACHE_TTL`` seconds and failed calls are retried once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import requests
from cachetools import TTLCache

from customsops.config import (
    FUNCTION_APP_KEY,
    FUNCTION_APP_URL,
    PERFORMANCE_API_CODE,
    PERFORMANCE_API_URL,
    UPSTREAM_CACHE_TTL,
    UPSTREAM_MAX_ATTEMPTS,
    UPSTREAM_TIMEOUT,
)
from customsops.infrastructure.retry import RetryPolicy, UpstreamError
from customsops.observability.logging import get_logger
from customsops.observability.telemetry import counter, time_block

logger = get_logger(__name__)

_CACHE_MAX_SIZE = 256


class FunctionAppClient:
    def __init__(
        self,
        base_url: str = FUNCTION_APP_URL,
        key: str = FUNCTION_APP_KEY,
        performance_url: str = PERFORMANCE_API_URL,
        performance_code: str = PERFORMANCE_API_CODE,
        session: requests.Session | None = None,
        timeout: float = UPSTREAM_TIMEOUT,
        cache_ttl: int = UPSTREAM_CACHE_TTL,
        max_attempts: int = UPSTREAM_MAX_ATTEMPTS,
    ):
        self.base_url = base_url.rstrip("/")
        self.key = key
        self.performance_url = performance_url.rstrip("/")
        self.performance_code = performance_code
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._cache: TTLCache[tuple, Any] = TTLCache(maxsize=_CACHE_MAX_SIZE, ttl=cache_ttl)
        self._cache_lock = threading.Lock()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _call(self, stage: str, method: str, url: str, params: dict[str, Any]) -> Any:
        """One HTTP round trip. Error messages never include the URL (it carries the key)."""
        try:
            response = self.session.request(method, url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise UpstreamError(f"{stage} timed out") from e
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"{stage} request failed: {type(e).__name__}") from e

        if response.status_code >= 400:
            raise UpstreamError(
                f"{stage} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(f"{stage} returned invalid JSON", status_code=response.status_code) from e

    def _request(self, stage: str, method: str, url: str, params: dict[str, Any]) -> Any:
        policy = RetryPolicy(stage=stage, max_attempts=self.max_attempts)
        with time_block(f"upstream.{stage}"):
            try:
                return policy.execute(self._call, stage, method, url, params)
            except UpstreamError as e:
                counter("upstream.errors")
                logger.warning("Upstream call %s failed: %s", stage, e)
                raise

    def _cached(self, key: tuple, fetch: Callable[[], Any]) -> Any:
        with self._cache_lock:
            if key in self._cache:
                counter("upstream.cache_hits")
                return self._cache[key]

        value = fetch()
        with self._cache_lock:
            self._cache[key] = value
        return value

    def invalidate(self, *keys: tuple) -> None:
        """Drop the given cache keys, or everything when none are passed."""
        with self._cache_lock:
            if not keys:
                self._cache.clear()
                return
            for key in keys:
                self._cache.pop(key, None)

    # ------------------------------------------------------------------
    # Flow logs
    # ------------------------------------------------------------------

    def get_logs(self, company: str = "") -> list[dict[str, Any]]:
        """Raw flow-run log entries, optionally for one company."""
        url = f"{self.base_url}/api/logs"
        if company:
            url = f"{url}/{quote(company, safe='')}"

        def fetch() -> list[dict[str, Any]]:
            data = self._request("logs", "GET", url, {"code": self.key})
            if not isinstance(data, list):
                logger.warning("Logs endpoint returned %s instead of a list", type(data).__name__)
                return []
            return data

        return self._cached(("logs", company), fetch)

    # ------------------------------------------------------------------
    # Container weight checks
    # ------------------------------------------------------------------

    def get_container_checks(self) -> list[dict[str, Any]]:
        url = f"{self.base_url}/api/ContainerWeightCheck"

        def fetch() -> list[dict[str, Any]]:
            data = self._request("container_checks", "GET", url, {"code": self.key})
            entries = data.get("data") if isinstance(data, dict) else data
            return entries if isinstance(entries, list) else []

        return self._cached(("container_checks",), fetch)

    def delete_violation(self, declaration_id: str) -> dict[str, Any]:
        """
        Delete one violation upstream and drop the cached list.

        Raises:
            UpstreamError: on transport failure, HTTP error, or ``success: false``
        """
        url = f"{self.base_url}/api/ContainerWeightCheck"
        data = self._request(
            "container_delete",
            "DELETE",
            url,
            {"declarationId": declaration_id, "code": self.key},
        )
        self.invalidate(("container_checks",))

        if not isinstance(data, dict) or not data.get("success"):
            message = data.get("error") if isinstance(data, dict) else None
            raise UpstreamError(message or "Failed to delete violation", status_code=502)

        logger.info("Deleted container violation %s", declaration_id)
        return data

    # ------------------------------------------------------------------
    # Performance statistics
    # ------------------------------------------------------------------

    def get_performance(self, user: str | None = None, all_users: bool = False) -> Any:
        """
        ``/api/performance`` in one of its three modes.

        No arguments: team overview list. ``all_users``: monthly per-user
        metrics. ``user``: one user's daily metrics and summary.
        """
        params: dict[str, Any] = {"code": self.performance_code}
        if user:
            params["user"] = user
        elif all_users:
            params["all_users"] = "true"

        url = f"{self.performance_url}/api/performance"
        return self._cached(
            ("performance", user or "", all_users),
            lambda: self._request("performance", "GET", url, params),
        )


# Singleton instance
_client: FunctionAppClient | None = None


def get_function_app_client() -> FunctionAppClient:
    global _client
    if _client is None:
        _client = FunctionAppClient()
    return _client
