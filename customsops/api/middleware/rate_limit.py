"""Per-IP request rate limiting for the dashboard API.

Buckets live in process memory, so each worker limits on its own.
"""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from customsops.config import RATE_LIMIT_MAX_IPS, is_development
from customsops.observability.telemetry import log_event

# App Service's front end adds this header; X-Forwarded-For is only trusted with it
TRUSTED_PROXY_HEADER = "X-ARR-LOG-ID"

EXEMPT_PATHS = ("/", "/health")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Sliding-window limits per client IP, one per minute and one per hour."""

    def __init__(
        self,
        app: Any,
        requests_per_minute: int = 120,
        requests_per_hour: int = 3000,
        max_ips: int = RATE_LIMIT_MAX_IPS,
    ) -> None:
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.requests_per_hour = requests_per_hour

        # {ip: [timestamp, ...]}; idle IPs expire on their own
        self.minute_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_ips, ttl=120)
        self.hour_buckets: TTLCache[str, list[float]] = TTLCache(maxsize=max_ips, ttl=7200)

    @staticmethod
    def _is_valid_ip(ip_str: str) -> bool:
        try:
            ipaddress.ip_address(ip_str)
            return True
        except ValueError:
            return False

    def _forwarded_ip(self, request: Request) -> str | None:
        forwarded = request.headers.get("X-Forwarded-For")
        if not forwarded:
            return None
        # App Service appends ":port" to IPv4 entries
        ip = forwarded.split(",")[0].strip()
        if ip.count(":") == 1:
            ip = ip.split(":")[0]
        return ip if self._is_valid_ip(ip) else None

    def _get_client_ip(self, request: Request) -> str:
        if TRUSTED_PROXY_HEADER in request.headers or is_development():
            ip = self._forwarded_ip(request)
            if ip:
                return ip
        return request.client.host if request.client else "unknown"

    @staticmethod
    def _recent(bucket: list[float], max_age_seconds: int, now: float) -> list[float]:
        return [ts for ts in bucket if now - ts < max_age_seconds]

    def _reject(self, client_ip: str, window: str, count: int, limit: int, retry_after: int) -> Response:
        log_event("api.rate_limit.exceeded", ip=client_ip, limit=window, count=count)
        return JSONResponse(
            status_code=429,
            content={
                "detail": f"Rate limit exceeded. Maximum {limit} requests per {window}.",
                "retry_after": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = self._get_client_ip(request)
        now = time.time()

        minute_bucket = self._recent(self.minute_buckets.get(client_ip, []), 60, now)
        hour_bucket = self._recent(self.hour_buckets.get(client_ip, []), 3600, now)

        if len(minute_bucket) >= self.requests_per_minute:
            self.minute_buckets[client_ip] = minute_bucket
            return self._reject(client_ip, "minute", len(minute_bucket), self.requests_per_minute, 60)

        if len(hour_bucket) >= self.requests_per_hour:
            self.hour_buckets[client_ip] = hour_bucket
            return self._reject(client_ip, "hour", len(hour_bucket), self.requests_per_hour, 3600)

        minute_bucket.append(now)
        hour_bucket.append(now)
        self.minute_buckets[client_ip] = minute_bucket
        self.hour_buckets[client_ip] = hour_bucket

        response = await call_next(request)

        response.headers["X-RateLimit-Limit-Minute"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining-Minute"] = str(
            max(0, self.requests_per_minute - len(minute_bucket))
        )
        response.headers["X-RateLimit-Limit-Hour"] = str(self.requests_per_hour)
        response.headers["X-RateLimit-Remaining-Hour"] = str(
            max(0, self.requests_per_hour - len(hour_bucket))
        )
        return response
