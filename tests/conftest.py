"""
Pytest configuration shared by unit and integration tests

Upstreams are never called: the Function App client gets a stub
requests.Session and the Logic App client an httpx.MockTransport.
"""

from __future__ import annotations

import os

# Settings are read at import time
os.environ.setdefault("CUSTOMSOPS_ENV", "test")
os.environ.setdefault("CUSTOMSOPS_RATE_LIMIT_RPM", "100000")
os.environ.setdefault("CUSTOMSOPS_RATE_LIMIT_RPH", "1000000")
os.environ.setdefault("CUSTOMSOPS_ROLE_MAP", "admin@example.com:admin,lead@example.com:Team Leader|manager")

import base64  # noqa: E402
import json  # noqa: E402
from datetime import timedelta  # noqa: E402
from typing import Any  # noqa: E402
from urllib.parse import urlsplit  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from customsops.observability.telemetry import reset_telemetry  # noqa: E402
from customsops.tracking.store import TrackingStore  # noqa: E402
from customsops.upstream.function_app import FunctionAppClient  # noqa: E402
from customsops.upstream.logic_app import LogicAppClient  # noqa: E402
from customsops.utils.dates import iso_timestamp, utc_now  # noqa: E402

MASTER_RECORDS_URL = "https://logic.example.test/master"
REQUEST_FLOW_URL = "https://logic.example.test/request"


class StubResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, invalid_json: bool = False):
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value")
        return self._payload


class StubSession:
    """Replays canned responses keyed by (method, path) and records every call."""

    def __init__(self, routes: dict[tuple[str, str], Any] | None = None):
        self.routes = routes or {}
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, params=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append({"method": method, "path": path, "params": dict(params or {}), "timeout": timeout})
        result = self.routes.get((method, path))
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if isinstance(result, Exception):
            raise result
        if result is None:
            return StubResponse(404, {"error": "not found"})
        return result


@pytest.fixture(autouse=True)
def _clean_telemetry():
    reset_telemetry()
    yield
    reset_telemetry()


@pytest.fixture
def tracking_store(tmp_path):
    return TrackingStore(tmp_path / "tracking-data.json")


def _days_ago(days: float) -> str:
    return iso_timestamp(utc_now() - timedelta(days=days))


@pytest.fixture
def sample_arrivals() -> list[dict[str, Any]]:
    """One arrival per status, released at different times."""
    return [
        {
            "MRN": "24BE0001",
            "DECLARATIONID": 1001,
            "COMMERCIALREFERENCE": "REF-ALPHA",
            "GDSREL_DATETIME": _days_ago(1),
            "TOTAL_PACKAGES": 10,
            "TOTAL_ITEM_GROSSMASS": 250.5,
            "saldo": 0,
            "Outbounds": [{"MRN": "OUT-1", "DECLARATIONID": 5001, "PACKAGES": 10}],
        },
        {
            "MRN": "24BE0002",
            "DECLARATIONID": 1002,
            "COMMERCIALREFERENCE": "REF-BRAVO",
            "GDSREL_DATETIME": _days_ago(5),
            "TOTAL_PACKAGES": 20,
            "TOTAL_ITEM_GROSSMASS": 400,
            "saldo": 4,
            "Outbounds": [
                {"MRN": "OUT-2", "DECLARATIONID": 5003, "PACKAGES": 6},
                {"MRN": "OUT-3", "DECLARATIONID": 5002, "PACKAGES": 10},
            ],
        },
        {
            "MRN": "24BE0003",
            "DECLARATIONID": 1003,
            "COMMERCIALREFERENCE": "REF-CHARLIE",
            "GDSREL_DATETIME": _days_ago(3.5),
            "TOTAL_PACKAGES": 7,
            "TOTAL_ITEM_GROSSMASS": 90,
            "saldo": 7,
            "Outbounds": [],
        },
        {
            "MRN": "24BE0004",
            "DECLARATIONID": 1004,
            "COMMERCIALREFERENCE": "REF-DELTA",
            "GDSREL_DATETIME": None,
            "saldo": None,
        },
    ]


@pytest.fixture
def logic_app_calls() -> list[dict[str, Any]]:
    return []


@pytest.fixture
def logic_app_client(sample_arrivals, logic_app_calls) -> LogicAppClient:
    """Logic App client whose triggers answer from ``sample_arrivals``."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        logic_app_calls.append({"url": str(request.url), "body": body})
        if str(request.url) == MASTER_RECORDS_URL:
            return httpx.Response(200, json={"records": sample_arrivals})
        if str(request.url) == REQUEST_FLOW_URL:
            return httpx.Response(202, json={})
        return httpx.Response(404)

    return LogicAppClient(
        master_records_url=MASTER_RECORDS_URL,
        request_flow_url=REQUEST_FLOW_URL,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        max_attempts=1,
    )


@pytest.fixture
def function_app_session() -> StubSession:
    return StubSession()


@pytest.fixture
def function_app_client(function_app_session) -> FunctionAppClient:
    return FunctionAppClient(
        base_url="https://functions.example.test",
        key="main-key",
        performance_url="https://perf.example.test",
        performance_code="perf-code",
        session=function_app_session,
        max_attempts=1,
    )


@pytest.fixture
def api_client(tracking_store, logic_app_client, function_app_client):
    """TestClient with the store and both upstream clients swapped for test doubles."""
    from fastapi.testclient import TestClient

    from customsops.api.app import app
    from customsops.tracking.store import get_tracking_store
    from customsops.upstream.function_app import get_function_app_client
    from customsops.upstream.logic_app import get_logic_app_client

    app.dependency_overrides[get_tracking_store] = lambda: tracking_store
    app.dependency_overrides[get_logic_app_client] = lambda: logic_app_client
    app.dependency_overrides[get_function_app_client] = lambda: function_app_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _easy_auth_headers(name: str = "Jane Operator", email: str = "jane@example.com", user_id: str = "u-1") -> dict[str, str]:
    """Headers App Service adds for a signed-in user."""
    principal = {
        "auth_typ": "aad",
        "claims": [
            {"typ": "name", "val": name},
            {"typ": "preferred_username", "val": email},
        ],
    }
    return {
        "X-MS-CLIENT-PRINCIPAL-NAME": email,
        "X-MS-CLIENT-PRINCIPAL-ID": user_id,
        "X-MS-CLIENT-PRINCIPAL": base64.b64encode(json.dumps(principal).encode()).decode(),
    }


@pytest.fixture
def easy_auth_headers():
    """Factory for Easy Auth headers: ``easy_auth_headers(name=..., email=...)``."""
    return _easy_auth_headers


@pytest.fixture
def stub_response():
    """The StubResponse class, for queuing canned Function App answers."""
    return StubResponse
