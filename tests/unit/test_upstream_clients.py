"""
Tests for the Function App and Logic App clients.

The Function App client runs against a stub requests session and the Logic
App client against httpx.MockTransport, so nothing leaves the process.
"""

from __future__ import annotations

from functools import partial

import httpx
import pytest
import requests

from customsops.infrastructure.retry import RetryPolicy, UpstreamError
from customsops.observability.telemetry import get_counter
from customsops.upstream.logic_app import LogicAppClient


class TestFunctionAppLogs:
    def test_logs_pass_the_key_as_code(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = stub_response(200, [{"runId": "r1"}])

        assert function_app_client.get_logs() == [{"runId": "r1"}]
        call = function_app_session.calls[0]
        assert call["params"] == {"code": "main-key"}
        assert call["timeout"] == function_app_client.timeout

    def test_company_is_a_path_segment(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs/ACME%20NV")] = stub_response(200, [])
        assert function_app_client.get_logs("ACME NV") == []
        assert function_app_session.calls[0]["path"] == "/api/logs/ACME%20NV"

    def test_non_list_payload_reads_as_empty(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = stub_response(200, {"message": "none"})
        assert function_app_client.get_logs() == []

    def test_reads_are_cached(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = stub_response(200, [{"runId": "r1"}])
        function_app_client.get_logs()
        function_app_client.get_logs()
        assert len(function_app_session.calls) == 1
        assert get_counter("upstream.cache_hits") == 1

        function_app_client.invalidate()
        function_app_client.get_logs()
        assert len(function_app_session.calls) == 2


class TestFunctionAppErrors:
    def test_http_error_keeps_status_and_hides_key(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = stub_response(500, {"error": "boom"})
        with pytest.raises(UpstreamError) as exc_info:
            function_app_client.get_logs()
        assert exc_info.value.status_code == 500
        assert "main-key" not in str(exc_info.value)
        assert "functions.example.test" not in str(exc_info.value)
        assert get_counter("upstream.errors") == 1

    def test_transport_failure(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = requests.exceptions.ConnectionError(
            "https://functions.example.test/api/logs?code=main-key"
        )
        with pytest.raises(UpstreamError) as exc_info:
            function_app_client.get_logs()
        assert exc_info.value.status_code is None
        assert "main-key" not in str(exc_info.value)

    def test_timeout(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = requests.exceptions.ReadTimeout()
        with pytest.raises(UpstreamError, match="timed out"):
            function_app_client.get_logs()

    def test_invalid_json(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = stub_response(200, invalid_json=True)
        with pytest.raises(UpstreamError, match="invalid JSON"):
            function_app_client.get_logs()

    def test_failures_are_not_cached(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/logs")] = [
            stub_response(503, None),
            stub_response(200, [{"runId": "r1"}]),
        ]
        with pytest.raises(UpstreamError):
            function_app_client.get_logs()
        assert function_app_client.get_logs() == [{"runId": "r1"}]

    def test_server_errors_are_retried(self, function_app_session, stub_response, monkeypatch):
        from customsops.upstream import function_app

        delays = []
        monkeypatch.setattr(function_app, "RetryPolicy", partial(RetryPolicy, sleep_fn=delays.append))
        function_app_session.routes[("GET", "/api/logs")] = [
            stub_response(502, None),
            stub_response(200, [{"runId": "r1"}]),
        ]
        client = function_app.FunctionAppClient(
            base_url="https://functions.example.test",
            key="main-key",
            session=function_app_session,
            max_attempts=2,
        )

        assert client.get_logs() == [{"runId": "r1"}]
        assert len(function_app_session.calls) == 2
        assert len(delays) == 1


class TestContainerChecks:
    def test_reads_the_data_array(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/ContainerWeightCheck")] = stub_response(
            200, {"data": [{"declarationId": 1}]}
        )
        assert function_app_client.get_container_checks() == [{"declarationId": 1}]

    def test_delete_sends_declaration_and_invalidates(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/ContainerWeightCheck")] = stub_response(200, {"data": []})
        function_app_session.routes[("DELETE", "/api/ContainerWeightCheck")] = stub_response(200, {"success": True})

        function_app_client.get_container_checks()
        function_app_client.delete_violation("1001")
        function_app_client.get_container_checks()

        methods = [c["method"] for c in function_app_session.calls]
        assert methods == ["GET", "DELETE", "GET"]
        assert function_app_session.calls[1]["params"] == {"declarationId": "1001", "code": "main-key"}

    def test_delete_without_success_flag_fails(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("DELETE", "/api/ContainerWeightCheck")] = stub_response(
            200, {"success": False, "error": "Not found"}
        )
        with pytest.raises(UpstreamError) as exc_info:
            function_app_client.delete_violation("9")
        assert exc_info.value.status_code == 502
        assert str(exc_info.value) == "Not found"


class TestPerformance:
    @pytest.mark.parametrize(
        "kwargs, expected",
        [
            ({}, {"code": "perf-code"}),
            ({"all_users": True}, {"code": "perf-code", "all_users": "true"}),
            ({"user": "JOHN.DOE"}, {"code": "perf-code", "user": "JOHN.DOE"}),
        ],
    )
    def test_modes(self, function_app_client, function_app_session, stub_response, kwargs, expected):
        function_app_session.routes[("GET", "/api/performance")] = stub_response(200, [])
        function_app_client.get_performance(**kwargs)
        assert function_app_session.calls[0]["params"] == expected

    def test_modes_are_cached_separately(self, function_app_client, function_app_session, stub_response):
        function_app_session.routes[("GET", "/api/performance")] = stub_response(200, [])
        function_app_client.get_performance()
        function_app_client.get_performance(all_users=True)
        function_app_client.get_performance()
        assert len(function_app_session.calls) == 2


class TestLogicApp:
    def test_master_records_posts_empty_body(self, logic_app_client, logic_app_calls, sample_arrivals):
        assert logic_app_client.get_master_records() == sample_arrivals
        assert logic_app_calls == [{"url": "https://logic.example.test/master", "body": {}}]

    def test_master_records_cached_until_refresh(self, logic_app_client, logic_app_calls):
        logic_app_client.get_master_records()
        logic_app_client.get_master_records()
        assert len(logic_app_calls) == 1

        logic_app_client.refresh_master_records()
        logic_app_client.get_master_records()
        assert len(logic_app_calls) == 2

    def test_bare_list_accepted(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[{"MRN": "X"}]))
        client = LogicAppClient("https://logic.example.test/m", "", client=httpx.Client(transport=transport))
        assert client.get_master_records() == [{"MRN": "X"}]

    def test_unexpected_shape_is_502(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"rows": []}))
        client = LogicAppClient("https://logic.example.test/m", "", client=httpx.Client(transport=transport))
        with pytest.raises(UpstreamError) as exc_info:
            client.get_master_records()
        assert exc_info.value.status_code == 502

    def test_not_configured_is_503(self):
        client = LogicAppClient("", "", client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200))))
        with pytest.raises(UpstreamError) as exc_info:
            client.get_master_records()
        assert exc_info.value.status_code == 503

    def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        client = LogicAppClient(
            "https://logic.example.test/m", "", client=httpx.Client(transport=transport), max_attempts=1
        )
        with pytest.raises(UpstreamError) as exc_info:
            client.get_master_records()
        assert exc_info.value.status_code == 404

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = LogicAppClient(
            "https://logic.example.test/m", "", client=httpx.Client(transport=httpx.MockTransport(handler)), max_attempts=1
        )
        with pytest.raises(UpstreamError, match="request failed"):
            client.get_master_records()

    def test_submit_flow_request(self, logic_app_client, logic_app_calls):
        assert logic_app_client.submit_flow_request({"principalName": "ACME", "files": []}) is True
        assert logic_app_calls[0]["url"] == "https://logic.example.test/request"
        assert logic_app_calls[0]["body"]["principalName"] == "ACME"

    def test_submit_without_trigger_only_logs(self, caplog):
        client = LogicAppClient("", "", client=httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(500))))
        with caplog.at_level("INFO"):
            forwarded = client.submit_flow_request(
                {"principalName": "ACME", "files": [{"name": "a.pdf", "content": "SECRETBYTES"}]}
            )
        assert forwarded is False
        assert "requests.not_forwarded" in caplog.text
        assert "SECRETBYTES" not in caplog.text
