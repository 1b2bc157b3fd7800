import asyncio

import pytest
import requests

from policyboard import api_client
from policyboard.api_client import AnalyticsClient, ApiError, CancelToken, RequestCancelled, unwrap_envelope


class FakeResponse:
    def __init__(self, status_code=200, body=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self):
        if isinstance(self._body, Exception):
            raise self._body
        return self._body


@pytest.fixture
def captured(monkeypatch):
    calls = []
    responses = []

    def fake_get(url, params=None, timeout=None):
        calls.append({"url": url, "params": params, "timeout": timeout})
        return responses.pop(0)

    monkeypatch.setattr(api_client.requests, "get", fake_get)
    return calls, responses


def test_build_url_joins_base_and_resource() -> None:
    client = AnalyticsClient("http://backend:3001/")

    assert client._build_url("/api/brokers/performance?date_range=all_time") == (
        "http://backend:3001/api/brokers/performance?date_range=all_time"
    )


def test_get_json_returns_decoded_body(captured) -> None:
    calls, responses = captured
    responses.append(FakeResponse(body={"success": True, "data": []}))

    body = AnalyticsClient("http://backend", timeout=5).get_json("/api/executive/kpis")

    assert body == {"success": True, "data": []}
    assert calls == [{"url": "http://backend/api/executive/kpis", "params": None, "timeout": 5}]


def test_non_2xx_raises_with_status_message(captured) -> None:
    _, responses = captured
    responses.append(FakeResponse(status_code=503, reason="Service Unavailable"))

    with pytest.raises(ApiError, match=r"^HTTP 503: Service Unavailable$"):
        AnalyticsClient("http://backend").get_json("/api/alerts/summary")


def test_cancelled_token_skips_request(captured) -> None:
    calls, _ = captured
    token = CancelToken()
    token.cancel()

    with pytest.raises(RequestCancelled):
        AnalyticsClient("http://backend").get_json("/api/alerts/summary", token)
    assert calls == []


def test_cancellation_during_request_discards_response(monkeypatch) -> None:
    token = CancelToken()

    def fake_get(url, params=None, timeout=None):
        token.cancel()
        return FakeResponse(body={"late": True})

    monkeypatch.setattr(api_client.requests, "get", fake_get)

    with pytest.raises(RequestCancelled):
        AnalyticsClient("http://backend").get_json("/api/alerts/summary", token)


def test_fetch_json_runs_in_thread(captured) -> None:
    _, responses = captured
    responses.append(FakeResponse(body=[{"state": "GOA"}]))

    body = asyncio.run(AnalyticsClient("http://backend").fetch_json("/api/geographic/states", CancelToken()))

    assert body == [{"state": "GOA"}]


def test_get_payload_passes_params_and_unwraps(captured) -> None:
    calls, responses = captured
    responses.append(FakeResponse(body={"success": True, "data": [{"broker_name": "Acme"}]}))

    payload = AnalyticsClient("http://backend").get_payload(
        "/api/brokers/performance", params={"date_range": "all_time"}
    )

    assert payload == [{"broker_name": "Acme"}]
    assert calls[0]["params"] == {"date_range": "all_time"}


def test_invalid_json_propagates(captured) -> None:
    _, responses = captured
    responses.append(FakeResponse(body=requests.JSONDecodeError("Expecting value", "", 0)))

    with pytest.raises(ValueError):
        AnalyticsClient("http://backend").get_json("/api/health")


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"success": True, "data": {"a": 1}, "meta": {"rows": 1}}, {"a": 1}),
        ({"success": True, "data": None}, None),
        ({"success": False, "data": [1]}, {"success": False, "data": [1]}),
        ({"success": True}, {"success": True}),
        ([1, 2], [1, 2]),
    ],
)
def test_unwrap_envelope(body, expected) -> None:
    assert unwrap_envelope(body) == expected
