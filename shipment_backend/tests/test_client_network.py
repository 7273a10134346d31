"""
Client-side server discovery and retry tests, driven by httpx.MockTransport.
"""

import httpx
import pytest

from shipment_backend.client.config import ClientSettings
from shipment_backend.client.network import (
    EndpointResolver,
    NetworkError,
    RetryPolicy,
    ShipmentApiClient,
    describe_error,
)


def _router(handlers):
    """MockTransport handler dispatching on host; unknown hosts refuse connections."""
    def handle(request: httpx.Request) -> httpx.Response:
        handler = handlers.get(request.url.host)
        if handler is None:
            raise httpx.ConnectError("connection refused", request=request)
        return handler(request)
    return handle


class FakeSleep:
    def __init__(self):
        self.calls = []
    
    async def __call__(self, delay):
        self.calls.append(delay)


def test_retry_policy_delays():
    assert list(RetryPolicy(max_attempts=3, delay=2.0).delays()) == [2.0, 2.0]
    assert list(RetryPolicy(max_attempts=4, delay=1.0, backoff_factor=2.0).delays()) == [1.0, 2.0, 4.0]
    assert list(RetryPolicy(max_attempts=1).delays()) == []


@pytest.mark.parametrize("kwargs", [
    {"max_attempts": 0},
    {"delay": -1},
    {"backoff_factor": 0.5},
])
def test_retry_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_policy_from_settings():
    policy = RetryPolicy.from_settings(ClientSettings(max_retries=5, retry_delay=0.5, backoff_factor=1.5))
    assert policy == RetryPolicy(max_attempts=5, delay=0.5, backoff_factor=1.5)


async def test_resolver_picks_first_healthy_candidate():
    transport = httpx.MockTransport(_router({
        "backup.local": lambda request: httpx.Response(200, json={"status": "healthy"}),
        "other.local": lambda request: httpx.Response(200, json={"status": "healthy"}),
    }))
    resolver = EndpointResolver(
        ["http://primary.local:3000/", "http://backup.local:3000", "http://other.local:3000"],
        transport=transport,
    )
    
    assert await resolver.resolve() == "http://backup.local:3000"


async def test_resolver_skips_unhealthy_status():
    transport = httpx.MockTransport(_router({
        "primary.local": lambda request: httpx.Response(503),
        "backup.local": lambda request: httpx.Response(200),
    }))
    resolver = EndpointResolver(["http://primary.local", "http://backup.local"], transport=transport)
    
    assert await resolver.resolve() == "http://backup.local"


async def test_resolver_raises_when_nothing_answers():
    resolver = EndpointResolver(["http://a.local", "http://b.local"], transport=httpx.MockTransport(_router({})))
    
    with pytest.raises(NetworkError) as exc_info:
        await resolver.resolve()
    assert "Cannot connect to any server" in str(exc_info.value)


def test_resolver_requires_candidates():
    with pytest.raises(ValueError):
        EndpointResolver([])


async def test_request_retries_server_errors_then_succeeds():
    attempts = []
    
    def api(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        attempts.append(request.url.path)
        if len(attempts) < 3:
            return httpx.Response(502)
        return httpx.Response(200, json=[])
    
    sleep = FakeSleep()
    transport = httpx.MockTransport(_router({"api.local": api}))
    client = ShipmentApiClient(
        EndpointResolver(["http://api.local"], transport=transport),
        policy=RetryPolicy(max_attempts=3, delay=2.0),
        transport=transport,
        sleep=sleep,
    )
    async with client:
        response = await client.request("GET", "/shipment")
    
    assert response.status_code == 200
    assert attempts == ["/shipment"] * 3
    assert sleep.calls == [2.0, 2.0]


async def test_request_returns_client_errors_without_retry():
    calls = []
    
    def api(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        calls.append(request)
        return httpx.Response(404, json={"error": "Shipment not found"})
    
    transport = httpx.MockTransport(_router({"api.local": api}))
    async with ShipmentApiClient(
        EndpointResolver(["http://api.local"], transport=transport),
        transport=transport,
        sleep=FakeSleep(),
    ) as client:
        response = await client.request("DELETE", "/delete-shipment/SHP123456")
    
    assert response.status_code == 404
    assert len(calls) == 1


async def test_request_gives_up_after_max_attempts():
    def api(request):
        if request.url.path == "/health":
            return httpx.Response(200)
        raise httpx.ReadTimeout("timed out", request=request)
    
    sleep = FakeSleep()
    transport = httpx.MockTransport(_router({"api.local": api}))
    async with ShipmentApiClient(
        EndpointResolver(["http://api.local"], transport=transport),
        policy=RetryPolicy(max_attempts=2, delay=0.1),
        transport=transport,
        sleep=sleep,
    ) as client:
        with pytest.raises(NetworkError) as exc_info:
            await client.request("GET", "/shipment")
    
    assert isinstance(exc_info.value.last_error, httpx.ReadTimeout)
    assert sleep.calls == [0.1]
    assert describe_error(exc_info.value)[0] == "Connection Timeout"


async def test_request_fails_over_when_cached_server_goes_down():
    primary_up = {"value": True}
    
    def primary(request):
        if not primary_up["value"]:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"server": "primary"})
    
    sleep = FakeSleep()
    transport = httpx.MockTransport(_router({
        "primary.local": primary,
        "backup.local": lambda request: httpx.Response(200, json={"server": "backup"}),
    }))
    async with ShipmentApiClient(
        EndpointResolver(["http://primary.local", "http://backup.local"], transport=transport),
        policy=RetryPolicy(max_attempts=3, delay=0.5),
        transport=transport,
        sleep=sleep,
    ) as client:
        first = await client.request("GET", "/shipment")
        primary_up["value"] = False
        second = await client.request("GET", "/shipment")
    
    assert first.json() == {"server": "primary"}
    assert second.json() == {"server": "backup"}
    assert client.base_url == "http://backup.local"
    assert sleep.calls == [0.5]


async def test_from_settings_wires_candidates():
    transport = httpx.MockTransport(_router({
        "127.0.0.1": lambda request: httpx.Response(200, json={"status": "healthy"}),
    }))
    client = ShipmentApiClient.from_settings(ClientSettings(), transport=transport)
    
    async with client:
        response = await client.request("GET", "/health")
    
    assert client.base_url == "http://127.0.0.1:3000"
    assert response.status_code == 200


def _status_error(code, body=None):
    request = httpx.Request("GET", "http://api.local/shipment")
    response = httpx.Response(code, json=body, request=request) if body is not None else httpx.Response(code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


@pytest.mark.parametrize("code, body, expected", [
    (400, {"message": "Missing or invalid fields: quantity"}, ("Validation Error", "Missing or invalid fields: quantity")),
    (401, {"error": "Invalid email or password"}, ("Authentication Error", "Invalid email or password")),
    (403, None, ("Access Denied", "You do not have permission to perform this action")),
    (404, {}, ("Not Found", "The requested resource was not found")),
])
def test_describe_error_uses_server_message(code, body, expected):
    assert describe_error(_status_error(code, body)) == expected


def test_describe_error_server_and_rate_limit():
    assert describe_error(_status_error(429))[0] == "Rate Limited"
    assert describe_error(_status_error(503, {"message": "internal detail"})) == (
        "Server Error", "Server is temporarily unavailable. Please try again later."
    )


def test_describe_error_network_failures():
    request = httpx.Request("GET", "http://api.local/health")
    
    assert describe_error(httpx.ConnectError("refused", request=request))[0] == "Network Error"
    assert describe_error(NetworkError("Cannot connect to any server"))[0] == "Network Error"
    assert describe_error(ValueError("odd")) == ("Error", "An unexpected error occurred")
