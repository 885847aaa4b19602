"""
Failure Injection Tests.

Validates resilience against provider and downstream service failures.
"""

import json

import httpx
import pytest
from decimal import Decimal
from redis.exceptions import ConnectionError as RedisConnectionError

from cargo_backend.app.core.exceptions import CascadeNotificationFailure
from cargo_backend.app.core.reliability import CircuitBreaker, CircuitOpenError
from cargo_backend.app.services.geo_resolver import GeoResolver
from cargo_backend.app.services.shipment_port import HttpShipmentStatusClient


async def failing_func():
    raise ValueError("Boom")


async def ok_func():
    return "ok"


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(ok_func)


@pytest.mark.asyncio
async def test_circuit_breaker_counts_consecutive_failures():
    """A success in between resets the count."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert await cb.call(ok_func) == "ok"
    with pytest.raises(ValueError):
        await cb.call(failing_func)

    assert cb.state == "CLOSED"


@pytest.mark.asyncio
async def test_half_open_probe():
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=60)
    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    # Reset timeout elapsed: one probe goes through and its failure reopens
    cb.last_failure_time = 0
    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    cb.last_failure_time = 0
    assert await cb.call(ok_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_shipment_client_sends_completion_with_bearer():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "COMPLETED"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        port = HttpShipmentStatusClient(client, base_url="http://shipments.local/")
        await port.mark_completed(42, Decimal("350.00"), Decimal("300.00"), "token-abc")

    request = seen[0]
    assert request.method == "PATCH"
    assert str(request.url) == "http://shipments.local/api/v1/shipments/42/complete"
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert json.loads(request.content) == {"final_cost": "350.00", "final_duration_minutes": "300.00"}


@pytest.mark.asyncio
async def test_shipment_client_sends_in_transit_with_bearer():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"status": "IN_TRANSIT"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        port = HttpShipmentStatusClient(client, base_url="http://shipments.local")
        await port.mark_in_transit(42, "token-abc")

    request = seen[0]
    assert request.method == "PATCH"
    assert str(request.url) == "http://shipments.local/api/v1/shipments/42/status"
    assert request.headers["Authorization"] == "Bearer token-abc"
    assert json.loads(request.content) == {"status": "IN_TRANSIT"}


@pytest.mark.asyncio
async def test_shipment_client_in_transit_failure():
    def handler(request):
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        port = HttpShipmentStatusClient(client, base_url="http://shipments.local")
        with pytest.raises(CascadeNotificationFailure) as exc_info:
            await port.mark_in_transit(42, None)

    assert "in-transit" in exc_info.value.message
    assert "500" in exc_info.value.message


@pytest.mark.asyncio
async def test_shipment_client_error_status_is_cascade_failure():
    def handler(request):
        return httpx.Response(503)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        port = HttpShipmentStatusClient(client, base_url="http://shipments.local")
        with pytest.raises(CascadeNotificationFailure) as exc_info:
            await port.mark_completed(42, Decimal("1"), Decimal("1"), None)

    assert "503" in exc_info.value.message
    assert exc_info.value.details["shipment_id"] == 42


@pytest.mark.asyncio
async def test_shipment_client_unreachable_is_cascade_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        port = HttpShipmentStatusClient(client, base_url="http://shipments.local")
        with pytest.raises(CascadeNotificationFailure):
            await port.mark_completed(42, Decimal("1"), Decimal("1"), "token")


@pytest.mark.asyncio
async def test_geocoding_survives_redis_outage(provider_client, mocker):
    """A broken cache only costs a provider call."""
    cache = mocker.AsyncMock()
    cache.get.side_effect = RedisConnectionError("redis down")
    cache.set.side_effect = RedisConnectionError("redis down")

    point = await GeoResolver(provider_client, cache=cache).resolve("Cordoba")

    assert point.latitude == -31.4201
    cache.set.assert_awaited_once()
