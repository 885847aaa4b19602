"""
Distance engine.

Road distance and travel time from an OSRM-compatible routing provider,
with a great-circle (haversine) fallback so pricing is never blocked by a
provider outage. The fallback is deterministic and cannot fail.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence

import httpx

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import DistanceResolutionError
from cargo_backend.app.core.reliability import CircuitBreaker, CircuitOpenError, routing_circuit_breaker
from cargo_backend.app.schemas.geo import DistanceResult, GeoPoint
from cargo_backend.app.services.geo_features import point_distance

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")

SOURCE_PROVIDER = "routing_provider"
SOURCE_HAVERSINE = "haversine"


def to_decimal(value: float) -> Decimal:
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_duration(minutes: Decimal) -> str:
    """Format minutes as e.g. '2h 05m'."""
    total = int(Decimal(minutes).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return "%dh %02dm" % (total // 60, total % 60)


def fallback_duration_minutes(distance_km: Decimal) -> Decimal:
    speed = Decimal(str(settings.assumed_average_speed_kmh))
    return (distance_km / speed * 60).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def haversine_result(points: Sequence[GeoPoint]) -> DistanceResult:
    """Great-circle distance along the given points, with duration at the assumed average speed."""
    total = sum(
        (to_decimal(point_distance(a, b)) for a, b in zip(points, points[1:])),
        Decimal("0.00"),
    )
    return DistanceResult(
        distance_km=total,
        duration_minutes=fallback_duration_minutes(total),
        geometry=None,
        source=SOURCE_HAVERSINE,
    )


class DistanceEngine:
    """
    Distance resolution between points.

    Args:
        client: HTTP client used for the routing provider
        breaker: circuit breaker guarding the provider (shared by default)
        allow_fallback: use haversine when the provider fails; when False,
            provider failures raise DistanceResolutionError
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        breaker: Optional[CircuitBreaker] = None,
        allow_fallback: Optional[bool] = None,
    ):
        self.client = client
        self.breaker = breaker or routing_circuit_breaker
        self.allow_fallback = settings.allow_distance_fallback if allow_fallback is None else allow_fallback

    async def distance(self, a: GeoPoint, b: GeoPoint) -> DistanceResult:
        """Distance and duration from a to b."""
        return await self.route_through([a, b])

    async def route_through(self, points: List[GeoPoint]) -> DistanceResult:
        """
        Distance and duration along an ordered list of waypoints,
        resolved as a single provider request.
        """
        if len(points) < 2:
            raise ValueError("At least two points are required")

        if all(p == points[0] for p in points[1:]):
            return haversine_result(points)

        try:
            return await self.breaker.call(self._request_route, points)
        except CircuitOpenError:
            reason = "circuit open"
        except httpx.HTTPError as exc:
            reason = f"{exc.__class__.__name__}: {exc}"
        except ValueError as exc:
            reason = f"malformed response: {exc}"

        if not self.allow_fallback:
            raise DistanceResolutionError(f"Routing provider unavailable ({reason})")

        logger.warning("Routing provider failed (%s); using haversine fallback", reason)
        return haversine_result(points)

    async def _request_route(self, points: List[GeoPoint]) -> DistanceResult:
        path = ";".join(p.as_lon_lat() for p in points)
        url = f"{settings.osrm_base_url}/route/v1/{settings.osrm_profile}/{path}"

        response = await self.client.get(
            url,
            params={"overview": "full", "geometries": "polyline"},
            timeout=settings.provider_timeout_seconds,
        )
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict) or data.get("code") != "Ok":
            raise ValueError(f"unexpected code {data.get('code') if isinstance(data, dict) else None!r}")

        routes = data.get("routes")
        if not routes or not isinstance(routes, list):
            raise ValueError("missing routes")

        route = routes[0]
        if not isinstance(route, dict):
            raise ValueError("malformed route")
        meters = route.get("distance")
        seconds = route.get("duration")
        if isinstance(meters, bool) or not isinstance(meters, (int, float)):
            raise ValueError("missing distance")
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            raise ValueError("missing duration")
        if meters < 0 or seconds < 0:
            raise ValueError("negative distance or duration")

        geometry = route.get("geometry")
        return DistanceResult(
            distance_km=to_decimal(meters / 1000.0),
            duration_minutes=to_decimal(seconds / 60.0),
            geometry=geometry if isinstance(geometry, str) else None,
            source=SOURCE_PROVIDER,
        )
