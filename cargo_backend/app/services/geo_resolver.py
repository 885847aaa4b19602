"""
Geo resolver.

Turns a free-text address or a raw coordinate pair into a GeoPoint.
Free text is geocoded with a single Nominatim request (no retries);
successful lookups are cached in Redis.
"""

import json
import logging
from typing import Any, Optional, Sequence, Union

import httpx
from redis.exceptions import RedisError

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import GeocodingFailure, InvalidCoordinates
from cargo_backend.app.schemas.geo import GeoPoint

logger = logging.getLogger(__name__)

GEOCODE_CACHE_PREFIX = "geocode:"

LocationInput = Union[GeoPoint, str, Sequence[float]]


def _valid_pair(latitude: float, longitude: float) -> bool:
    return -90 <= latitude <= 90 and -180 <= longitude <= 180


def parse_coordinates(text: str) -> Optional[tuple]:
    """
    Parse a "lat,lon" string.

    Returns:
        (latitude, longitude) floats, or None if the text is not a coordinate pair
    """
    parts = text.split(",")
    if len(parts) != 2:
        return None
    try:
        return float(parts[0].strip()), float(parts[1].strip())
    except ValueError:
        return None


class GeoResolver:
    """Resolves addresses and coordinate pairs to points."""

    def __init__(self, client: httpx.AsyncClient, cache: Any = None):
        self.client = client
        self.cache = cache

    async def resolve(self, value: LocationInput) -> GeoPoint:
        """
        Resolve a location to a GeoPoint.

        Coordinate pairs are bounds-checked and returned unchanged;
        anything else is geocoded.

        Raises:
            InvalidCoordinates: coordinate pair outside valid ranges
            GeocodingFailure: provider error or no match
        """
        if isinstance(value, GeoPoint):
            return value

        if isinstance(value, str):
            pair = parse_coordinates(value)
            if pair is None:
                return await self.geocode(value)
            latitude, longitude = pair
        else:
            if len(value) != 2:
                raise InvalidCoordinates(None, None)
            latitude, longitude = float(value[0]), float(value[1])

        if not _valid_pair(latitude, longitude):
            raise InvalidCoordinates(latitude, longitude)
        return GeoPoint(latitude=latitude, longitude=longitude)

    async def geocode(self, address: str) -> GeoPoint:
        query = address.strip()
        if not query:
            raise GeocodingFailure(address, "Empty address")

        cache_key = GEOCODE_CACHE_PREFIX + query.lower()
        cached = await self._cache_get(cache_key)
        if cached:
            return GeoPoint(**json.loads(cached))

        try:
            response = await self.client.get(
                f"{settings.nominatim_base_url}/search",
                params={"q": query, "format": "json", "limit": 1},
                headers={"User-Agent": settings.geocoder_user_agent},
                timeout=settings.provider_timeout_seconds,
            )
            response.raise_for_status()
            results = response.json()
        except httpx.HTTPError as exc:
            logger.warning("Geocoding request failed for %r: %s", query, exc)
            raise GeocodingFailure(query, f"Provider error: {exc.__class__.__name__}")
        except ValueError:
            raise GeocodingFailure(query, "Malformed provider response")

        if not isinstance(results, list) or not results:
            raise GeocodingFailure(query)

        try:
            latitude = float(results[0]["lat"])
            longitude = float(results[0]["lon"])
        except (KeyError, TypeError, ValueError):
            raise GeocodingFailure(query, "Malformed provider response")

        if not _valid_pair(latitude, longitude):
            raise GeocodingFailure(query, "Provider returned out-of-range coordinates")

        point = GeoPoint(latitude=latitude, longitude=longitude)
        await self._cache_set(cache_key, point.model_dump_json())
        return point

    async def reverse(self, point: GeoPoint) -> Optional[str]:
        """
        Reverse geocode a point to a display name.

        Returns None when the provider knows nothing at that point.
        """
        try:
            response = await self.client.get(
                f"{settings.nominatim_base_url}/reverse",
                params={"lat": point.latitude, "lon": point.longitude, "format": "json"},
                headers={"User-Agent": settings.geocoder_user_agent},
                timeout=settings.provider_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise GeocodingFailure(f"{point.latitude},{point.longitude}", f"Provider error: {exc.__class__.__name__}")
        except ValueError:
            raise GeocodingFailure(f"{point.latitude},{point.longitude}", "Malformed provider response")

        if not isinstance(payload, dict):
            return None
        return payload.get("display_name")

    async def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        try:
            return await self.cache.get(key)
        except RedisError as exc:
            logger.warning("Geocode cache read failed: %s", exc)
            return None

    async def _cache_set(self, key: str, value: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value, ex=settings.geocode_cache_ttl_seconds)
        except RedisError as exc:
            logger.warning("Geocode cache write failed: %s", exc)
