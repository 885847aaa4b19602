"""
Request-scoped dependencies for FastAPI.

Provides the caller context read from the forwarded bearer token and the
service objects (providers, shipment port) wired with their HTTP clients.
"""

from typing import AsyncIterator
import httpx
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import AuthenticationError
from cargo_backend.app.core.jwt import decode_forwarded_token
from cargo_backend.app.core.redis_client import get_redis
from cargo_backend.app.db.session import get_db
from cargo_backend.app.services.geo_resolver import GeoResolver
from cargo_backend.app.services.distance_engine import DistanceEngine
from cargo_backend.app.services.route_options import RouteOptionGenerator, RouteOptionStore
from cargo_backend.app.services.shipment_port import ShipmentStatusPort, HttpShipmentStatusClient

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    Read the caller identity from the forwarded bearer token.

    Returns:
        dict with the raw token (for passthrough) and its subject claims

    Raises:
        AuthenticationError: 401 if the token cannot be read
    """
    token = credentials.credentials
    payload = decode_forwarded_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    return {
        "token": token,
        "sub": payload.get("sub") or payload.get("preferred_username"),
        "user_id": payload.get("user_id"),
    }


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    """Per-request HTTP client for outbound provider calls."""
    async with httpx.AsyncClient(timeout=settings.provider_timeout_seconds) as client:
        yield client


async def get_geo_resolver(
    client: httpx.AsyncClient = Depends(get_http_client),
    redis=Depends(get_redis),
) -> GeoResolver:
    return GeoResolver(client, cache=redis)


async def get_distance_engine(
    client: httpx.AsyncClient = Depends(get_http_client),
) -> DistanceEngine:
    return DistanceEngine(client)


async def get_option_store(redis=Depends(get_redis)) -> RouteOptionStore:
    return RouteOptionStore(redis)


async def get_route_option_generator(
    db: AsyncSession = Depends(get_db),
    geo_resolver: GeoResolver = Depends(get_geo_resolver),
    distance_engine: DistanceEngine = Depends(get_distance_engine),
    store: RouteOptionStore = Depends(get_option_store),
) -> RouteOptionGenerator:
    return RouteOptionGenerator(db, geo_resolver, distance_engine, store)


async def get_shipment_port(
    client: httpx.AsyncClient = Depends(get_http_client),
) -> ShipmentStatusPort:
    return HttpShipmentStatusClient(client)
