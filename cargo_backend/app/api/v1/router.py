"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from cargo_backend.app.api.v1.endpoints import (
    geo, pricing, route_options, routes, legs,
    admin_ops, catalog
)

router = APIRouter()

# Geocoding and distance
router.include_router(geo.router)

# Estimated and real price
router.include_router(pricing.router)

# Route option generation and selection
router.include_router(route_options.router)
router.include_router(routes.router)

# Leg lifecycle
router.include_router(legs.router)

# Ops endpoints (notification retries, audit trail)
router.include_router(admin_ops.router)

# Reference data
router.include_router(catalog.router)
