"""
Route Options API Endpoints.

Generates ranked candidate routes for a cargo. Options are held for a
limited time and selected through the routes endpoint.
"""

from fastapi import APIRouter, Depends

from cargo_backend.app.core.dependencies import get_caller, get_route_option_generator
from cargo_backend.app.schemas.route_option import CargoSpec, RouteOptionRequest, RouteOptionsResponse
from cargo_backend.app.services.route_options import RouteOptionGenerator

router = APIRouter(prefix="/route-options", tags=["Route Options"])


@router.post("", response_model=RouteOptionsResponse)
async def generate_route_options(
    request: RouteOptionRequest,
    current_user: dict = Depends(get_caller),
    generator: RouteOptionGenerator = Depends(get_route_option_generator),
):
    """
    Generate route options, cheapest first.

    Candidates are the direct route and routes through deposits within the
    detour budget, or a single route through `via_deposit_ids` when given.
    """
    options = await generator.generate(
        request.origin,
        request.destination,
        CargoSpec(weight_kg=request.weight_kg, volume_m3=request.volume_m3),
        via_deposit_ids=request.via_deposit_ids,
    )
    first, last = options[0].legs[0], options[0].legs[-1]

    return RouteOptionsResponse(
        origin=first.origin.point,
        destination=last.destination.point,
        options=options,
        total_options=len(options),
    )
