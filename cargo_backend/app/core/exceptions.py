"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised when the forwarded credential cannot be read."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class GeocodingFailure(AppException):
    """Raised when a free-text address cannot be turned into coordinates."""

    def __init__(self, query: str, reason: str = "No match found"):
        super().__init__(
            message=f"Could not geocode '{query}': {reason}",
            error_code="ERR_GEO_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"query": query, "reason": reason}
        )


class InvalidCoordinates(AppException):
    """Raised when a coordinate pair is outside the valid latitude/longitude range."""

    def __init__(self, latitude: Any, longitude: Any):
        super().__init__(
            message=f"Invalid coordinates ({latitude}, {longitude})",
            error_code="ERR_GEO_002",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"latitude": latitude, "longitude": longitude}
        )


class DistanceResolutionError(AppException):
    """Raised when the routing provider fails and fallback is disabled."""

    def __init__(self, message: str = "Distance could not be resolved"):
        super().__init__(
            message=message,
            error_code="ERR_DISTANCE_001",
            status_code=status.HTTP_502_BAD_GATEWAY
        )


class NoApplicableTariffBand(AppException):
    """Raised when no tariff band covers the cargo (or no tariff is active)."""

    def __init__(self, weight: Any = None, volume: Any = None, message: str = None):
        super().__init__(
            message=message or f"No tariff band covers weight={weight} volume={volume}",
            error_code="ERR_TARIFF_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"weight": str(weight) if weight is not None else None,
                     "volume": str(volume) if volume is not None else None}
        )


class NoRouteFound(AppException):
    """Raised when every candidate chain failed distance resolution."""

    def __init__(self, candidates_tried: int = 0):
        super().__init__(
            message="No route could be resolved between origin and destination",
            error_code="ERR_ROUTE_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"candidates_tried": candidates_tried}
        )


class RouteAlreadyExists(AppException):
    """Raised when a shipment already has a materialized route."""

    def __init__(self, shipment_id: int):
        super().__init__(
            message=f"Shipment {shipment_id} already has a route",
            error_code="ERR_ROUTE_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"shipment_id": shipment_id}
        )


class NoCarrierAvailable(AppException):
    """Raised when a leg cannot be assigned a carrier."""

    def __init__(self, leg_sequence: int, weight: Any, volume: Any):
        super().__init__(
            message=f"No available carrier for leg {leg_sequence}",
            error_code="ERR_CARRIER_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"leg_sequence": leg_sequence, "weight": str(weight), "volume": str(volume)}
        )


class InvalidTransition(AppException):
    """Raised on a leg state change the state machine does not allow."""

    def __init__(self, leg_id: int, current_state: Any, action: str, reason: str = None):
        current = getattr(current_state, "value", current_state)
        message = reason or f"Cannot {action} leg {leg_id} in state {current}"
        super().__init__(
            message=message,
            error_code="ERR_LEG_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"leg_id": leg_id, "state": current, "action": action}
        )


class CascadeNotificationFailure(AppException):
    """Raised by the shipment status port when the downstream call fails."""

    def __init__(self, shipment_id: int, reason: str, event: str = "completion"):
        super().__init__(
            message=f"Shipment {shipment_id} {event} notification failed: {reason}",
            error_code="ERR_CASCADE_001",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"shipment_id": shipment_id, "reason": reason}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Strip non-serializable context (e.g. raised ValueErrors) from validation errors."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
