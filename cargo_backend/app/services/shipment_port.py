"""
Shipment status port.

The shipment record belongs to another service. Leg transitions talk to it
only through this port: the first leg starting puts the shipment in transit
and the completion cascade marks it completed. The lifecycle logic does not
depend on the transport and can be tested with a fake.
"""

import logging
from decimal import Decimal
from typing import Optional

import httpx

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import CascadeNotificationFailure

logger = logging.getLogger(__name__)

IN_TRANSIT_STATUS = "IN_TRANSIT"


class ShipmentStatusPort:
    """Outbound contract for moving a shipment through its statuses."""

    async def mark_in_transit(self, shipment_id: int, credential: Optional[str]) -> None:
        """
        Mark the shipment IN_TRANSIT once its first leg has started.

        Raises:
            CascadeNotificationFailure: the shipment service could not be told
        """
        raise NotImplementedError

    async def mark_completed(
        self,
        shipment_id: int,
        final_cost: Decimal,
        final_duration_minutes: Decimal,
        credential: Optional[str],
    ) -> None:
        """
        Mark the shipment COMPLETED with its final cost and duration.
        Idempotent on the receiving side.

        Raises:
            CascadeNotificationFailure: the shipment service could not be told
        """
        raise NotImplementedError


class HttpShipmentStatusClient(ShipmentStatusPort):
    """Shipment status port over HTTP, forwarding the caller's bearer token."""

    def __init__(self, client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.client = client
        self.base_url = (base_url or settings.shipments_service_url).rstrip("/")

    async def mark_in_transit(self, shipment_id: int, credential: Optional[str]) -> None:
        await self._patch(
            shipment_id,
            f"{self.base_url}/api/v1/shipments/{shipment_id}/status",
            {"status": IN_TRANSIT_STATUS},
            credential,
            event="in-transit",
        )
        logger.info("Shipment %s marked in transit", shipment_id)

    async def mark_completed(
        self,
        shipment_id: int,
        final_cost: Decimal,
        final_duration_minutes: Decimal,
        credential: Optional[str],
    ) -> None:
        await self._patch(
            shipment_id,
            f"{self.base_url}/api/v1/shipments/{shipment_id}/complete",
            {
                "final_cost": str(final_cost),
                "final_duration_minutes": str(final_duration_minutes),
            },
            credential,
        )
        logger.info("Shipment %s marked completed (cost=%s, minutes=%s)", shipment_id, final_cost, final_duration_minutes)

    async def _patch(
        self,
        shipment_id: int,
        url: str,
        body: dict,
        credential: Optional[str],
        event: str = "completion",
    ) -> None:
        headers = {}
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        try:
            response = await self.client.patch(
                url,
                json=body,
                headers=headers,
                timeout=settings.shipments_timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise CascadeNotificationFailure(
                shipment_id, f"shipment service returned {exc.response.status_code}", event=event
            )
        except httpx.HTTPError as exc:
            raise CascadeNotificationFailure(shipment_id, f"{exc.__class__.__name__}: {exc}", event=event)
