"""
Tariff Engine (Domain Logic).

Maps a cargo's (weight, volume) to a tariff band and prices a distance.
All arithmetic is Decimal; results are rounded half-up to cents.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from cargo_backend.app.core.config import settings
from cargo_backend.app.core.exceptions import NoApplicableTariffBand
from cargo_backend.app.models.tariff import Tariff, TariffBand
from cargo_backend.app.models.carrier import Carrier

TWO_PLACES = Decimal("0.01")


def as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _in_range(value: Decimal, low: Any, high: Any) -> bool:
    if value < as_decimal(low if low is not None else 0):
        return False
    return high is None or value <= as_decimal(high)


def _band_order_key(band: TariffBand):
    volume_min = as_decimal(band.volume_min or 0)
    weight_min = as_decimal(band.weight_min or 0)
    if settings.tariff_band_order == "weight":
        return (weight_min, volume_min)
    return (volume_min, weight_min)


class TariffEngine:

    @staticmethod
    def select_band(tariff: Tariff, weight: Any, volume: Any) -> TariffBand:
        """
        Pick the band covering the cargo.

        Overlapping bands are resolved by taking the first match in ascending
        (volume_min, weight_min) order, or (weight_min, volume_min) when
        TARIFF_BAND_ORDER=weight.

        Raises:
            NoApplicableTariffBand: no band contains both weight and volume
        """
        weight = as_decimal(weight)
        volume = as_decimal(volume)

        for band in sorted(tariff.bands, key=_band_order_key):
            if _in_range(volume, band.volume_min, band.volume_max) and _in_range(
                weight, band.weight_min, band.weight_max
            ):
                return band

        raise NoApplicableTariffBand(weight=weight, volume=volume)

    @staticmethod
    def variable_cost(
        band: TariffBand,
        tariff: Tariff,
        distance_km: Any,
        fuel_consumption_rate: Optional[Any] = None,
    ) -> Decimal:
        """Distance-dependent part of the price: band rate plus fuel when the carrier's rate is known."""
        distance = as_decimal(distance_km)
        cost = distance * as_decimal(band.cost_per_distance_unit)
        if fuel_consumption_rate is not None:
            cost += distance * as_decimal(fuel_consumption_rate) * as_decimal(tariff.fuel_unit_price)
        return money(cost)

    @staticmethod
    def price(
        weight: Any,
        volume: Any,
        distance_km: Any,
        tariff: Tariff,
        fuel_consumption_rate: Optional[Any] = None,
    ) -> Decimal:
        """
        Total cost of moving the cargo over a distance.

        total = fixed_management_fee + distance * band rate [+ distance * fuel rate * fuel price]
        """
        band = TariffEngine.select_band(tariff, weight, volume)
        total = as_decimal(tariff.fixed_management_fee) + TariffEngine.variable_cost(
            band, tariff, distance_km, fuel_consumption_rate
        )
        return money(total)

    @staticmethod
    def carrier_cost(carrier: Carrier, distance_km: Any) -> Decimal:
        """Carrier ranking cost: cost_base + distance * cost per km."""
        return money(
            as_decimal(carrier.cost_base or 0)
            + as_decimal(distance_km) * as_decimal(carrier.cost_per_distance_unit)
        )

    @staticmethod
    def carrier_trip_cost(carrier: Carrier, distance_km: Any, fuel_unit_price: Optional[Any]) -> Decimal:
        """Real cost of a leg driven by a carrier: its cost model plus fuel."""
        cost = TariffEngine.carrier_cost(carrier, distance_km)
        if carrier.fuel_consumption_rate is not None and fuel_unit_price is not None:
            cost += (
                as_decimal(distance_km)
                * as_decimal(carrier.fuel_consumption_rate)
                * as_decimal(fuel_unit_price)
            )
        return money(cost)
