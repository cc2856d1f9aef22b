"""Distance, volume and fuel-consumption unit conversion.

Everything inside the engine is metric (km, liters, liters per 100 km).
These helpers convert at the output boundary only. They are pure: ``None``
input yields ``None`` output and no helper raises or silently turns a
missing value into zero.
"""

from __future__ import annotations

from decimal import Decimal

from .ledger import ConsumptionUnit, DistanceUnit, VolumeUnit

MILES_TO_KM = Decimal("1.609344")
US_GALLONS_TO_LITERS = Decimal("3.785411784")
UK_GALLONS_TO_LITERS = Decimal("4.54609")

_HUNDRED = Decimal(100)

ELECTRIC_FUEL_TYPES = frozenset({"electric"})
HYDROGEN_FUEL_TYPES = frozenset({"hydrogen"})

_VOLUME_FACTORS: dict[VolumeUnit, Decimal] = {
    VolumeUnit.LITERS: Decimal(1),
    VolumeUnit.US_GALLONS: US_GALLONS_TO_LITERS,
    VolumeUnit.UK_GALLONS: UK_GALLONS_TO_LITERS,
}


def convert_distance(km: Decimal | None, target_unit: DistanceUnit | str) -> Decimal | None:
    if km is None:
        return None
    if DistanceUnit(target_unit) == DistanceUnit.MI:
        return km / MILES_TO_KM
    return km


def to_metric_distance(value: Decimal | None, unit: DistanceUnit | str) -> Decimal | None:
    if value is None:
        return None
    if DistanceUnit(unit) == DistanceUnit.MI:
        return value * MILES_TO_KM
    return value


def convert_volume(liters: Decimal | None, target_unit: VolumeUnit | str) -> Decimal | None:
    if liters is None:
        return None
    return liters / _VOLUME_FACTORS[VolumeUnit(target_unit)]


def to_metric_volume(value: Decimal | None, unit: VolumeUnit | str) -> Decimal | None:
    if value is None:
        return None
    return value * _VOLUME_FACTORS[VolumeUnit(unit)]


def convert_consumption(
    liters_per_100km: Decimal | None, target_unit: ConsumptionUnit | str
) -> Decimal | None:
    """Convert a per-100-km consumption figure into ``target_unit``.

    The input is expressed per 100 km in the fuel's native quantity: liters
    for liquid fuels, kWh for electric, kg for hydrogen. Distance-per-quantity
    units are the reciprocal, so a zero input returns ``None`` for them.
    """
    if liters_per_100km is None:
        return None

    unit = ConsumptionUnit(target_unit)
    value = liters_per_100km
    if unit in (ConsumptionUnit.L_PER_100KM, ConsumptionUnit.KWH_PER_100KM, ConsumptionUnit.KG_PER_100KM):
        return value
    if value == 0:
        return None

    km_per_unit = _HUNDRED / value
    if unit == ConsumptionUnit.KM_PER_L:
        return km_per_unit
    if unit in (ConsumptionUnit.MI_PER_L, ConsumptionUnit.MI_PER_KWH):
        return km_per_unit / MILES_TO_KM
    if unit == ConsumptionUnit.MPG_US:
        return km_per_unit * US_GALLONS_TO_LITERS / MILES_TO_KM
    # mpg-uk
    return km_per_unit * UK_GALLONS_TO_LITERS / MILES_TO_KM


def to_liters_per_100km(value: Decimal | None, unit: ConsumptionUnit | str) -> Decimal | None:
    """Inverse of ``convert_consumption``."""
    if value is None:
        return None

    source = ConsumptionUnit(unit)
    if source in (ConsumptionUnit.L_PER_100KM, ConsumptionUnit.KWH_PER_100KM, ConsumptionUnit.KG_PER_100KM):
        return value
    if value == 0:
        return None

    if source == ConsumptionUnit.KM_PER_L:
        km_per_unit = value
    elif source in (ConsumptionUnit.MI_PER_L, ConsumptionUnit.MI_PER_KWH):
        km_per_unit = value * MILES_TO_KM
    elif source == ConsumptionUnit.MPG_US:
        km_per_unit = value * MILES_TO_KM / US_GALLONS_TO_LITERS
    else:
        km_per_unit = value * MILES_TO_KM / UK_GALLONS_TO_LITERS
    return _HUNDRED / km_per_unit


def consumption_per_100km(distance_km: Decimal | None, volume_liters: Decimal | None) -> Decimal | None:
    if distance_km is None or volume_liters is None or distance_km <= 0 or volume_liters <= 0:
        return None
    return volume_liters / distance_km * _HUNDRED


def derive_consumption_unit(distance_unit: DistanceUnit | str, volume_unit: VolumeUnit | str) -> ConsumptionUnit:
    """Pick a sensible consumption unit when none was configured."""
    volume = VolumeUnit(volume_unit)
    if DistanceUnit(distance_unit) == DistanceUnit.MI:
        if volume == VolumeUnit.US_GALLONS:
            return ConsumptionUnit.MPG_US
        if volume == VolumeUnit.UK_GALLONS:
            return ConsumptionUnit.MPG_UK
        return ConsumptionUnit.MI_PER_L
    if volume == VolumeUnit.LITERS:
        return ConsumptionUnit.L_PER_100KM
    return ConsumptionUnit.KM_PER_L


def is_electric(fuel_type: str | None) -> bool:
    return fuel_type is not None and fuel_type.lower() in ELECTRIC_FUEL_TYPES


def is_hydrogen(fuel_type: str | None) -> bool:
    return fuel_type is not None and fuel_type.lower() in HYDROGEN_FUEL_TYPES


def consumption_unit_for_fuel(fuel_type: str, preferred: ConsumptionUnit | str) -> ConsumptionUnit:
    preferred_unit = ConsumptionUnit(preferred)
    if is_electric(fuel_type):
        if preferred_unit in (
            ConsumptionUnit.MPG_US,
            ConsumptionUnit.MPG_UK,
            ConsumptionUnit.MI_PER_L,
            ConsumptionUnit.MI_PER_KWH,
        ):
            return ConsumptionUnit.MI_PER_KWH
        return ConsumptionUnit.KWH_PER_100KM
    if is_hydrogen(fuel_type):
        return ConsumptionUnit.KG_PER_100KM
    if preferred_unit in (
        ConsumptionUnit.KWH_PER_100KM,
        ConsumptionUnit.MI_PER_KWH,
        ConsumptionUnit.KG_PER_100KM,
    ):
        return ConsumptionUnit.L_PER_100KM
    return preferred_unit


def fuel_quantity_unit(fuel_type: str, volume_unit: VolumeUnit | str) -> str:
    """Label of the quantity a fuel is measured in."""
    if is_electric(fuel_type):
        return "kWh"
    if is_hydrogen(fuel_type):
        return "kg"
    return VolumeUnit(volume_unit).value


def convert_fuel_quantity(
    quantity: Decimal | None, fuel_type: str, volume_unit: VolumeUnit | str
) -> Decimal | None:
    """Volume conversion for liquid fuels; kWh and kg pass through unchanged."""
    if is_electric(fuel_type) or is_hydrogen(fuel_type):
        return quantity
    return convert_volume(quantity, volume_unit)
