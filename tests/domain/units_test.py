from decimal import Decimal

import pytest

from domain.ledger import ConsumptionUnit, DistanceUnit, VolumeUnit
from domain.units import (
    consumption_per_100km,
    consumption_unit_for_fuel,
    convert_consumption,
    convert_distance,
    convert_fuel_quantity,
    convert_volume,
    derive_consumption_unit,
    fuel_quantity_unit,
    to_liters_per_100km,
    to_metric_distance,
    to_metric_volume,
)

TOLERANCE = Decimal("0.000001")


@pytest.mark.parametrize("unit", list(DistanceUnit))
def test_distance_round_trip(unit: DistanceUnit) -> None:
    km = Decimal("1234.5")
    assert abs(to_metric_distance(convert_distance(km, unit), unit) - km) < TOLERANCE


@pytest.mark.parametrize("unit", list(VolumeUnit))
def test_volume_round_trip(unit: VolumeUnit) -> None:
    liters = Decimal("47.3")
    assert abs(to_metric_volume(convert_volume(liters, unit), unit) - liters) < TOLERANCE


@pytest.mark.parametrize("unit", list(ConsumptionUnit))
def test_consumption_round_trip(unit: ConsumptionUnit) -> None:
    per_100km = Decimal("7.3")
    assert abs(to_liters_per_100km(convert_consumption(per_100km, unit), unit) - per_100km) < TOLERANCE


def test_known_conversions() -> None:
    assert convert_distance(Decimal("1.609344"), DistanceUnit.MI) == Decimal(1)
    assert convert_volume(Decimal("4.54609"), VolumeUnit.UK_GALLONS) == Decimal(1)
    assert convert_consumption(Decimal(8), ConsumptionUnit.KM_PER_L) == Decimal("12.5")
    mpg = convert_consumption(Decimal(8), ConsumptionUnit.MPG_US)
    assert mpg is not None
    assert mpg.quantize(Decimal("0.01")) == Decimal("29.40")


def test_missing_values_stay_missing() -> None:
    assert convert_distance(None, DistanceUnit.MI) is None
    assert convert_volume(None, VolumeUnit.US_GALLONS) is None
    assert convert_consumption(None, ConsumptionUnit.MPG_UK) is None
    assert to_liters_per_100km(None, ConsumptionUnit.KM_PER_L) is None
    assert consumption_per_100km(None, Decimal(40)) is None


def test_zero_consumption_has_no_reciprocal() -> None:
    assert convert_consumption(Decimal(0), ConsumptionUnit.KM_PER_L) is None
    assert convert_consumption(Decimal(0), ConsumptionUnit.L_PER_100KM) == Decimal(0)


def test_consumption_per_100km_guards_zero_distance() -> None:
    assert consumption_per_100km(Decimal(0), Decimal(40)) is None
    assert consumption_per_100km(Decimal(500), Decimal(40)) == Decimal(8)


def test_derive_consumption_unit() -> None:
    assert derive_consumption_unit(DistanceUnit.KM, VolumeUnit.LITERS) == ConsumptionUnit.L_PER_100KM
    assert derive_consumption_unit(DistanceUnit.MI, VolumeUnit.US_GALLONS) == ConsumptionUnit.MPG_US
    assert derive_consumption_unit(DistanceUnit.MI, VolumeUnit.UK_GALLONS) == ConsumptionUnit.MPG_UK
    assert derive_consumption_unit(DistanceUnit.KM, VolumeUnit.US_GALLONS) == ConsumptionUnit.KM_PER_L


def test_fuel_specific_units() -> None:
    assert consumption_unit_for_fuel("Electric", ConsumptionUnit.L_PER_100KM) == ConsumptionUnit.KWH_PER_100KM
    assert consumption_unit_for_fuel("electric", ConsumptionUnit.MPG_US) == ConsumptionUnit.MI_PER_KWH
    assert consumption_unit_for_fuel("hydrogen", ConsumptionUnit.MPG_US) == ConsumptionUnit.KG_PER_100KM
    assert consumption_unit_for_fuel("diesel", ConsumptionUnit.KWH_PER_100KM) == ConsumptionUnit.L_PER_100KM
    assert fuel_quantity_unit("electric", VolumeUnit.US_GALLONS) == "kWh"
    assert fuel_quantity_unit("diesel", VolumeUnit.US_GALLONS) == "gal-us"
    assert convert_fuel_quantity(Decimal(30), "electric", VolumeUnit.US_GALLONS) == Decimal(30)
