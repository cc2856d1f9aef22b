from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .ledger import (
    AccountPreferences,
    CarId,
    Confidence,
    ConsumptionUnit,
    FuelTypeConsumption,
    LedgerRecord,
    RecordKind,
)
from .units import (
    consumption_unit_for_fuel,
    convert_consumption,
    convert_distance,
    convert_fuel_quantity,
    fuel_quantity_unit,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_FULLTANK_PAIRS = "insufficient_fulltank_pairs"
ODOMETER_GAP_EXCEEDS_THRESHOLD = "odometer_gap_exceeds_threshold"
NO_FULLTANK_INTERVAL = "no_fulltank_interval"

HIGH_CONFIDENCE_MIN_INTERVALS = 3
MAX_GAP_SHARE = Decimal("0.10")

_HUNDRED = Decimal(100)
_PLACES = Decimal("0.01")


@dataclass
class FullTankInterval:
    start_odometer_km: Decimal
    end_odometer_km: Decimal
    volume: Decimal

    @property
    def distance_km(self) -> Decimal:
        return self.end_odometer_km - self.start_odometer_km


@dataclass
class _FuelChain:
    refuels: list[LedgerRecord] = field(default_factory=list)
    intervals: list[FullTankInterval] = field(default_factory=list)


class ConsumptionEstimator:
    """Estimate fuel consumption per car and fuel type from refuel history.

    The preferred estimate uses full-tank-to-full-tank intervals. When no
    interval can be built the estimator falls back to everything purchased
    divided by the observed odometer span, and says so in the confidence.
    """

    def __init__(
        self,
        *,
        high_confidence_min_intervals: int = HIGH_CONFIDENCE_MIN_INTERVALS,
        max_gap_share: Decimal = MAX_GAP_SHARE,
    ) -> None:
        self._min_intervals = high_confidence_min_intervals
        self._max_gap_share = max_gap_share

    def estimate(
        self, records: Iterable[LedgerRecord], preferences: AccountPreferences
    ) -> list[FuelTypeConsumption]:
        by_car: dict[CarId, list[LedgerRecord]] = defaultdict(list)
        for record in records:
            by_car[record.car_id].append(record)

        results: list[FuelTypeConsumption] = []
        for car_id in sorted(by_car):
            results.extend(self.estimate_car(car_id, by_car[car_id], preferences))
        return results

    def estimate_car(
        self, car_id: CarId, records: Iterable[LedgerRecord], preferences: AccountPreferences
    ) -> list[FuelTypeConsumption]:
        ordered = sorted(records, key=_chronological_key)
        checkpoints = [record.odometer_km for record in ordered if record.odometer_km is not None]

        refuels_by_fuel: dict[str, list[LedgerRecord]] = defaultdict(list)
        for record in ordered:
            if record.kind != RecordKind.REFUEL or not record.fuel_type:
                continue
            refuels_by_fuel[record.fuel_type.lower()].append(record)

        results: list[FuelTypeConsumption] = []
        for fuel_type in sorted(refuels_by_fuel):
            entry = self._estimate_fuel_type(car_id, fuel_type, refuels_by_fuel[fuel_type], checkpoints, preferences)
            if entry is not None:
                results.append(entry)
        return results

    def _estimate_fuel_type(
        self,
        car_id: CarId,
        fuel_type: str,
        refuels: list[LedgerRecord],
        checkpoints: list[Decimal],
        preferences: AccountPreferences,
    ) -> FuelTypeConsumption | None:
        odometers = [refuel.odometer_km for refuel in refuels if refuel.odometer_km is not None]
        if len(odometers) < 2:
            logger.debug("Skipping %s/%s: fewer than two odometer readings", car_id, fuel_type)
            return None

        observed_min = min(odometers)
        observed_max = max(odometers)
        observed_distance = observed_max - observed_min
        if observed_distance <= 0:
            logger.debug("Skipping %s/%s: zero observed distance", car_id, fuel_type)
            return None

        chain = self._build_chain(car_id, fuel_type, refuels)
        reasons: list[str] = []

        if len(chain.intervals) < self._min_intervals:
            reasons.append(INSUFFICIENT_FULLTANK_PAIRS)
        if self._largest_gap(checkpoints, observed_min, observed_max) > observed_distance * self._max_gap_share:
            reasons.append(ODOMETER_GAP_EXCEEDS_THRESHOLD)

        if chain.intervals:
            fuel_used = sum((interval.volume for interval in chain.intervals), Decimal(0))
            distance = sum((interval.distance_km for interval in chain.intervals), Decimal(0))
            confidence = Confidence.HIGH if not reasons else Confidence.MEDIUM
        else:
            reasons.append(NO_FULLTANK_INTERVAL)
            fuel_used = sum((refuel.volume_liters or Decimal(0) for refuel in refuels), Decimal(0))
            distance = observed_distance
            confidence = Confidence.LOW

        if distance <= 0:
            return None

        per_100km = fuel_used / distance * _HUNDRED
        unit = consumption_unit_for_fuel(fuel_type, preferences.consumption_unit)
        value = convert_consumption(per_100km, unit)
        if value is None:
            return None

        return FuelTypeConsumption(
            car_id=car_id,
            fuel_type=fuel_type,
            consumption_value=_round(value),
            consumption_unit=ConsumptionUnit(unit),
            fuel_used=_round(convert_fuel_quantity(fuel_used, fuel_type, preferences.volume_unit) or Decimal(0)),
            fuel_unit=fuel_quantity_unit(fuel_type, preferences.volume_unit),
            distance=_round(convert_distance(distance, preferences.distance_unit) or Decimal(0)),
            confidence=confidence,
            confidence_reasons=reasons,
            data_points_count=len(refuels),
            intervals_count=len(chain.intervals),
        )

    def _build_chain(self, car_id: CarId, fuel_type: str, refuels: list[LedgerRecord]) -> _FuelChain:
        chain = _FuelChain(refuels=refuels)
        opening_odometer: Decimal | None = None
        pending_volume = Decimal(0)

        for refuel in refuels:
            volume = refuel.volume_liters or Decimal(0)
            if opening_odometer is not None:
                pending_volume += volume

            if not refuel.is_full_tank:
                continue

            if refuel.odometer_km is None:
                logger.debug("Full tank without odometer breaks the %s/%s chain at %s", car_id, fuel_type, refuel.id)
                opening_odometer = None
                pending_volume = Decimal(0)
                continue

            if opening_odometer is not None and refuel.odometer_km > opening_odometer:
                chain.intervals.append(
                    FullTankInterval(
                        start_odometer_km=opening_odometer,
                        end_odometer_km=refuel.odometer_km,
                        volume=pending_volume,
                    )
                )
            opening_odometer = refuel.odometer_km
            pending_volume = Decimal(0)

        return chain

    @staticmethod
    def _largest_gap(checkpoints: list[Decimal], lower: Decimal, upper: Decimal) -> Decimal:
        readings = sorted({value for value in checkpoints if lower <= value <= upper})
        if len(readings) < 2:
            return Decimal(0)
        return max(later - earlier for earlier, later in zip(readings, readings[1:]))


def _round(value: Decimal) -> Decimal:
    return value.quantize(_PLACES, rounding=ROUND_HALF_UP)


def _chronological_key(record: LedgerRecord) -> tuple:
    odometer = record.odometer_km if record.odometer_km is not None else Decimal(-1)
    return (record.timestamp, odometer, record.id)


__all__ = [
    "ConsumptionEstimator",
    "FullTankInterval",
    "INSUFFICIENT_FULLTANK_PAIRS",
    "NO_FULLTANK_INTERVAL",
    "ODOMETER_GAP_EXCEEDS_THRESHOLD",
]
