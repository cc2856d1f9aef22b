from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from domain.consumption import ConsumptionEstimator
from domain.currency import bucket_records
from domain.ledger import AccountPreferences, LedgerRecord, OdometerRange
from domain.mileage import quantize_money
from domain.units import (
    consumption_per_100km,
    consumption_unit_for_fuel,
    convert_consumption,
    convert_distance,
    convert_volume,
    is_electric,
    is_hydrogen,
)

from .common import (
    LedgerWindow,
    breakdown_by_category,
    breakdown_by_kind,
    home_total,
    max_odometer,
    min_odometer,
    odometer_distance,
    round_quantity,
    safe_divide,
)
from .models import ExpensesSummary, ExpenseSummaryReport, RefuelsSummary

# Overall consumption is reported for liquid fuels; this is the label used to
# pick the matching consumption unit.
_LIQUID_FUEL = "petrol"


def is_liquid_refuel(record: LedgerRecord) -> bool:
    return not is_electric(record.fuel_type) and not is_hydrogen(record.fuel_type)


def liquid_volume_liters(refuels: Iterable[LedgerRecord]) -> Decimal:
    return sum((refuel.volume_liters or Decimal(0) for refuel in refuels if is_liquid_refuel(refuel)), Decimal(0))


def consumable_volume_liters(refuels: Sequence[LedgerRecord]) -> Decimal:
    """Liquid fuel burnt within the period.

    The first refuel of each car fills the tank for distance driven after the
    period started, so it is left out.
    """
    seen_cars: set[str] = set()
    total = Decimal(0)
    for refuel in sorted(refuels, key=lambda record: (record.timestamp, record.id)):
        if not is_liquid_refuel(refuel):
            continue
        if refuel.car_id not in seen_cars:
            seen_cars.add(refuel.car_id)
            continue
        total += refuel.volume_liters or Decimal(0)
    return total


def build_expense_summary(
    window: LedgerWindow,
    odometer_ranges: Sequence[OdometerRange],
    preferences: AccountPreferences,
    *,
    estimator: ConsumptionEstimator,
) -> ExpenseSummaryReport:
    home = preferences.home_currency
    period_days = window.period.days

    refuels = window.refuels
    expenses = window.expenses
    cost_records = refuels + expenses

    refuel_buckets = bucket_records(refuels, home)
    expense_buckets = bucket_records(expenses, home)
    all_buckets = bucket_records(cost_records, home)

    volume_liters = liquid_volume_liters(refuels)
    volume = convert_volume(volume_liters, preferences.volume_unit) or Decimal(0)
    liquid_cost = home_total([refuel for refuel in refuels if is_liquid_refuel(refuel)], home)

    mileage_km = odometer_distance(odometer_ranges)
    mileage = convert_distance(mileage_km, preferences.distance_unit)

    overall_unit = consumption_unit_for_fuel(_LIQUID_FUEL, preferences.consumption_unit)
    overall_consumption = convert_consumption(
        consumption_per_100km(mileage_km, consumable_volume_liters(refuels)), overall_unit
    )

    return ExpenseSummaryReport(
        date_from=window.period.date_from,
        date_to=window.period.date_to,
        period_days=period_days,
        car_ids=window.car_ids,
        vehicles_count=window.vehicles_count,
        total_cost_hc=all_buckets.total_home_currency,
        refuels_cost_hc=refuel_buckets.total_home_currency,
        expenses_cost_hc=expense_buckets.total_home_currency,
        avg_daily_cost_hc=quantize_money(all_buckets.total_home_currency / period_days, home),
        avg_daily_refuels_cost_hc=quantize_money(refuel_buckets.total_home_currency / period_days, home),
        avg_daily_expenses_cost_hc=quantize_money(expense_buckets.total_home_currency / period_days, home),
        foreign_currency_totals=all_buckets.foreign_buckets,
        total_foreign_records_count=all_buckets.total_foreign_records_count,
        refuels=RefuelsSummary(
            cost_hc=refuel_buckets.total_home_currency,
            count_hc=refuel_buckets.home_records_count,
            records_count=len(refuels),
            volume=round_quantity(volume),
            average_price_per_volume_hc=_price_per_volume(liquid_cost, volume, home),
            foreign_currencies=refuel_buckets.foreign_buckets,
            total_foreign_records_count=refuel_buckets.total_foreign_records_count,
        ),
        expenses=ExpensesSummary(
            cost_hc=expense_buckets.total_home_currency,
            count_hc=expense_buckets.home_records_count,
            records_count=len(expenses),
            foreign_currencies=expense_buckets.foreign_buckets,
            total_foreign_records_count=expense_buckets.total_foreign_records_count,
        ),
        fuel_purchased=round_quantity(volume),
        start_odometer=round_quantity(convert_distance(min_odometer(odometer_ranges), preferences.distance_unit)),
        end_odometer=round_quantity(convert_distance(max_odometer(odometer_ranges), preferences.distance_unit)),
        mileage=round_quantity(mileage),
        avg_mileage_per_day=round_quantity(safe_divide(mileage, period_days)),
        overall_consumption=round_quantity(overall_consumption),
        consumption_by_fuel_type=estimator.estimate(window.all_records, preferences),
        cost_per_distance_hc=round_quantity(
            safe_divide(all_buckets.total_home_currency, mileage) if mileage else None
        ),
        total_records_count=len(cost_records),
        refuels_count=len(refuels),
        expenses_count=len(expenses),
        by_category=breakdown_by_category(cost_records, home),
        by_kind=breakdown_by_kind(cost_records, home),
        home_currency=home,
        distance_unit=preferences.distance_unit,
        volume_unit=preferences.volume_unit,
        consumption_unit=preferences.consumption_unit,
    )


def _price_per_volume(cost: Decimal, volume: Decimal, currency: str) -> Decimal | None:
    if volume <= 0:
        return None
    return quantize_money(cost / volume, currency)


__all__ = ["build_expense_summary", "consumable_volume_liters", "is_liquid_refuel", "liquid_volume_liters"]
