from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from domain.currency import bucket_records, merge_foreign_buckets
from domain.ledger import AccountPreferences, LedgerRecord, OdometerRange, RecordKind
from domain.units import convert_distance, convert_volume

from .common import (
    LedgerWindow,
    group_by,
    max_odometer,
    min_odometer,
    odometer_distance,
    ranges_from_records,
    round_quantity,
)
from .expense_summary import liquid_volume_liters
from .models import MonthlyBreakdown, YearlyReport, YearlyTotals


def build_monthly_breakdown(
    month: int,
    records: Sequence[LedgerRecord],
    preferences: AccountPreferences,
    *,
    odometer_records: Sequence[LedgerRecord] | None = None,
) -> MonthlyBreakdown:
    """Costs, volumes and odometer readings of one calendar month."""
    home = preferences.home_currency
    refuels = [record for record in records if record.kind == RecordKind.REFUEL]
    expenses = [record for record in records if record.kind == RecordKind.EXPENSE]

    refuel_buckets = bucket_records(refuels, home)
    expense_buckets = bucket_records(expenses, home)
    all_buckets = bucket_records(refuels + expenses, home)

    # Odometer readings of every record kind count towards mileage.
    ranges = ranges_from_records(records if odometer_records is None else odometer_records)
    unit = preferences.distance_unit

    return MonthlyBreakdown(
        month=month,
        refuels_cost_hc=refuel_buckets.total_home_currency,
        expenses_cost_hc=expense_buckets.total_home_currency,
        total_cost_hc=all_buckets.total_home_currency,
        refuels_count_hc=refuel_buckets.home_records_count,
        expenses_count_hc=expense_buckets.home_records_count,
        refuels_volume=round_quantity(convert_volume(liquid_volume_liters(refuels), preferences.volume_unit)),
        start_odometer=round_quantity(convert_distance(min_odometer(ranges), unit)),
        end_odometer=round_quantity(convert_distance(max_odometer(ranges), unit)),
        mileage=round_quantity(convert_distance(odometer_distance(ranges), unit)),
        foreign_refuels=refuel_buckets.foreign_buckets,
        foreign_expenses=expense_buckets.foreign_buckets,
        foreign_currency_totals=all_buckets.foreign_buckets,
        total_foreign_records_count=all_buckets.total_foreign_records_count,
        refuels_count=len(refuels),
        expenses_count=len(expenses),
    )


def build_yearly_report(
    year: int,
    window: LedgerWindow,
    odometer_ranges: Sequence[OdometerRange],
    preferences: AccountPreferences,
) -> YearlyReport:
    by_month = group_by(window.records, lambda record: record.day.month)
    readings_by_month = group_by(window.all_records, lambda record: record.day.month)
    months = [
        build_monthly_breakdown(
            month,
            by_month.get(month, []),
            preferences,
            odometer_records=readings_by_month.get(month, []),
        )
        for month in range(1, 13)
    ]

    yearly_mileage = convert_distance(odometer_distance(odometer_ranges), preferences.distance_unit)
    totals = YearlyTotals(
        refuels_cost_hc=sum((month.refuels_cost_hc for month in months), Decimal(0)),
        expenses_cost_hc=sum((month.expenses_cost_hc for month in months), Decimal(0)),
        total_cost_hc=sum((month.total_cost_hc for month in months), Decimal(0)),
        refuels_volume=sum((month.refuels_volume for month in months), Decimal(0)),
        mileage=round_quantity(yearly_mileage),
        refuels_count=sum(month.refuels_count for month in months),
        expenses_count=sum(month.expenses_count for month in months),
        foreign_currency_totals=merge_foreign_buckets(*(month.foreign_currency_totals for month in months)),
        total_foreign_records_count=sum(month.total_foreign_records_count for month in months),
    )

    return YearlyReport(
        year=year,
        car_ids=window.car_ids,
        vehicles_count=window.vehicles_count,
        months=months,
        totals=totals,
        home_currency=preferences.home_currency,
        distance_unit=preferences.distance_unit,
        volume_unit=preferences.volume_unit,
    )


__all__ = ["build_monthly_breakdown", "build_yearly_report"]
