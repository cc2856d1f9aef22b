from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from domain.break_even import BreakEvenAnalyzer, DailyTotals, daily_series
from domain.currency import bucket_records, record_entry
from domain.ledger import AccountPreferences, CarId, LedgerRecord, OdometerRange, RecordKind, TravelRecord
from domain.units import convert_distance

from .common import (
    LedgerWindow,
    breakdown_by_category,
    breakdown_by_kind,
    group_by,
    home_total,
    is_maintenance,
    is_other_expense,
    month_of,
    odometer_distance,
    percentage,
    ranges_from_records,
    round_quantity,
    safe_divide,
)
from .models import (
    ProfitabilityMonthlyTrend,
    ProfitabilityReport,
    TripProfitability,
    TripProfitabilityTotals,
    VehicleProfitability,
)


class _Totals:
    """Home-currency revenue and cost split of a group of records."""

    def __init__(self, records: Sequence[LedgerRecord], home_currency: str) -> None:
        revenues = [record for record in records if record.kind == RecordKind.REVENUE]
        refuels = [record for record in records if record.kind == RecordKind.REFUEL]
        maintenance = [record for record in records if is_maintenance(record)]
        other = [record for record in records if is_other_expense(record)]

        self.revenue_hc = home_total(revenues, home_currency)
        self.revenue_count = len(revenues)
        self.refuels_hc = home_total(refuels, home_currency)
        self.refuels_count = len(refuels)
        self.maintenance_hc = home_total(maintenance, home_currency)
        self.other_expenses_hc = home_total(other, home_currency)
        self.expenses_count = len(refuels) + len(maintenance) + len(other)

    @property
    def expenses_hc(self) -> Decimal:
        return self.refuels_hc + self.maintenance_hc + self.other_expenses_hc

    @property
    def net_profit_hc(self) -> Decimal:
        return self.revenue_hc - self.expenses_hc


def daily_home_totals(records: Iterable[LedgerRecord], home_currency: str) -> dict[date, DailyTotals]:
    """Home-currency revenue and expense per UTC day; foreign amounts are left out."""
    revenue: dict[date, Decimal] = defaultdict(Decimal)
    expense: dict[date, Decimal] = defaultdict(Decimal)
    home = home_currency.upper()
    for record in records:
        entry = record_entry(record, home)
        if entry is None or entry.currency != home:
            continue
        if record.kind == RecordKind.REVENUE:
            revenue[record.day] += entry.amount
        elif record.kind in (RecordKind.REFUEL, RecordKind.EXPENSE):
            expense[record.day] += entry.amount
    return {
        day: DailyTotals(revenue.get(day, Decimal(0)), expense.get(day, Decimal(0)))
        for day in set(revenue) | set(expense)
    }


def _months_between(date_from: date, date_to: date) -> list[tuple[int, int]]:
    months: list[tuple[int, int]] = []
    year, month = date_from.year, date_from.month
    while (year, month) <= (date_to.year, date_to.month):
        months.append((year, month))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def build_by_vehicle(
    window: LedgerWindow, odometer_ranges: Sequence[OdometerRange], preferences: AccountPreferences
) -> list[VehicleProfitability]:
    home = preferences.home_currency
    records_by_car = group_by(window.records, lambda record: record.car_id)
    ranges_by_car: dict[CarId, list[OdometerRange]] = defaultdict(list)
    for odometer_range in odometer_ranges:
        ranges_by_car[odometer_range.car_id].append(odometer_range)

    rows: list[VehicleProfitability] = []
    for car_id in sorted(set(window.car_ids) | set(records_by_car)):
        totals = _Totals(records_by_car.get(car_id, []), home)
        distance = convert_distance(odometer_distance(ranges_by_car.get(car_id, [])), preferences.distance_unit)
        rows.append(
            VehicleProfitability(
                car_id=car_id,
                revenue_hc=totals.revenue_hc,
                revenue_count=totals.revenue_count,
                refuels_cost_hc=totals.refuels_hc,
                maintenance_cost_hc=totals.maintenance_hc,
                other_expenses_cost_hc=totals.other_expenses_hc,
                total_expenses_hc=totals.expenses_hc,
                expenses_count=totals.expenses_count,
                net_profit_hc=totals.net_profit_hc,
                profit_margin_pct=percentage(totals.net_profit_hc, totals.revenue_hc),
                distance=round_quantity(distance),
                profit_per_distance=round_quantity(_per_distance(totals.net_profit_hc, distance)),
                revenue_per_distance=round_quantity(_per_distance(totals.revenue_hc, distance)),
                expenses_per_distance=round_quantity(_per_distance(totals.expenses_hc, distance)),
            )
        )
    return rows


def build_monthly_trend(window: LedgerWindow, preferences: AccountPreferences) -> list[ProfitabilityMonthlyTrend]:
    home = preferences.home_currency
    records_by_month = group_by(window.records, month_of)
    readings_by_month = group_by(window.all_records, month_of)

    trend: list[ProfitabilityMonthlyTrend] = []
    for year, month in _months_between(window.period.date_from, window.period.date_to):
        totals = _Totals(records_by_month.get((year, month), []), home)
        distance = convert_distance(
            odometer_distance(ranges_from_records(readings_by_month.get((year, month), []))),
            preferences.distance_unit,
        )
        trend.append(
            ProfitabilityMonthlyTrend(
                year=year,
                month=month,
                revenue_hc=totals.revenue_hc,
                revenue_count=totals.revenue_count,
                refuels_cost_hc=totals.refuels_hc,
                maintenance_cost_hc=totals.maintenance_hc,
                other_expenses_cost_hc=totals.other_expenses_hc,
                total_expenses_hc=totals.expenses_hc,
                expenses_count=totals.expenses_count,
                net_profit_hc=totals.net_profit_hc,
                distance=round_quantity(distance),
                profit_per_distance=round_quantity(_per_distance(totals.net_profit_hc, distance)),
            )
        )
    return trend


def build_trip_profitability(
    window: LedgerWindow, travels: Sequence[TravelRecord], preferences: AccountPreferences
) -> tuple[list[TripProfitability], TripProfitabilityTotals]:
    """Trips that earned revenue, with the refuels and expenses linked to them."""
    home = preferences.home_currency
    linked = group_by(
        (record for record in window.all_records if record.travel_id is not None),
        lambda record: record.travel_id,
    )

    trips: list[TripProfitability] = []
    for travel in travels:
        linked_records = linked.get(travel.id, [])
        revenues = [record for record in linked_records if record.kind == RecordKind.REVENUE]
        if not revenues:
            continue

        revenue_hc = home_total(revenues, home)
        refuels_hc = home_total([record for record in linked_records if record.kind == RecordKind.REFUEL], home)
        expenses_hc = home_total([record for record in linked_records if record.kind == RecordKind.EXPENSE], home)
        net_profit_hc = revenue_hc - refuels_hc - expenses_hc
        distance = convert_distance(travel.effective_distance_km, preferences.distance_unit)

        trips.append(
            TripProfitability(
                trip_id=travel.id,
                car_id=travel.car_id,
                date=travel.first_timestamp,
                purpose=travel.purpose,
                destination=travel.destination,
                travel_type=travel.travel_type,
                distance=round_quantity(distance),
                revenue_hc=revenue_hc,
                revenue_count=len(revenues),
                linked_refuels_hc=refuels_hc,
                linked_expenses_hc=expenses_hc,
                total_linked_expenses_hc=refuels_hc + expenses_hc,
                net_profit_hc=net_profit_hc,
                profit_per_distance=round_quantity(_per_distance(net_profit_hc, distance)),
                tags=sorted(travel.tag_ids),
            )
        )

    trips.sort(key=lambda trip: (-trip.net_profit_hc, trip.trip_id))
    distances = [trip.distance for trip in trips if trip.distance is not None]
    totals = TripProfitabilityTotals(
        total_trips=len(trips),
        total_distance=sum(distances, Decimal(0)) if distances else None,
        total_revenue_hc=sum((trip.revenue_hc for trip in trips), Decimal(0)),
        total_linked_refuels_hc=sum((trip.linked_refuels_hc for trip in trips), Decimal(0)),
        total_linked_expenses_hc=sum((trip.linked_expenses_hc for trip in trips), Decimal(0)),
        total_linked_all_expenses_hc=sum((trip.total_linked_expenses_hc for trip in trips), Decimal(0)),
        total_net_profit_hc=sum((trip.net_profit_hc for trip in trips), Decimal(0)),
    )
    return trips, totals


def build_profitability_report(
    window: LedgerWindow,
    travels: Sequence[TravelRecord],
    odometer_ranges: Sequence[OdometerRange],
    preferences: AccountPreferences,
) -> ProfitabilityReport:
    home = preferences.home_currency
    totals = _Totals(window.records, home)

    revenues = window.revenues
    cost_records = window.refuels + window.expenses
    revenue_buckets = bucket_records(revenues, home)
    expense_buckets = bucket_records(cost_records, home)

    series = daily_series(
        daily_home_totals(window.records, home), window.period.date_from, window.period.date_to
    )
    break_even = BreakEvenAnalyzer(currency=home).analyze(series)

    distance = convert_distance(odometer_distance(odometer_ranges), preferences.distance_unit)
    trips, trips_totals = build_trip_profitability(window, travels, preferences)

    return ProfitabilityReport(
        date_from=window.period.date_from,
        date_to=window.period.date_to,
        period_days=window.period.days,
        car_ids=window.car_ids,
        vehicles_count=window.vehicles_count,
        total_revenue_hc=totals.revenue_hc,
        total_revenue_count=totals.revenue_count,
        total_refuels_cost_hc=totals.refuels_hc,
        total_maintenance_cost_hc=totals.maintenance_hc,
        total_other_expenses_cost_hc=totals.other_expenses_hc,
        total_expenses_hc=totals.expenses_hc,
        total_expenses_count=totals.expenses_count,
        net_profit_hc=totals.net_profit_hc,
        profit_margin_pct=percentage(totals.net_profit_hc, totals.revenue_hc),
        avg_daily_revenue_hc=break_even.avg_daily_revenue_hc,
        avg_daily_expenses_hc=break_even.avg_daily_expenses_hc,
        avg_daily_net_profit_hc=break_even.avg_daily_net_profit_hc,
        total_distance=round_quantity(distance),
        profit_per_distance=round_quantity(_per_distance(totals.net_profit_hc, distance)),
        foreign_revenue_totals=revenue_buckets.foreign_buckets,
        foreign_expense_totals=expense_buckets.foreign_buckets,
        total_foreign_revenue_records_count=revenue_buckets.total_foreign_records_count,
        total_foreign_expense_records_count=expense_buckets.total_foreign_records_count,
        revenue_by_category=breakdown_by_category(revenues, home),
        revenue_by_kind=breakdown_by_kind(revenues, home),
        expenses_by_category=breakdown_by_category(cost_records, home),
        expenses_by_kind=breakdown_by_kind(cost_records, home),
        by_vehicle=build_by_vehicle(window, odometer_ranges, preferences),
        monthly_trend=build_monthly_trend(window, preferences),
        profitable_trips=trips,
        profitable_trips_totals=trips_totals,
        break_even=break_even,
        home_currency=home,
        distance_unit=preferences.distance_unit,
        volume_unit=preferences.volume_unit,
    )


def _per_distance(amount: Decimal, distance: Decimal | None) -> Decimal | None:
    if distance is None or distance <= 0:
        return None
    return safe_divide(amount, distance)


__all__ = [
    "build_by_vehicle",
    "build_monthly_trend",
    "build_profitability_report",
    "build_trip_profitability",
    "daily_home_totals",
]
