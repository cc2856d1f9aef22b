from __future__ import annotations

from decimal import Decimal
from typing import Mapping, Sequence

from domain.actual_expense import ActualExpenseAllocator, ExpenseTotals
from domain.ledger import (
    AccountPreferences,
    CarId,
    LedgerRecord,
    OdometerRange,
    RecordKind,
    ReportPeriod,
    TagId,
    TravelId,
    TravelRecord,
    TravelType,
)
from domain.mileage import MileageDeductionCalculator, quantize_money
from domain.mileage_rates import get_rate_table
from domain.units import convert_distance, convert_volume

from .common import (
    LedgerWindow,
    group_by,
    home_total,
    is_maintenance,
    is_other_expense,
    odometer_distance,
    percentage,
    round_quantity,
)
from .expense_summary import liquid_volume_liters
from .models import (
    ActualExpenseMethod,
    LinkedTotals,
    StandardMileageDeduction,
    TravelReport,
    TravelTypeBreakdown,
    TripDetail,
    TripsTotals,
)


def select_trips(
    travels: Sequence[TravelRecord],
    *,
    period: ReportPeriod,
    car_ids: Sequence[CarId] = (),
    travel_types: Sequence[TravelType] = (),
    tag_ids: Sequence[TagId] = (),
) -> list[TravelRecord]:
    wanted_cars = set(car_ids)
    wanted_types = set(travel_types)
    wanted_tags = set(tag_ids)

    selected: list[TravelRecord] = []
    for travel in travels:
        if wanted_cars and travel.car_id not in wanted_cars:
            continue
        if wanted_types and travel.travel_type not in wanted_types:
            continue
        if wanted_tags and not travel.tag_ids & wanted_tags:
            continue
        if travel.first_timestamp is not None and not period.contains(travel.first_timestamp):
            continue
        selected.append(travel)

    selected.sort(key=lambda travel: (travel.first_timestamp is None, travel.first_timestamp, travel.id))
    return selected


def trips_distance_km(trips: Sequence[TravelRecord]) -> Decimal | None:
    distances = [trip.effective_distance_km for trip in trips if trip.effective_distance_km is not None]
    if not distances:
        return None
    return sum(distances, Decimal(0))


def distance_by_type_km(trips: Sequence[TravelRecord]) -> dict[TravelType, Decimal]:
    totals: dict[TravelType, Decimal] = {}
    for trip in trips:
        if trip.effective_distance_km is None:
            continue
        totals[trip.travel_type] = totals.get(trip.travel_type, Decimal(0)) + trip.effective_distance_km
    return totals


def build_trips_by_type(trips: Sequence[TravelRecord], preferences: AccountPreferences) -> list[TravelTypeBreakdown]:
    filtered_km = trips_distance_km(trips)
    by_type = group_by(trips, lambda trip: trip.travel_type)

    rows: list[TravelTypeBreakdown] = []
    for travel_type in TravelType:
        group = by_type.get(travel_type)
        if not group:
            continue
        type_km = trips_distance_km(group)
        rows.append(
            TravelTypeBreakdown(
                travel_type=travel_type,
                trips_count=len(group),
                total_distance=round_quantity(convert_distance(type_km, preferences.distance_unit)),
                percentage_of_filtered=percentage(type_km, filtered_km) or Decimal(0),
            )
        )
    return rows


def build_standard_mileage(
    trips: Sequence[TravelRecord],
    *,
    country: str | None,
    year: int,
    calculator: MileageDeductionCalculator,
) -> StandardMileageDeduction | None:
    table = get_rate_table(country, year)
    if table is None:
        return None
    deduction = calculator.calculate(distance_by_type_km(trips), table)
    return StandardMileageDeduction(**deduction.model_dump(), country=table.country, rate_year=table.year)


def build_actual_expense(
    window: LedgerWindow,
    filtered_km: Decimal | None,
    total_km: Decimal | None,
    preferences: AccountPreferences,
) -> ActualExpenseMethod:
    """Actual-expense method over every record of the selected cars, tags ignored."""
    home = preferences.home_currency
    refuels = window.of_kind(RecordKind.REFUEL, tagged=False)
    totals = ExpenseTotals(
        refuels_hc=home_total(refuels, home),
        maintenance_hc=home_total([record for record in window.all_records if is_maintenance(record)], home),
        other_expenses_hc=home_total([record for record in window.all_records if is_other_expense(record)], home),
    )
    allocation = ActualExpenseAllocator(currency=home).allocate(totals, filtered_km, total_km)

    return ActualExpenseMethod(
        total_refuels_cost_hc=totals.refuels_hc,
        total_refuels_volume=round_quantity(convert_volume(liquid_volume_liters(refuels), preferences.volume_unit)),
        total_maintenance_cost_hc=totals.maintenance_hc,
        total_other_expenses_cost_hc=totals.other_expenses_hc,
        total_all_expenses_cost_hc=totals.total_hc,
        business_use_percentage=round_quantity(allocation.business_use_percentage),
        deductible_refuels_cost_hc=allocation.deductible_refuels_hc,
        deductible_maintenance_cost_hc=allocation.deductible_maintenance_hc,
        deductible_other_expenses_cost_hc=allocation.deductible_other_expenses_hc,
        total_deductible_cost_hc=allocation.total_deductible_hc,
        volume_unit=preferences.volume_unit,
    )


def _linked_totals(records: Sequence[LedgerRecord], preferences: AccountPreferences) -> LinkedTotals:
    home = preferences.home_currency
    refuels = [record for record in records if record.kind == RecordKind.REFUEL]
    expenses = [record for record in records if record.kind == RecordKind.EXPENSE]
    revenues = [record for record in records if record.kind == RecordKind.REVENUE]
    return LinkedTotals(
        refuels_cost_hc=home_total(refuels, home),
        refuels_volume=round_quantity(convert_volume(liquid_volume_liters(refuels), preferences.volume_unit))
        if refuels
        else None,
        expenses_cost_hc=home_total(expenses, home),
        revenues_cost_hc=home_total(revenues, home),
        refuels_count=len(refuels),
        expenses_count=len(expenses),
        revenues_count=len(revenues),
    )


def calculated_reimbursement(trip: TravelRecord, distance: Decimal | None, home_currency: str) -> Decimal | None:
    """Reimbursement rate applied to the trip distance in the account's distance unit."""
    if trip.reimbursement_rate is None or distance is None:
        return None
    return quantize_money(distance * trip.reimbursement_rate, trip.reimbursement_currency or home_currency)


def build_trip_details(
    trips: Sequence[TravelRecord],
    linked: Mapping[TravelId | None, list[LedgerRecord]],
    preferences: AccountPreferences,
) -> tuple[list[TripDetail], TripsTotals]:
    details: list[TripDetail] = []
    for trip in trips:
        totals = _linked_totals(linked.get(trip.id, []), preferences)
        distance = convert_distance(trip.effective_distance_km, preferences.distance_unit)
        details.append(
            TripDetail(
                id=trip.id,
                car_id=trip.car_id,
                date=trip.first_timestamp,
                end_date=trip.last_timestamp,
                purpose=trip.purpose,
                destination=trip.destination,
                travel_type=trip.travel_type,
                distance=round_quantity(distance),
                is_round_trip=trip.is_round_trip,
                refuels_total=totals.refuels_cost_hc,
                refuels_volume=totals.refuels_volume,
                expenses_total=totals.expenses_cost_hc,
                revenues_total=totals.revenues_cost_hc,
                reimbursement_rate=trip.reimbursement_rate,
                reimbursement_rate_currency=trip.reimbursement_currency,
                calculated_reimbursement=calculated_reimbursement(trip, distance, preferences.home_currency),
                tags=sorted(trip.tag_ids),
            )
        )

    distances = [detail.distance for detail in details if detail.distance is not None]
    volumes = [detail.refuels_volume for detail in details if detail.refuels_volume is not None]
    totals_row = TripsTotals(
        total_trips=len(details),
        total_distance=sum(distances, Decimal(0)) if distances else None,
        total_refuels_cost=sum((detail.refuels_total for detail in details), Decimal(0)),
        total_refuels_volume=sum(volumes, Decimal(0)) if volumes else None,
        total_expenses_cost=sum((detail.expenses_total for detail in details), Decimal(0)),
        total_revenues_cost=sum((detail.revenues_total for detail in details), Decimal(0)),
        total_calculated_reimbursement=sum(
            (detail.calculated_reimbursement or Decimal(0) for detail in details), Decimal(0)
        ),
    )
    return details, totals_row


def build_travel_report(
    window: LedgerWindow,
    travels: Sequence[TravelRecord],
    odometer_ranges: Sequence[OdometerRange],
    preferences: AccountPreferences,
    *,
    car_ids: Sequence[CarId] = (),
    travel_types: Sequence[TravelType] = (),
    tag_ids: Sequence[TagId] = (),
    rate_country: str | None,
    calculator: MileageDeductionCalculator,
) -> TravelReport:
    trips = select_trips(
        travels,
        period=window.period,
        car_ids=car_ids,
        travel_types=travel_types,
        tag_ids=tag_ids,
    )
    trip_ids = {trip.id for trip in trips}
    linked = group_by(
        (record for record in window.all_records if record.travel_id in trip_ids),
        lambda record: record.travel_id,
    )

    total_km = odometer_distance(odometer_ranges)
    filtered_km = trips_distance_km(trips)
    details, details_totals = build_trip_details(trips, linked, preferences)
    actual_expense = build_actual_expense(window, filtered_km, total_km, preferences)

    return TravelReport(
        date_from=window.period.date_from,
        date_to=window.period.date_to,
        period_days=window.period.days,
        car_ids=window.car_ids,
        vehicles_count=len({trip.car_id for trip in trips} | {record.car_id for record in window.all_records}),
        total_distance_in_period=round_quantity(convert_distance(total_km, preferences.distance_unit)),
        filtered_trips_distance=round_quantity(convert_distance(filtered_km, preferences.distance_unit)),
        business_use_percentage=actual_expense.business_use_percentage,
        trips_by_type=build_trips_by_type(trips, preferences),
        standard_mileage_deduction=build_standard_mileage(
            trips, country=rate_country, year=window.period.date_to.year, calculator=calculator
        ),
        actual_expense_method=actual_expense,
        linked_totals=_linked_totals([record for group in linked.values() for record in group], preferences),
        trips=details,
        trips_totals=details_totals,
        home_currency=preferences.home_currency,
        distance_unit=preferences.distance_unit,
        volume_unit=preferences.volume_unit,
    )


__all__ = [
    "build_actual_expense",
    "build_standard_mileage",
    "build_travel_report",
    "build_trip_details",
    "build_trips_by_type",
    "calculated_reimbursement",
    "distance_by_type_km",
    "select_trips",
    "trips_distance_km",
]
