from datetime import date
from decimal import Decimal

import pytest

from domain.ledger import AccountPreferences, TravelId
from reports.aggregator import ReportAggregator
from reports.models import ProfitabilityReport
from reports.requests import ReportRequestContext
from tests.constants import ACCOUNT, CAR_A, CAR_B, EUR
from tests.helpers.sources import FakeLedgerSource
from tests.helpers.time_utils import at, make_checkpoint, make_expense, make_refuel, make_revenue, make_travel

CONTEXT = ReportRequestContext(account_id=ACCOUNT)
REQUEST = {"date_from": "2024-03-01", "date_to": "2024-03-03"}


@pytest.fixture()
def source(preferences: AccountPreferences) -> FakeLedgerSource:
    trip = TravelId("t1")
    return FakeLedgerSource(
        preferences=preferences,
        records=[
            make_revenue(amount="100", travel_id=trip, category_id=7, timestamp=at(date(2024, 3, 1), hour=9)),
            make_refuel(volume="30", amount="50", odometer="1000", travel_id=trip, timestamp=at(date(2024, 3, 1))),
            make_expense(amount="30", maintenance=True, timestamp=at(date(2024, 3, 2))),
            make_revenue(amount="40", category_id=7, timestamp=at(date(2024, 3, 3))),
            make_revenue(foreign=("25", EUR), category_id=8, timestamp=at(date(2024, 3, 3))),
            make_checkpoint(odometer="1200", timestamp=at(date(2024, 3, 3), hour=18)),
            make_expense(amount="10", car_id=CAR_B, timestamp=at(date(2024, 3, 2))),
        ],
        travels=[
            make_travel("t1", distance="100", first_timestamp=at(date(2024, 3, 1), hour=8)),
            make_travel("t2", distance="50", first_timestamp=at(date(2024, 3, 2), hour=8)),
        ],
    )


async def _report(source: FakeLedgerSource, **request) -> ProfitabilityReport:
    aggregator = ReportAggregator(ledger=source, odometers=source, preferences=source)
    return await aggregator.profitability({**REQUEST, **request}, CONTEXT)


@pytest.mark.asyncio
async def test_profitability_totals(source: FakeLedgerSource) -> None:
    report = await _report(source)

    assert report.period_days == 3
    assert report.total_revenue_hc == Decimal("140")
    assert report.total_revenue_count == 3
    assert report.total_refuels_cost_hc == Decimal("50")
    assert report.total_maintenance_cost_hc == Decimal("30")
    assert report.total_other_expenses_cost_hc == Decimal("10")
    assert report.total_expenses_hc == Decimal("90")
    assert report.net_profit_hc == Decimal("50")
    assert report.profit_margin_pct == Decimal("35.71")
    assert report.total_distance == Decimal("200.00")
    assert report.profit_per_distance == Decimal("0.25")
    assert [bucket.currency for bucket in report.foreign_revenue_totals] == [EUR]
    assert report.total_foreign_revenue_records_count == 1


@pytest.mark.asyncio
async def test_break_even(source: FakeLedgerSource) -> None:
    report = await _report(source)

    assert report.break_even.is_profitable
    assert report.break_even.break_even_day_in_period == 1
    assert report.break_even.days_to_break_even is None
    assert report.avg_daily_revenue_hc == Decimal("46.67")
    assert report.avg_daily_expenses_hc == Decimal("30.00")


@pytest.mark.asyncio
async def test_by_vehicle_and_monthly_trend(source: FakeLedgerSource) -> None:
    report = await _report(source)

    assert [row.car_id for row in report.by_vehicle] == [CAR_A, CAR_B]
    car_a, car_b = report.by_vehicle
    assert car_a.net_profit_hc == Decimal("60")
    assert car_a.distance == Decimal("200.00")
    assert car_a.profit_per_distance == Decimal("0.30")
    assert car_b.net_profit_hc == Decimal("-10")
    assert car_b.profit_margin_pct is None
    assert car_b.distance is None

    [march] = report.monthly_trend
    assert (march.year, march.month) == (2024, 3)
    assert march.net_profit_hc == report.net_profit_hc


@pytest.mark.asyncio
async def test_profitable_trips(source: FakeLedgerSource) -> None:
    report = await _report(source)

    [trip] = report.profitable_trips
    assert trip.trip_id == "t1"
    assert trip.revenue_hc == Decimal("100")
    assert trip.linked_refuels_hc == Decimal("50")
    assert trip.net_profit_hc == Decimal("50")
    assert trip.profit_per_distance == Decimal("0.50")
    assert report.profitable_trips_totals.total_trips == 1
    assert report.profitable_trips_totals.total_net_profit_hc == Decimal("50")


@pytest.mark.asyncio
async def test_revenue_breakdowns(source: FakeLedgerSource) -> None:
    report = await _report(source)

    [category_7, category_8] = report.revenue_by_category
    assert category_7.category_id == 7
    assert category_7.total_amount_hc == Decimal("140")
    assert category_7.percentage_of_total == Decimal("100.00")
    assert category_8.total_foreign_records_count == 1


@pytest.mark.asyncio
async def test_losing_period_reports_days_to_break_even(source: FakeLedgerSource) -> None:
    report = await _report(source, car_ids=[CAR_B])

    assert report.car_ids == [CAR_B]
    assert report.total_revenue_hc == Decimal(0)
    assert report.profit_margin_pct is None
    assert not report.break_even.is_profitable
    assert report.break_even.break_even_day_in_period is None
    assert report.break_even.days_to_break_even is None
