from datetime import date
from decimal import Decimal

import pytest

from domain.ledger import AccountPreferences, Confidence, LedgerRecord
from reports.aggregator import ReportAggregator
from reports.requests import ReportRequestContext
from tests.constants import ACCOUNT, CAR_A, EUR, TAG_UBER
from tests.helpers.sources import FakeLedgerSource
from tests.helpers.time_utils import at, make_expense, make_refuel

CONTEXT = ReportRequestContext(account_id=ACCOUNT)
REQUEST = {"date_from": "2024-03-01", "date_to": "2024-03-10"}


def _march_records() -> list[LedgerRecord]:
    return [
        make_refuel(volume="30", amount="45", odometer="9800", timestamp=at(date(2024, 2, 20))),
        make_refuel(volume="40", amount="60", odometer="10000", timestamp=at(date(2024, 3, 1))),
        make_expense(
            amount="100", odometer="10200", maintenance=True, category_id=1, timestamp=at(date(2024, 3, 3))
        ),
        make_expense(
            amount="55", foreign=("50", EUR), category_id=2, tag_ids={TAG_UBER}, timestamp=at(date(2024, 3, 4))
        ),
        make_refuel(volume="40", amount="64", odometer="10500", timestamp=at(date(2024, 3, 5))),
    ]


@pytest.fixture()
def aggregator(preferences: AccountPreferences) -> ReportAggregator:
    source = FakeLedgerSource(preferences=preferences, records=_march_records())
    return ReportAggregator(ledger=source, odometers=source, preferences=source)


@pytest.mark.asyncio
async def test_expense_summary_totals(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary(REQUEST, CONTEXT)

    assert report.period_days == 10
    assert report.car_ids == [CAR_A]
    assert report.vehicles_count == 1
    assert report.refuels_cost_hc == Decimal("124")
    assert report.expenses_cost_hc == Decimal("100")
    assert report.total_cost_hc == Decimal("224")
    assert report.avg_daily_cost_hc == Decimal("22.40")
    assert report.refuels_count == 2
    assert report.expenses_count == 2
    assert report.total_records_count == 4
    assert report.refuels.average_price_per_volume_hc == Decimal("1.55")


@pytest.mark.asyncio
async def test_foreign_amounts_are_never_converted(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary(REQUEST, CONTEXT)

    [bucket] = report.foreign_currency_totals
    assert (bucket.currency, bucket.amount, bucket.records_count) == (EUR, Decimal("50"), 1)
    assert report.total_foreign_records_count == 1
    assert report.expenses.count_hc == 1
    assert report.expenses.total_foreign_records_count == 1


@pytest.mark.asyncio
async def test_mileage_and_consumption(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary(REQUEST, CONTEXT)

    assert report.fuel_purchased == Decimal("80.00")
    assert report.start_odometer == Decimal("10000.00")
    assert report.end_odometer == Decimal("10500.00")
    assert report.mileage == Decimal("500.00")
    assert report.avg_mileage_per_day == Decimal("50.00")
    assert report.overall_consumption == Decimal("8.00")
    assert report.cost_per_distance_hc == Decimal("0.45")

    [consumption] = report.consumption_by_fuel_type
    assert consumption.consumption_value == Decimal("8.00")
    assert consumption.confidence == Confidence.MEDIUM


@pytest.mark.asyncio
async def test_breakdown_by_category(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary(REQUEST, CONTEXT)

    assert [row.category_id for row in report.by_category] == [None, 1, 2]
    refuels_row, maintenance_row, foreign_row = report.by_category
    assert refuels_row.percentage_of_total == Decimal("55.36")
    assert maintenance_row.percentage_of_total == Decimal("44.64")
    assert foreign_row.total_amount_hc == Decimal(0)
    assert foreign_row.total_foreign_records_count == 1


@pytest.mark.asyncio
async def test_tag_filter_narrows_costs(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary({**REQUEST, "tag_ids": [TAG_UBER]}, CONTEXT)

    assert report.refuels_count == 0
    assert report.expenses_count == 1
    assert report.total_cost_hc == Decimal(0)
    assert report.total_foreign_records_count == 1


@pytest.mark.asyncio
async def test_empty_period(aggregator: ReportAggregator) -> None:
    report = await aggregator.expense_summary({"date_from": "2023-01-01", "date_to": "2023-01-31"}, CONTEXT)

    assert report.total_cost_hc == Decimal(0)
    assert report.mileage is None
    assert report.overall_consumption is None
    assert report.cost_per_distance_hc is None
    assert report.consumption_by_fuel_type == []
    assert report.refuels.average_price_per_volume_hc is None
