import asyncio
from datetime import date

import pytest

from config import AppSettings
from domain.ledger import AccountPreferences
from reports.aggregator import DataUnavailableError, ReportAggregator
from reports.models import ExpenseSummaryReport, ProfitabilityReport, TravelReport, YearlyReport
from reports.requests import ReportRequestContext, ValidationError, YearlyReportFilter
from tests.constants import ACCOUNT, HOME_CURRENCY
from tests.helpers.sources import (
    CancelledOdometerSource,
    FailingOdometerSource,
    FakeLedgerSource,
    SlowPreferencesSource,
)
from tests.helpers.time_utils import at, make_refuel

CONTEXT = ReportRequestContext(account_id=ACCOUNT, as_of=date(2024, 3, 31))


@pytest.fixture()
def source(preferences: AccountPreferences) -> FakeLedgerSource:
    return FakeLedgerSource(
        preferences=preferences,
        records=[
            make_refuel(volume="40", amount="60", odometer="10000", timestamp=at(date(2024, 3, 5))),
            make_refuel(volume="40", amount="64", odometer="10500", timestamp=at(date(2024, 3, 20))),
        ],
    )


def _aggregator(source: FakeLedgerSource, **kwargs) -> ReportAggregator:
    options = {"ledger": source, "odometers": source, "preferences": source}
    options.update(kwargs)
    return ReportAggregator(**options)


@pytest.mark.asyncio
async def test_invalid_request_fails_before_any_fetch(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source)

    with pytest.raises(ValidationError) as exc_info:
        await aggregator.profitability({"date_from": "2024-03-01"}, CONTEXT)

    assert "date_to" in exc_info.value.errors
    assert source.calls == []


@pytest.mark.asyncio
async def test_build_dispatches_on_kind(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source)
    dates = {"date_from": "2024-03-01", "date_to": "2024-03-31"}

    assert isinstance(await aggregator.build({"kind": "expense_summary"}, CONTEXT), ExpenseSummaryReport)
    assert isinstance(await aggregator.build(YearlyReportFilter(year=2024), CONTEXT), YearlyReport)
    assert isinstance(await aggregator.build({"kind": "profitability", **dates}, CONTEXT), ProfitabilityReport)
    assert isinstance(await aggregator.build({"kind": "travel", **dates}, CONTEXT), TravelReport)


@pytest.mark.asyncio
async def test_travels_are_fetched_only_when_needed(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source)

    await aggregator.expense_summary({}, CONTEXT)
    assert "travels" not in source.calls

    await aggregator.travel({"date_from": "2024-03-01", "date_to": "2024-03-31"}, CONTEXT)
    assert "travels" in source.calls


@pytest.mark.asyncio
async def test_failing_collaborator_fails_the_whole_report(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source, odometers=FailingOdometerSource())

    with pytest.raises(DataUnavailableError) as exc_info:
        await aggregator.expense_summary({}, CONTEXT)

    assert exc_info.value.source == "odometer ranges"
    assert exc_info.value.account_id == ACCOUNT
    assert isinstance(exc_info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_cancelled_collaborator_fails_the_whole_report(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source, odometers=CancelledOdometerSource())

    with pytest.raises(DataUnavailableError) as exc_info:
        await aggregator.expense_summary({}, CONTEXT)

    assert exc_info.value.source == "odometer ranges"
    assert isinstance(exc_info.value.__cause__, asyncio.CancelledError)


@pytest.mark.asyncio
async def test_fetch_deadline_fails_the_whole_report(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(
        source,
        preferences=SlowPreferencesSource(delay_seconds=1.0),
        settings=AppSettings(fetch_timeout_seconds=0.05),
    )

    with pytest.raises(DataUnavailableError):
        await aggregator.yearly({"year": 2024}, CONTEXT)


@pytest.mark.asyncio
async def test_rolling_window_uses_configured_days(source: FakeLedgerSource) -> None:
    aggregator = _aggregator(source, settings=AppSettings(default_window_days=7))

    report = await aggregator.expense_summary({}, CONTEXT)

    assert report.date_from == date(2024, 3, 25)
    assert report.period_days == 7
    assert report.refuels_count == 0
    assert report.home_currency == HOME_CURRENCY
