from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from pydantic import BaseModel

from config import AppSettings, config
from domain.consumption import ConsumptionEstimator
from domain.ledger import AccountPreferences, CarId, LedgerRecord, OdometerRange, ReportPeriod, TravelRecord
from domain.mileage import MileageDeductionCalculator
from domain.sources import LedgerSource, OdometerSource, PreferencesSource

from .common import prepare_ledger_window
from .expense_summary import build_expense_summary
from .models import ExpenseSummaryReport, ProfitabilityReport, TravelReport, YearlyReport
from .profitability import build_profitability_report
from .requests import (
    ExpenseSummaryReportFilter,
    ProfitabilityReportFilter,
    ReportRequestContext,
    TravelReportFilter,
    YearlyReportFilter,
    parse_report_request,
)
from .travel import build_travel_report
from .yearly import build_yearly_report

logger = logging.getLogger(__name__)

Report = ExpenseSummaryReport | YearlyReport | ProfitabilityReport | TravelReport
RawRequest = Mapping[str, Any] | BaseModel


class DataUnavailableError(Exception):
    """A collaborator failed or the fetch deadline expired; no report was produced."""

    def __init__(self, message: str, *, account_id: str | None = None, source: str | None = None) -> None:
        super().__init__(message)
        self.account_id = account_id
        self.source = source


@dataclass
class FetchedData:
    records: list[LedgerRecord]
    odometer_ranges: list[OdometerRange]
    preferences: AccountPreferences
    travels: list[TravelRecord] = field(default_factory=list)


class ReportAggregator:
    """Validate a report request, fetch its ledger window and assemble the report.

    Every call is independent: collaborators are awaited concurrently, all of
    them must succeed before the deadline, and nothing is kept between calls.
    """

    def __init__(
        self,
        *,
        ledger: LedgerSource,
        odometers: OdometerSource,
        preferences: PreferencesSource,
        settings: AppSettings | None = None,
        estimator: ConsumptionEstimator | None = None,
        mileage_calculator: MileageDeductionCalculator | None = None,
    ) -> None:
        self._ledger = ledger
        self._odometers = odometers
        self._preferences = preferences
        self._settings = settings or config()
        self._estimator = estimator or ConsumptionEstimator()
        self._mileage_calculator = mileage_calculator or MileageDeductionCalculator()

    async def build(self, request: RawRequest, context: ReportRequestContext) -> Report:
        """Dispatch on the request's ``kind``."""
        request_filter = parse_report_request(request)
        if isinstance(request_filter, ExpenseSummaryReportFilter):
            return await self.expense_summary(request_filter, context)
        if isinstance(request_filter, YearlyReportFilter):
            return await self.yearly(request_filter, context)
        if isinstance(request_filter, ProfitabilityReportFilter):
            return await self.profitability(request_filter, context)
        return await self.travel(request_filter, context)

    async def expense_summary(self, request: RawRequest, context: ReportRequestContext) -> ExpenseSummaryReport:
        request_filter = parse_report_request(request, kind="expense_summary")
        assert isinstance(request_filter, ExpenseSummaryReportFilter)
        period = request_filter.resolve_period(context, self._settings.default_window_days)
        logger.debug(
            "Building expense summary for account %s, %s..%s", context.account_id, period.date_from, period.date_to
        )

        fetched = await self.fetch(context, request_filter.car_ids, period)
        window = prepare_ledger_window(
            fetched.records, period=period, car_ids=request_filter.car_ids, tag_ids=request_filter.tag_ids
        )
        return build_expense_summary(
            window,
            _ranges_for(fetched.odometer_ranges, request_filter.car_ids),
            fetched.preferences,
            estimator=self._estimator,
        )

    async def yearly(self, request: RawRequest, context: ReportRequestContext) -> YearlyReport:
        request_filter = parse_report_request(request, kind="yearly")
        assert isinstance(request_filter, YearlyReportFilter)
        period = request_filter.period
        logger.debug("Building yearly report %s for account %s", request_filter.year, context.account_id)

        fetched = await self.fetch(context, request_filter.car_ids, period)
        window = prepare_ledger_window(
            fetched.records, period=period, car_ids=request_filter.car_ids, tag_ids=request_filter.tag_ids
        )
        return build_yearly_report(
            request_filter.year,
            window,
            _ranges_for(fetched.odometer_ranges, request_filter.car_ids),
            fetched.preferences,
        )

    async def profitability(self, request: RawRequest, context: ReportRequestContext) -> ProfitabilityReport:
        request_filter = parse_report_request(request, kind="profitability")
        assert isinstance(request_filter, ProfitabilityReportFilter)
        period = request_filter.period
        logger.debug(
            "Building profitability report for account %s, %s..%s", context.account_id, period.date_from, period.date_to
        )

        fetched = await self.fetch(context, request_filter.car_ids, period, with_travels=True)
        window = prepare_ledger_window(
            fetched.records, period=period, car_ids=request_filter.car_ids, tag_ids=request_filter.tag_ids
        )
        return build_profitability_report(
            window,
            fetched.travels,
            _ranges_for(fetched.odometer_ranges, request_filter.car_ids),
            fetched.preferences,
        )

    async def travel(self, request: RawRequest, context: ReportRequestContext) -> TravelReport:
        request_filter = parse_report_request(request, kind="travel")
        assert isinstance(request_filter, TravelReportFilter)
        period = request_filter.period
        logger.debug(
            "Building travel report for account %s, %s..%s", context.account_id, period.date_from, period.date_to
        )

        fetched = await self.fetch(context, request_filter.car_ids, period, with_travels=True)
        # Tags narrow the trips, not the ledger used for the actual-expense totals.
        window = prepare_ledger_window(fetched.records, period=period, car_ids=request_filter.car_ids)
        return build_travel_report(
            window,
            fetched.travels,
            _ranges_for(fetched.odometer_ranges, request_filter.car_ids),
            fetched.preferences,
            car_ids=request_filter.car_ids,
            travel_types=request_filter.travel_types,
            tag_ids=request_filter.tag_ids,
            rate_country=fetched.preferences.mileage_rate_country or self._settings.default_mileage_rate_country,
            calculator=self._mileage_calculator,
        )

    async def fetch(
        self,
        context: ReportRequestContext,
        car_ids: Sequence[CarId],
        period: ReportPeriod,
        *,
        with_travels: bool = False,
    ) -> FetchedData:
        """Fetch everything a report needs, concurrently and under one deadline."""
        sources = ["ledger", "odometer ranges", "account preferences"]
        tasks = [
            self._ledger.fetch_ledger_window(car_ids, period.date_from, period.date_to),
            self._odometers.fetch_odometer_ranges(car_ids, period.date_from, period.date_to),
            self._preferences.fetch_account_preferences(context.account_id),
        ]
        if with_travels:
            sources.append("travels")
            tasks.append(self._ledger.fetch_travels(car_ids, period.date_from, period.date_to))

        timeout = self._settings.fetch_timeout_seconds
        try:
            results = await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=timeout)
        except asyncio.TimeoutError as err:
            logger.error("Timeout after %ss fetching report data for account %s", timeout, context.account_id)
            msg = f"Report data was not fetched within {timeout}s"
            raise DataUnavailableError(msg, account_id=context.account_id) from err

        for source, result in zip(sources, results):
            # A cancelled collaborator comes back as CancelledError, a BaseException.
            if isinstance(result, BaseException):
                logger.warning("Fetching %s for account %s failed: %s", source, context.account_id, result)
                msg = f"Fetching {source} failed"
                raise DataUnavailableError(msg, account_id=context.account_id, source=source) from result

        return FetchedData(
            records=results[0],
            odometer_ranges=results[1],
            preferences=results[2],
            travels=results[3] if with_travels else [],
        )


def _ranges_for(ranges: Sequence[OdometerRange], car_ids: Sequence[CarId]) -> list[OdometerRange]:
    if not car_ids:
        return list(ranges)
    wanted = set(car_ids)
    return [item for item in ranges if item.car_id in wanted]


__all__ = ["DataUnavailableError", "FetchedData", "ReportAggregator", "prepare_ledger_window"]
