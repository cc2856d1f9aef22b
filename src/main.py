from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Any, Sequence

from config import config
from db.db import init_db
from db.repositories import SqlLedgerSource
from domain.ledger import AccountId
from domain.mileage import MileageDeductionCalculator, TierMode
from reports.aggregator import DataUnavailableError, Report, ReportAggregator
from reports.models import ExpenseSummaryReport, ProfitabilityReport, TravelReport, YearlyReport
from reports.requests import ReportRequestContext, ValidationError
from utils.rendering import (
    render_expense_summary,
    render_profitability_report,
    render_travel_report,
    render_yearly_report,
)

logger = logging.getLogger(__name__)

REPORT_KINDS = {
    "expense-summary": "expense_summary",
    "yearly": "yearly",
    "profitability": "profitability",
    "travel": "travel",
}


def build_request(args: argparse.Namespace) -> dict[str, Any]:
    """Raw request dict; validation is left to the report layer."""
    request: dict[str, Any] = {
        "kind": REPORT_KINDS[args.report],
        "car_ids": args.car,
        "tag_ids": args.tag,
    }
    if args.report == "yearly":
        request["year"] = args.year
        return request

    if args.date_from is not None:
        request["date_from"] = args.date_from
    if args.date_to is not None:
        request["date_to"] = args.date_to
    if args.report == "travel":
        request["travel_types"] = args.travel_type
    return request


async def run(
    db_file: Path,
    account_id: AccountId,
    request: dict[str, Any],
    *,
    as_of: date | None,
    tier_mode: TierMode,
) -> Report:
    session_factory = init_db(db_file)
    source = SqlLedgerSource(session_factory, account_id=account_id)
    aggregator = ReportAggregator(
        ledger=source,
        odometers=source,
        preferences=source,
        mileage_calculator=MileageDeductionCalculator(mode=tier_mode),
    )
    context = ReportRequestContext(account_id=account_id, as_of=as_of)
    return await aggregator.build(request, context)


def render(report: Report) -> None:
    if isinstance(report, ExpenseSummaryReport):
        render_expense_summary(report)
    elif isinstance(report, YearlyReport):
        render_yearly_report(report)
    elif isinstance(report, ProfitabilityReport):
        render_profitability_report(report)
    elif isinstance(report, TravelReport):
        render_travel_report(report)


def build_parser() -> argparse.ArgumentParser:
    settings = config()
    parser = argparse.ArgumentParser(description="Vehicle expense, profitability and travel reports.")
    parser.add_argument("report", choices=sorted(REPORT_KINDS))
    parser.add_argument("--db", type=Path, default=settings.db_file)
    parser.add_argument("--account", required=True)
    parser.add_argument("--car", action="append", default=[], help="Car id, repeatable. Defaults to all cars.")
    parser.add_argument("--tag", action="append", default=[], help="Tag id, repeatable.")
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat)
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat)
    parser.add_argument("--year", type=int)
    parser.add_argument("--travel-type", action="append", default=[])
    parser.add_argument("--as-of", type=date.fromisoformat, help="Reporting date for rolling windows.")
    parser.add_argument("--tier-mode", type=TierMode, choices=list(TierMode), default=TierMode.COMBINED)
    parser.add_argument("--format", choices=["text", "json"], default="text")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    logging.basicConfig(level=config().log_level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    args = build_parser().parse_args(argv)
    request = build_request(args)

    try:
        report = asyncio.run(
            run(args.db, AccountId(args.account), request, as_of=args.as_of, tier_mode=args.tier_mode)
        )
    except ValidationError as err:
        print(f"Invalid request: {err}", file=sys.stderr)
        for field_name, message in sorted(err.errors.items()):
            print(f"  {field_name}: {message}", file=sys.stderr)
        return 2
    except DataUnavailableError as err:
        logger.error("Report not produced: %s", err)
        print(f"Report data unavailable: {err}", file=sys.stderr)
        return 1

    if args.format == "json":
        print(report.model_dump_json(indent=2))
    else:
        render(report)
    return 0


__all__ = ["build_parser", "build_request", "main", "run"]


if __name__ == "__main__":
    sys.exit(main())
