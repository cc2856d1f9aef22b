from __future__ import annotations

import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, NamedTuple

from pydantic import BaseModel

from .mileage import quantize_money


class DailyTotals(NamedTuple):
    revenue_hc: Decimal
    expense_hc: Decimal


class BreakEvenAnalysis(BaseModel):
    avg_daily_revenue_hc: Decimal
    avg_daily_expenses_hc: Decimal
    avg_daily_net_profit_hc: Decimal
    days_to_break_even: int | None
    break_even_day_in_period: int | None
    is_profitable: bool


def daily_series(
    totals_by_day: Mapping[date, DailyTotals], date_from: date, date_to: date
) -> list[DailyTotals]:
    """One entry per calendar day of the period, missing days filled with zero."""
    series: list[DailyTotals] = []
    day = date_from
    zero = DailyTotals(Decimal(0), Decimal(0))
    while day <= date_to:
        series.append(totals_by_day.get(day, zero))
        day += timedelta(days=1)
    return series


class BreakEvenAnalyzer:
    """Averages are reported rounded to ``currency`` when one is given."""

    def __init__(self, *, currency: str | None = None) -> None:
        self._currency = currency

    def analyze(self, series: Iterable[DailyTotals]) -> BreakEvenAnalysis:
        days = list(series)
        period_days = max(len(days), 1)

        total_revenue = Decimal(0)
        total_expense = Decimal(0)
        break_even_day: int | None = None

        for index, (revenue, expense) in enumerate(days, start=1):
            total_revenue += revenue
            total_expense += expense
            # A day with nothing earned and nothing spent is not a break-even point.
            if break_even_day is None and total_revenue > 0 and total_revenue >= total_expense:
                break_even_day = index

        avg_revenue = total_revenue / period_days
        avg_expenses = total_expense / period_days
        shown_avg_revenue = self._round(avg_revenue)
        is_profitable = total_revenue - total_expense > 0

        # Projected from the reported (rounded) daily revenue.
        days_to_break_even: int | None = None
        if not is_profitable and shown_avg_revenue > 0:
            days_to_break_even = math.ceil(total_expense / shown_avg_revenue)

        return BreakEvenAnalysis(
            avg_daily_revenue_hc=shown_avg_revenue,
            avg_daily_expenses_hc=self._round(avg_expenses),
            avg_daily_net_profit_hc=self._round(avg_revenue - avg_expenses),
            days_to_break_even=days_to_break_even,
            break_even_day_in_period=break_even_day,
            is_profitable=is_profitable,
        )

    def _round(self, amount: Decimal) -> Decimal:
        if self._currency is None:
            return amount
        return quantize_money(amount, self._currency)


__all__ = ["BreakEvenAnalysis", "BreakEvenAnalyzer", "DailyTotals", "daily_series"]
