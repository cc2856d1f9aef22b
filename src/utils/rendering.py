from __future__ import annotations

from typing import Sequence

from domain.currency import CurrencyAmount
from reports.models import ExpenseSummaryReport, ProfitabilityReport, TravelReport, YearlyReport

from .formatting import MISSING, format_currency, format_decimal, format_percentage, format_quantity


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Plain-text table; the first column is left aligned, the rest right aligned."""
    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))

    def _line(cells: Sequence[str]) -> str:
        parts = [f"{cells[0]:<{widths[0]}}"]
        parts.extend(f"{cell:>{widths[index]}}" for index, cell in enumerate(cells[1:], start=1))
        return " ".join(parts)

    header = _line(headers)
    lines = [header, "-" * len(header)]
    lines.extend(_line(row) for row in rows)
    return "\n".join(lines)


def _foreign(amounts: Sequence[CurrencyAmount]) -> str:
    if not amounts:
        return "none"
    return ", ".join(f"{format_currency(item.amount)} {item.currency} ({item.records_count})" for item in amounts)


def render_expense_summary(report: ExpenseSummaryReport) -> None:
    hc = report.home_currency
    distance = report.distance_unit.value
    volume = report.volume_unit.value
    print(f"Expense summary {report.date_from} to {report.date_to} ({report.period_days} days)")
    print(f"  Vehicles:        {report.vehicles_count}")
    print(f"  Total cost:      {format_currency(report.total_cost_hc)} {hc}")
    print(f"    Refuels:       {format_currency(report.refuels_cost_hc)} {hc} ({report.refuels_count} records)")
    print(f"    Expenses:      {format_currency(report.expenses_cost_hc)} {hc} ({report.expenses_count} records)")
    print(f"  Daily average:   {format_currency(report.avg_daily_cost_hc)} {hc}")
    print(f"  Foreign amounts: {_foreign(report.foreign_currency_totals)}")
    print(f"  Fuel purchased:  {format_quantity(report.fuel_purchased, volume)}")
    print(f"  Mileage:         {format_quantity(report.mileage, distance)}")
    print(f"  Cost/{distance}:         {format_currency(report.cost_per_distance_hc)} {hc}")
    print(f"  Consumption:     {format_quantity(report.overall_consumption, report.consumption_unit.value)}")

    if report.consumption_by_fuel_type:
        print()
        rows = [
            [
                item.car_id,
                item.fuel_type,
                format_quantity(item.consumption_value, item.consumption_unit.value),
                format_quantity(item.fuel_used, item.fuel_unit),
                format_quantity(item.distance, distance),
                item.confidence.value,
                ", ".join(item.confidence_reasons) or MISSING,
            ]
            for item in report.consumption_by_fuel_type
        ]
        print(render_table(["Car", "Fuel", "Consumption", "Fuel used", "Distance", "Confidence", "Reasons"], rows))

    if report.by_category:
        print()
        rows = [
            [
                str(row.category_id) if row.category_id is not None else "(none)",
                format_currency(row.total_amount_hc),
                str(row.records_count),
                format_percentage(row.percentage_of_total),
                _foreign(row.foreign_currencies),
            ]
            for row in report.by_category
        ]
        print(render_table(["Category", f"Total {hc}", "Records", "Share", "Foreign"], rows))


def render_yearly_report(report: YearlyReport) -> None:
    hc = report.home_currency
    print(f"Yearly report {report.year} ({report.vehicles_count} vehicles)")
    rows = [
        [
            f"{month.month:02d}",
            format_currency(month.refuels_cost_hc),
            format_currency(month.expenses_cost_hc),
            format_currency(month.total_cost_hc),
            format_decimal(month.refuels_volume),
            format_decimal(month.mileage),
            str(month.total_foreign_records_count),
        ]
        for month in report.months
    ]
    totals = report.totals
    rows.append(
        [
            "Total",
            format_currency(totals.refuels_cost_hc),
            format_currency(totals.expenses_cost_hc),
            format_currency(totals.total_cost_hc),
            format_decimal(totals.refuels_volume),
            format_decimal(totals.mileage),
            str(totals.total_foreign_records_count),
        ]
    )
    headers = [
        "Month",
        f"Refuels {hc}",
        f"Expenses {hc}",
        f"Total {hc}",
        f"Volume {report.volume_unit.value}",
        f"Mileage {report.distance_unit.value}",
        "Foreign",
    ]
    print(render_table(headers, rows))
    print(f"Foreign amounts: {_foreign(totals.foreign_currency_totals)}")


def render_profitability_report(report: ProfitabilityReport) -> None:
    hc = report.home_currency
    print(f"Profitability {report.date_from} to {report.date_to} ({report.period_days} days)")
    print(f"  Revenue:        {format_currency(report.total_revenue_hc)} {hc}")
    print(f"  Expenses:       {format_currency(report.total_expenses_hc)} {hc}")
    print(f"  Net profit:     {format_currency(report.net_profit_hc)} {hc}")
    print(f"  Margin:         {format_percentage(report.profit_margin_pct)}")
    print(f"  Foreign revenue: {_foreign(report.foreign_revenue_totals)}")
    print(f"  Foreign expenses: {_foreign(report.foreign_expense_totals)}")

    break_even = report.break_even
    if break_even.is_profitable:
        status = f"profitable, break-even on day {break_even.break_even_day_in_period}"
    elif break_even.days_to_break_even is not None:
        status = f"not profitable, {break_even.days_to_break_even} days of revenue to break even"
    else:
        status = "not profitable, no revenue"
    print(f"  Break-even:     {status}")

    if report.by_vehicle:
        print()
        rows = [
            [
                row.car_id,
                format_currency(row.revenue_hc),
                format_currency(row.total_expenses_hc),
                format_currency(row.net_profit_hc),
                format_percentage(row.profit_margin_pct),
                format_quantity(row.distance),
            ]
            for row in report.by_vehicle
        ]
        headers = ["Car", f"Revenue {hc}", f"Expenses {hc}", f"Net {hc}", "Margin", report.distance_unit.value]
        print(render_table(headers, rows))


def render_travel_report(report: TravelReport) -> None:
    hc = report.home_currency
    distance = report.distance_unit.value
    print(f"Travel report {report.date_from} to {report.date_to} ({report.period_days} days)")
    print(f"  Distance driven:  {format_quantity(report.total_distance_in_period, distance)}")
    print(f"  Trips distance:   {format_quantity(report.filtered_trips_distance, distance)}")
    print(f"  Business use:     {format_percentage(report.business_use_percentage)}")

    deduction = report.standard_mileage_deduction
    if deduction is None:
        print("  Standard mileage: no rate table")
    else:
        print(
            f"  Standard mileage: {format_currency(deduction.total_deduction)} {deduction.currency}"
            f" ({deduction.country} {deduction.rate_year}, {deduction.mode.value} tiers)"
        )
        for item in deduction.by_type:
            print(
                f"    {item.travel_type.value:<9} {format_quantity(item.distance, deduction.distance_unit.value)}"
                f" -> {format_currency(item.deduction)} {item.rate_currency}"
            )

    actual = report.actual_expense_method
    print(f"  Actual expenses:  {format_currency(actual.total_all_expenses_cost_hc)} {hc}")
    print(f"  Deductible:       {format_currency(actual.total_deductible_cost_hc)} {hc}")

    if report.trips:
        print()
        rows = [
            [
                trip.date.date().isoformat() if trip.date else "-",
                trip.travel_type.value,
                trip.purpose,
                format_quantity(trip.distance),
                format_currency(trip.expenses_total + trip.refuels_total),
                format_currency(trip.calculated_reimbursement),
            ]
            for trip in report.trips
        ]
        print(render_table(["Date", "Type", "Purpose", distance, f"Costs {hc}", "Reimbursement"], rows))


__all__ = [
    "render_expense_summary",
    "render_profitability_report",
    "render_table",
    "render_travel_report",
    "render_yearly_report",
]
