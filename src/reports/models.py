"""Report DTOs.

Money fields suffixed ``_hc`` are in the account's home currency. Distances
and volumes are already converted to the account's preferred units, named by
the ``distance_unit`` / ``volume_unit`` fields of each report.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from domain.break_even import BreakEvenAnalysis
from domain.currency import CurrencyAmount
from domain.ledger import (
    CarId,
    ConsumptionUnit,
    DistanceUnit,
    FuelTypeConsumption,
    TagId,
    TravelId,
    TravelType,
    VolumeUnit,
)
from domain.mileage import MileageDeduction


class CategoryBreakdown(BaseModel):
    category_id: int | None
    total_amount_hc: Decimal
    records_count: int
    percentage_of_total: Decimal
    foreign_currencies: list[CurrencyAmount] = Field(default_factory=list)
    total_foreign_records_count: int = 0


class KindBreakdown(BaseModel):
    kind_id: int | None
    category_id: int | None
    total_amount_hc: Decimal
    records_count: int
    percentage_of_total: Decimal
    foreign_currencies: list[CurrencyAmount] = Field(default_factory=list)
    total_foreign_records_count: int = 0


class RefuelsSummary(BaseModel):
    cost_hc: Decimal
    count_hc: int
    records_count: int
    volume: Decimal
    average_price_per_volume_hc: Decimal | None
    foreign_currencies: list[CurrencyAmount] = Field(default_factory=list)
    total_foreign_records_count: int = 0


class ExpensesSummary(BaseModel):
    cost_hc: Decimal
    count_hc: int
    records_count: int
    foreign_currencies: list[CurrencyAmount] = Field(default_factory=list)
    total_foreign_records_count: int = 0


class ExpenseSummaryReport(BaseModel):
    date_from: date
    date_to: date
    period_days: int
    car_ids: list[CarId]
    vehicles_count: int

    total_cost_hc: Decimal
    refuels_cost_hc: Decimal
    expenses_cost_hc: Decimal
    avg_daily_cost_hc: Decimal
    avg_daily_refuels_cost_hc: Decimal
    avg_daily_expenses_cost_hc: Decimal

    foreign_currency_totals: list[CurrencyAmount]
    total_foreign_records_count: int

    refuels: RefuelsSummary
    expenses: ExpensesSummary

    fuel_purchased: Decimal
    start_odometer: Decimal | None
    end_odometer: Decimal | None
    mileage: Decimal | None
    avg_mileage_per_day: Decimal | None
    overall_consumption: Decimal | None
    consumption_by_fuel_type: list[FuelTypeConsumption]
    cost_per_distance_hc: Decimal | None

    total_records_count: int
    refuels_count: int
    expenses_count: int

    by_category: list[CategoryBreakdown]
    by_kind: list[KindBreakdown]

    home_currency: str
    distance_unit: DistanceUnit
    volume_unit: VolumeUnit
    consumption_unit: ConsumptionUnit


class MonthlyBreakdown(BaseModel):
    month: int
    refuels_cost_hc: Decimal = Decimal(0)
    expenses_cost_hc: Decimal = Decimal(0)
    total_cost_hc: Decimal = Decimal(0)
    refuels_count_hc: int = 0
    expenses_count_hc: int = 0
    refuels_volume: Decimal = Decimal(0)
    start_odometer: Decimal | None = None
    end_odometer: Decimal | None = None
    mileage: Decimal | None = None
    foreign_refuels: list[CurrencyAmount] = Field(default_factory=list)
    foreign_expenses: list[CurrencyAmount] = Field(default_factory=list)
    foreign_currency_totals: list[CurrencyAmount] = Field(default_factory=list)
    total_foreign_records_count: int = 0
    refuels_count: int = 0
    expenses_count: int = 0


class YearlyTotals(BaseModel):
    refuels_cost_hc: Decimal
    expenses_cost_hc: Decimal
    total_cost_hc: Decimal
    refuels_volume: Decimal
    mileage: Decimal | None
    refuels_count: int
    expenses_count: int
    foreign_currency_totals: list[CurrencyAmount]
    total_foreign_records_count: int


class YearlyReport(BaseModel):
    year: int
    car_ids: list[CarId]
    vehicles_count: int
    months: list[MonthlyBreakdown]
    totals: YearlyTotals
    home_currency: str
    distance_unit: DistanceUnit
    volume_unit: VolumeUnit


class VehicleProfitability(BaseModel):
    car_id: CarId
    revenue_hc: Decimal
    revenue_count: int
    refuels_cost_hc: Decimal
    maintenance_cost_hc: Decimal
    other_expenses_cost_hc: Decimal
    total_expenses_hc: Decimal
    expenses_count: int
    net_profit_hc: Decimal
    profit_margin_pct: Decimal | None
    distance: Decimal | None
    profit_per_distance: Decimal | None
    revenue_per_distance: Decimal | None
    expenses_per_distance: Decimal | None


class ProfitabilityMonthlyTrend(BaseModel):
    year: int
    month: int
    revenue_hc: Decimal
    revenue_count: int
    refuels_cost_hc: Decimal
    maintenance_cost_hc: Decimal
    other_expenses_cost_hc: Decimal
    total_expenses_hc: Decimal
    expenses_count: int
    net_profit_hc: Decimal
    distance: Decimal | None
    profit_per_distance: Decimal | None


class TripProfitability(BaseModel):
    trip_id: TravelId
    car_id: CarId
    date: datetime | None
    purpose: str
    destination: str
    travel_type: TravelType
    distance: Decimal | None
    revenue_hc: Decimal
    revenue_count: int
    linked_refuels_hc: Decimal
    linked_expenses_hc: Decimal
    total_linked_expenses_hc: Decimal
    net_profit_hc: Decimal
    profit_per_distance: Decimal | None
    tags: list[TagId] = Field(default_factory=list)


class TripProfitabilityTotals(BaseModel):
    total_trips: int
    total_distance: Decimal | None
    total_revenue_hc: Decimal
    total_linked_refuels_hc: Decimal
    total_linked_expenses_hc: Decimal
    total_linked_all_expenses_hc: Decimal
    total_net_profit_hc: Decimal


class ProfitabilityReport(BaseModel):
    date_from: date
    date_to: date
    period_days: int
    car_ids: list[CarId]
    vehicles_count: int

    total_revenue_hc: Decimal
    total_revenue_count: int
    total_refuels_cost_hc: Decimal
    total_maintenance_cost_hc: Decimal
    total_other_expenses_cost_hc: Decimal
    total_expenses_hc: Decimal
    total_expenses_count: int
    net_profit_hc: Decimal
    profit_margin_pct: Decimal | None
    avg_daily_revenue_hc: Decimal
    avg_daily_expenses_hc: Decimal
    avg_daily_net_profit_hc: Decimal
    total_distance: Decimal | None
    profit_per_distance: Decimal | None

    foreign_revenue_totals: list[CurrencyAmount]
    foreign_expense_totals: list[CurrencyAmount]
    total_foreign_revenue_records_count: int
    total_foreign_expense_records_count: int

    revenue_by_category: list[CategoryBreakdown]
    revenue_by_kind: list[KindBreakdown]
    expenses_by_category: list[CategoryBreakdown]
    expenses_by_kind: list[KindBreakdown]

    by_vehicle: list[VehicleProfitability]
    monthly_trend: list[ProfitabilityMonthlyTrend]
    profitable_trips: list[TripProfitability]
    profitable_trips_totals: TripProfitabilityTotals
    break_even: BreakEvenAnalysis

    home_currency: str
    distance_unit: DistanceUnit
    volume_unit: VolumeUnit


class TravelTypeBreakdown(BaseModel):
    travel_type: TravelType
    trips_count: int
    total_distance: Decimal | None
    percentage_of_filtered: Decimal


class StandardMileageDeduction(MileageDeduction):
    country: str
    rate_year: int


class ActualExpenseMethod(BaseModel):
    total_refuels_cost_hc: Decimal
    total_refuels_volume: Decimal | None
    total_maintenance_cost_hc: Decimal
    total_other_expenses_cost_hc: Decimal
    total_all_expenses_cost_hc: Decimal
    business_use_percentage: Decimal | None
    deductible_refuels_cost_hc: Decimal | None
    deductible_maintenance_cost_hc: Decimal | None
    deductible_other_expenses_cost_hc: Decimal | None
    total_deductible_cost_hc: Decimal | None
    volume_unit: VolumeUnit


class LinkedTotals(BaseModel):
    refuels_cost_hc: Decimal = Decimal(0)
    refuels_volume: Decimal | None = None
    expenses_cost_hc: Decimal = Decimal(0)
    revenues_cost_hc: Decimal = Decimal(0)
    refuels_count: int = 0
    expenses_count: int = 0
    revenues_count: int = 0


class TripDetail(BaseModel):
    id: TravelId
    car_id: CarId
    date: datetime | None
    end_date: datetime | None
    purpose: str
    destination: str
    travel_type: TravelType
    distance: Decimal | None
    is_round_trip: bool
    refuels_total: Decimal
    refuels_volume: Decimal | None
    expenses_total: Decimal
    revenues_total: Decimal
    reimbursement_rate: Decimal | None
    reimbursement_rate_currency: str | None
    calculated_reimbursement: Decimal | None
    tags: list[TagId] = Field(default_factory=list)


class TripsTotals(BaseModel):
    total_trips: int
    total_distance: Decimal | None
    total_refuels_cost: Decimal
    total_refuels_volume: Decimal | None
    total_expenses_cost: Decimal
    total_revenues_cost: Decimal
    total_calculated_reimbursement: Decimal


class TravelReport(BaseModel):
    date_from: date
    date_to: date
    period_days: int
    car_ids: list[CarId]
    vehicles_count: int

    total_distance_in_period: Decimal | None
    filtered_trips_distance: Decimal | None
    business_use_percentage: Decimal | None

    trips_by_type: list[TravelTypeBreakdown]
    standard_mileage_deduction: StandardMileageDeduction | None
    actual_expense_method: ActualExpenseMethod
    linked_totals: LinkedTotals
    trips: list[TripDetail]
    trips_totals: TripsTotals

    home_currency: str
    distance_unit: DistanceUnit
    volume_unit: VolumeUnit
