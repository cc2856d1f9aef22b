from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from .mileage import quantize_money

_HUNDRED = Decimal(100)


class ExpenseTotals(BaseModel):
    refuels_hc: Decimal = Decimal(0)
    maintenance_hc: Decimal = Decimal(0)
    other_expenses_hc: Decimal = Decimal(0)

    @property
    def total_hc(self) -> Decimal:
        return self.refuels_hc + self.maintenance_hc + self.other_expenses_hc


class ActualExpenseAllocation(BaseModel):
    business_use_percentage: Decimal | None
    deductible_refuels_hc: Decimal | None
    deductible_maintenance_hc: Decimal | None
    deductible_other_expenses_hc: Decimal | None
    total_deductible_hc: Decimal | None


def business_use_percentage(
    filtered_distance_km: Decimal | None, total_distance_km: Decimal | None
) -> Decimal | None:
    """Share of observed distance covered by the selected trips.

    ``None`` when the observed distance is unknown or zero. Capped at 100.
    """
    if total_distance_km is None or total_distance_km <= 0:
        return None
    filtered = filtered_distance_km or Decimal(0)
    return min(filtered / total_distance_km * _HUNDRED, _HUNDRED)


class ActualExpenseAllocator:
    def __init__(self, *, currency: str) -> None:
        self._currency = currency

    def allocate(
        self,
        totals: ExpenseTotals,
        filtered_distance_km: Decimal | None,
        total_distance_km: Decimal | None,
    ) -> ActualExpenseAllocation:
        percentage = business_use_percentage(filtered_distance_km, total_distance_km)
        if percentage is None:
            return ActualExpenseAllocation(
                business_use_percentage=None,
                deductible_refuels_hc=None,
                deductible_maintenance_hc=None,
                deductible_other_expenses_hc=None,
                total_deductible_hc=None,
            )

        refuels = self._prorate(totals.refuels_hc, percentage)
        maintenance = self._prorate(totals.maintenance_hc, percentage)
        other = self._prorate(totals.other_expenses_hc, percentage)
        return ActualExpenseAllocation(
            business_use_percentage=percentage,
            deductible_refuels_hc=refuels,
            deductible_maintenance_hc=maintenance,
            deductible_other_expenses_hc=other,
            total_deductible_hc=refuels + maintenance + other,
        )

    def _prorate(self, amount: Decimal, percentage: Decimal) -> Decimal:
        return quantize_money(amount * percentage / _HUNDRED, self._currency)


__all__ = ["ActualExpenseAllocation", "ActualExpenseAllocator", "ExpenseTotals", "business_use_percentage"]
