from decimal import Decimal

from domain.actual_expense import ActualExpenseAllocator, ExpenseTotals, business_use_percentage


def test_business_use_percentage() -> None:
    assert business_use_percentage(Decimal(300), Decimal(1000)) == Decimal(30)
    assert business_use_percentage(Decimal(1500), Decimal(1000)) == Decimal(100)
    assert business_use_percentage(None, Decimal(1000)) == Decimal(0)


def test_business_use_is_unknown_without_observed_distance() -> None:
    assert business_use_percentage(Decimal(300), Decimal(0)) is None
    assert business_use_percentage(Decimal(300), None) is None


def test_allocation_prorates_each_category() -> None:
    totals = ExpenseTotals(refuels_hc=Decimal(100), maintenance_hc=Decimal(50), other_expenses_hc=Decimal("10.01"))

    allocation = ActualExpenseAllocator(currency="USD").allocate(totals, Decimal(300), Decimal(1000))

    assert allocation.business_use_percentage == Decimal(30)
    assert allocation.deductible_refuels_hc == Decimal("30.00")
    assert allocation.deductible_maintenance_hc == Decimal("15.00")
    assert allocation.deductible_other_expenses_hc == Decimal("3.00")
    assert allocation.total_deductible_hc == Decimal("48.00")


def test_allocation_without_observed_distance_is_empty() -> None:
    totals = ExpenseTotals(refuels_hc=Decimal(100))

    allocation = ActualExpenseAllocator(currency="USD").allocate(totals, Decimal(300), Decimal(0))

    assert allocation.business_use_percentage is None
    assert allocation.total_deductible_hc is None
