"""Built-in standard mileage rate tables.

US: IRS standard mileage rates, USD per mile, flat.
CA: CRA automobile allowance rates, CAD per km, first 5,000 km at the higher
rate. CRA publishes a single rate, so medical and charity reuse it.
"""

from __future__ import annotations

from decimal import Decimal

from .ledger import DistanceUnit, TravelType
from .mileage import ELIGIBLE_TRAVEL_TYPES, MileageRateTable, RateTier

CRA_TIER_BOUNDARY_KM = Decimal(5000)


def _flat(rate: str) -> list[RateTier]:
    return [RateTier(rate=Decimal(rate))]


def _cra(first: str, rest: str) -> list[RateTier]:
    return [RateTier(up_to=CRA_TIER_BOUNDARY_KM, rate=Decimal(first)), RateTier(rate=Decimal(rest))]


def _irs_table(year: int, business: str, medical: str, charity: str) -> MileageRateTable:
    return MileageRateTable(
        country="US",
        year=year,
        currency="USD",
        distance_unit=DistanceUnit.MI,
        tiers={
            TravelType.BUSINESS: _flat(business),
            TravelType.MEDICAL: _flat(medical),
            TravelType.CHARITY: _flat(charity),
        },
    )


def _cra_table(year: int, first: str, rest: str) -> MileageRateTable:
    return MileageRateTable(
        country="CA",
        year=year,
        currency="CAD",
        distance_unit=DistanceUnit.KM,
        tiers={travel_type: _cra(first, rest) for travel_type in ELIGIBLE_TRAVEL_TYPES},
    )


MILEAGE_RATE_TABLES: dict[str, dict[int, MileageRateTable]] = {
    "US": {
        2023: _irs_table(2023, "0.655", "0.22", "0.14"),
        2024: _irs_table(2024, "0.67", "0.21", "0.14"),
        2025: _irs_table(2025, "0.70", "0.21", "0.14"),
    },
    "CA": {
        2024: _cra_table(2024, "0.70", "0.64"),
        2025: _cra_table(2025, "0.72", "0.66"),
    },
}


def supported_countries() -> list[str]:
    return sorted(MILEAGE_RATE_TABLES)


def get_rate_table(country: str | None, year: int) -> MileageRateTable | None:
    """Rate table for ``country`` and ``year``.

    Years without a published table use the most recent year available.
    Unknown countries return ``None``.
    """
    if not country:
        return None
    by_year = MILEAGE_RATE_TABLES.get(country.upper())
    if not by_year:
        return None
    if year in by_year:
        return by_year[year]
    return by_year[max(by_year)]


__all__ = ["CRA_TIER_BOUNDARY_KM", "MILEAGE_RATE_TABLES", "get_rate_table", "supported_countries"]
