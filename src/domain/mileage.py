from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Mapping

from pydantic import BaseModel, Field, model_validator

from .ledger import DistanceUnit, TravelType
from .units import convert_distance

ELIGIBLE_TRAVEL_TYPES: tuple[TravelType, ...] = (
    TravelType.BUSINESS,
    TravelType.MEDICAL,
    TravelType.CHARITY,
)

_ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "CLP", "ISK", "VND", "HUF"})


def currency_exponent(currency: str) -> Decimal:
    if currency.upper() in _ZERO_DECIMAL_CURRENCIES:
        return Decimal(1)
    return Decimal("0.01")


def quantize_money(amount: Decimal, currency: str) -> Decimal:
    return amount.quantize(currency_exponent(currency), rounding=ROUND_HALF_UP)


class TierMode(StrEnum):
    COMBINED = "combined"
    PER_CATEGORY = "per_category"


class RateTier(BaseModel):
    up_to: Decimal | None = None
    rate: Decimal

    @model_validator(mode="after")
    def _validate_tier(self) -> RateTier:
        if self.rate < 0:
            raise ValueError("rate must be >= 0")
        if self.up_to is not None and self.up_to <= 0:
            raise ValueError("up_to must be > 0")
        return self


class MileageRateTable(BaseModel):
    """Rates per travel type, flat (one open tier) or tiered by cumulative distance."""

    country: str
    year: int
    currency: str
    distance_unit: DistanceUnit
    tiers: dict[TravelType, list[RateTier]]

    @model_validator(mode="after")
    def _validate_tiers(self) -> MileageRateTable:
        self.currency = self.currency.upper()
        for travel_type, tiers in self.tiers.items():
            if travel_type not in ELIGIBLE_TRAVEL_TYPES:
                msg = f"{travel_type} is never eligible for a mileage deduction"
                raise ValueError(msg)
            if not tiers:
                msg = f"{travel_type} has no rate tiers"
                raise ValueError(msg)
            if tiers[-1].up_to is not None:
                msg = f"Last tier for {travel_type} must be open-ended"
                raise ValueError(msg)
            bounds = [tier.up_to for tier in tiers[:-1]]
            if any(bound is None for bound in bounds):
                msg = f"Only the last tier for {travel_type} may be open-ended"
                raise ValueError(msg)
            if any(later <= earlier for earlier, later in zip(bounds, bounds[1:])):  # type: ignore[operator]
                msg = f"Tier boundaries for {travel_type} must increase"
                raise ValueError(msg)
        return self

    def tiers_for(self, travel_type: TravelType) -> list[RateTier]:
        return self.tiers.get(travel_type, [])


class TierAmount(BaseModel):
    tier_index: int
    distance_in_tier: Decimal
    rate: Decimal
    amount: Decimal


class MileageByType(BaseModel):
    travel_type: TravelType
    distance: Decimal
    rate: Decimal
    rate_currency: str
    deduction: Decimal
    tier_breakdown: list[TierAmount] = Field(default_factory=list)


class MileageDeduction(BaseModel):
    eligible_distance: Decimal
    distance_unit: DistanceUnit
    by_type: list[MileageByType]
    tier_breakdown: list[TierAmount]
    total_deduction: Decimal
    currency: str
    mode: TierMode


class MileageDeductionCalculator:
    """Tiered standard-mileage deduction.

    Categories are consumed in the order business, medical, charity. In
    combined mode they share one cumulative distance counter. Every tier
    amount is rounded to the currency's minor unit and the total is the sum
    of those rounded amounts.
    """

    def __init__(self, *, mode: TierMode = TierMode.COMBINED) -> None:
        self._mode = mode

    def calculate(
        self, distances_km: Mapping[TravelType | str, Decimal | None], table: MileageRateTable
    ) -> MileageDeduction:
        eligible: dict[TravelType, Decimal] = {}
        for travel_type in ELIGIBLE_TRAVEL_TYPES:
            km = distances_km.get(travel_type)
            if km is None or km <= 0:
                continue
            eligible[travel_type] = convert_distance(km, table.distance_unit) or Decimal(0)

        cumulative = Decimal(0)
        by_type: list[MileageByType] = []
        breakdown: list[TierAmount] = []

        for travel_type, distance in eligible.items():
            tiers = table.tiers_for(travel_type)
            if not tiers:
                continue
            if self._mode == TierMode.PER_CATEGORY:
                cumulative = Decimal(0)

            tier_amounts = self._consume_tiers(tiers, cumulative, distance, table.currency)
            cumulative += distance
            deduction = sum((tier.amount for tier in tier_amounts), Decimal(0))
            by_type.append(
                MileageByType(
                    travel_type=travel_type,
                    distance=distance,
                    rate=tier_amounts[0].rate if tier_amounts else tiers[0].rate,
                    rate_currency=table.currency,
                    deduction=deduction,
                    tier_breakdown=tier_amounts,
                )
            )
            breakdown.extend(tier_amounts)

        return MileageDeduction(
            eligible_distance=sum(eligible.values(), Decimal(0)),
            distance_unit=table.distance_unit,
            by_type=by_type,
            tier_breakdown=breakdown,
            total_deduction=sum((tier.amount for tier in breakdown), Decimal(0)),
            currency=table.currency,
            mode=self._mode,
        )

    @staticmethod
    def _consume_tiers(
        tiers: list[RateTier], already_used: Decimal, distance: Decimal, currency: str
    ) -> list[TierAmount]:
        amounts: list[TierAmount] = []
        remaining = distance
        position = already_used

        for index, tier in enumerate(tiers):
            if remaining <= 0:
                break
            if tier.up_to is not None and position >= tier.up_to:
                continue
            room = remaining if tier.up_to is None else min(remaining, tier.up_to - position)
            amounts.append(
                TierAmount(
                    tier_index=index,
                    distance_in_tier=room,
                    rate=tier.rate,
                    amount=quantize_money(room * tier.rate, currency),
                )
            )
            remaining -= room
            position += room

        return amounts


__all__ = [
    "ELIGIBLE_TRAVEL_TYPES",
    "MileageByType",
    "MileageDeduction",
    "MileageDeductionCalculator",
    "MileageRateTable",
    "RateTier",
    "TierAmount",
    "TierMode",
    "currency_exponent",
    "quantize_money",
]
