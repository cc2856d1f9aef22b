from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, Field, model_validator

CarId = NewType("CarId", str)
RecordId = NewType("RecordId", str)
TravelId = NewType("TravelId", str)
TagId = NewType("TagId", str)
AccountId = NewType("AccountId", str)


class RecordKind(StrEnum):
    REFUEL = "refuel"
    EXPENSE = "expense"
    REVENUE = "revenue"
    TRAVEL_WAYPOINT = "travel-waypoint"
    CHECKPOINT = "checkpoint"


class TravelType(StrEnum):
    BUSINESS = "business"
    PERSONAL = "personal"
    MEDICAL = "medical"
    CHARITY = "charity"
    COMMUTE = "commute"


class Confidence(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DistanceUnit(StrEnum):
    KM = "km"
    MI = "mi"


class VolumeUnit(StrEnum):
    LITERS = "l"
    US_GALLONS = "gal-us"
    UK_GALLONS = "gal-uk"


class ConsumptionUnit(StrEnum):
    L_PER_100KM = "l100km"
    KM_PER_L = "km-l"
    MPG_US = "mpg-us"
    MPG_UK = "mpg-uk"
    MI_PER_L = "mi-l"
    KWH_PER_100KM = "kWh-per-100km"
    MI_PER_KWH = "mi-per-kWh"
    KG_PER_100KM = "kg-per-100km"


class LedgerRecord(BaseModel):
    """Read-only projection of a single ledger row.

    Distances and volumes are metric (km, liters). ``amount_hc`` is the amount
    already converted to the account's home currency by the ledger store; it is
    ``None`` when the record was paid in a foreign currency that was never
    converted. A record is counted in exactly one currency bucket, see
    ``domain.currency.entries_from_records``.
    """

    id: RecordId
    car_id: CarId
    kind: RecordKind
    timestamp: datetime
    odometer_km: Decimal | None = None
    amount_hc: Decimal | None = None
    amount_foreign: Decimal | None = None
    currency_code: str | None = None
    volume_liters: Decimal | None = None
    fuel_type: str | None = None
    is_full_tank: bool = False
    category_id: int | None = None
    kind_id: int | None = None
    is_maintenance: bool = False
    travel_id: TravelId | None = None
    tag_ids: frozenset[TagId] = frozenset()

    @model_validator(mode="after")
    def _validate_fields(self) -> LedgerRecord:
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)
        if self.odometer_km is not None and self.odometer_km < 0:
            raise ValueError("odometer_km must be >= 0")
        if self.volume_liters is not None and self.volume_liters < 0:
            raise ValueError("volume_liters must be >= 0")
        if (self.amount_foreign is None) != (self.currency_code is None):
            raise ValueError("amount_foreign and currency_code must be set together")
        if self.currency_code is not None:
            self.currency_code = self.currency_code.strip().upper()
            if not self.currency_code:
                raise ValueError("currency_code must not be blank")
        return self

    @property
    def day(self) -> date:
        return self.timestamp.astimezone(timezone.utc).date()


class TravelRecord(BaseModel):
    id: TravelId
    car_id: CarId
    travel_type: TravelType
    first_odometer_km: Decimal | None = None
    last_odometer_km: Decimal | None = None
    first_timestamp: datetime | None = None
    last_timestamp: datetime | None = None
    distance_km: Decimal | None = None
    is_round_trip: bool = False
    reimbursement_rate: Decimal | None = None
    reimbursement_currency: str | None = None
    purpose: str = ""
    destination: str = ""
    tag_ids: frozenset[TagId] = frozenset()

    @model_validator(mode="after")
    def _validate_fields(self) -> TravelRecord:
        if self.distance_km is not None and self.distance_km < 0:
            raise ValueError("distance_km must be >= 0")
        if (
            self.first_odometer_km is not None
            and self.last_odometer_km is not None
            and self.last_odometer_km < self.first_odometer_km
        ):
            raise ValueError("last_odometer_km must be >= first_odometer_km")
        for field_name in ("first_timestamp", "last_timestamp"):
            value = getattr(self, field_name)
            if value is not None and value.tzinfo is None:
                setattr(self, field_name, value.replace(tzinfo=timezone.utc))
        return self

    @property
    def effective_distance_km(self) -> Decimal | None:
        """Entered distance, falling back to the odometer delta."""
        if self.distance_km is not None:
            return self.distance_km
        if self.first_odometer_km is not None and self.last_odometer_km is not None:
            return self.last_odometer_km - self.first_odometer_km
        return None


class OdometerRange(BaseModel):
    car_id: CarId
    min_odometer_km: Decimal | None = None
    max_odometer_km: Decimal | None = None
    records_count: int = 0

    @model_validator(mode="after")
    def _validate_range(self) -> OdometerRange:
        if (
            self.min_odometer_km is not None
            and self.max_odometer_km is not None
            and self.max_odometer_km < self.min_odometer_km
        ):
            raise ValueError("max_odometer_km must be >= min_odometer_km")
        return self

    @property
    def distance_km(self) -> Decimal | None:
        if self.min_odometer_km is None or self.max_odometer_km is None:
            return None
        return self.max_odometer_km - self.min_odometer_km


class AccountPreferences(BaseModel):
    home_currency: str
    distance_unit: DistanceUnit = DistanceUnit.KM
    volume_unit: VolumeUnit = VolumeUnit.LITERS
    consumption_unit: ConsumptionUnit = ConsumptionUnit.L_PER_100KM
    mileage_rate_country: str | None = None

    @model_validator(mode="after")
    def _normalize(self) -> AccountPreferences:
        if not self.home_currency:
            raise ValueError("home_currency must be non-empty")
        self.home_currency = self.home_currency.upper()
        if self.mileage_rate_country is not None:
            self.mileage_rate_country = self.mileage_rate_country.upper()
        return self


class ReportPeriod(BaseModel):
    """Inclusive range of UTC calendar dates."""

    date_from: date
    date_to: date

    @model_validator(mode="after")
    def _validate_order(self) -> ReportPeriod:
        if self.date_from > self.date_to:
            raise ValueError("date_from must be before or equal to date_to")
        return self

    @property
    def days(self) -> int:
        return (self.date_to - self.date_from).days + 1

    def contains(self, timestamp: datetime) -> bool:
        day = timestamp.astimezone(timezone.utc).date() if timestamp.tzinfo else timestamp.date()
        return self.date_from <= day <= self.date_to


class FuelTypeConsumption(BaseModel):
    car_id: CarId
    fuel_type: str
    consumption_value: Decimal
    consumption_unit: ConsumptionUnit
    fuel_used: Decimal
    fuel_unit: str
    distance: Decimal
    confidence: Confidence
    confidence_reasons: list[str] = Field(default_factory=list)
    data_points_count: int
    intervals_count: int = 0
