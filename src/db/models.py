from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class AccountOrm(Base):
    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    home_currency: Mapped[str] = mapped_column(String, nullable=False)
    distance_unit: Mapped[str] = mapped_column(String, nullable=False, default="km")
    volume_unit: Mapped[str] = mapped_column(String, nullable=False, default="l")
    consumption_unit: Mapped[str] = mapped_column(String, nullable=False, default="l100km")
    mileage_rate_country: Mapped[str | None] = mapped_column(String, nullable=True)

    cars: Mapped[list["CarOrm"]] = relationship(back_populates="account", cascade="all, delete-orphan")


class CarOrm(Base):
    __tablename__ = "cars"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    account_id: Mapped[str] = mapped_column(String, ForeignKey("accounts.id"), nullable=False)
    label: Mapped[str] = mapped_column(String, nullable=False, default="")

    account: Mapped[AccountOrm] = relationship(back_populates="cars")


class TravelOrm(Base):
    __tablename__ = "travels"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    car_id: Mapped[str] = mapped_column(String, ForeignKey("cars.id"), nullable=False)
    travel_type: Mapped[str] = mapped_column(String, nullable=False)
    first_odometer_km: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    last_odometer_km: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    first_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_timestamp: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    distance_km: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    is_round_trip: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reimbursement_rate: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    reimbursement_currency: Mapped[str | None] = mapped_column(String, nullable=True)
    purpose: Mapped[str] = mapped_column(String, default="", nullable=False)
    destination: Mapped[str] = mapped_column(String, default="", nullable=False)

    tags: Mapped[list["TravelTagOrm"]] = relationship(cascade="all, delete-orphan", lazy="selectin")


class TravelTagOrm(Base):
    __tablename__ = "travel_tags"

    travel_id: Mapped[str] = mapped_column(String, ForeignKey("travels.id"), primary_key=True)
    tag_id: Mapped[str] = mapped_column(String, primary_key=True)


class LedgerRecordOrm(Base):
    __tablename__ = "ledger_records"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    car_id: Mapped[str] = mapped_column(String, ForeignKey("cars.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    odometer_km: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    amount_hc: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    amount_foreign: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    currency_code: Mapped[str | None] = mapped_column(String, nullable=True)
    volume_liters: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    fuel_type: Mapped[str | None] = mapped_column(String, nullable=True)
    is_full_tank: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    category_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    kind_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_maintenance: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    travel_id: Mapped[str | None] = mapped_column(String, ForeignKey("travels.id"), nullable=True)

    tags: Mapped[list["RecordTagOrm"]] = relationship(cascade="all, delete-orphan", lazy="selectin")


class RecordTagOrm(Base):
    __tablename__ = "record_tags"

    record_id: Mapped[str] = mapped_column(String, ForeignKey("ledger_records.id"), primary_key=True)
    tag_id: Mapped[str] = mapped_column(String, primary_key=True)
