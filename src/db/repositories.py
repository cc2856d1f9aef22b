from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy import Select, select
from sqlalchemy.orm import Session, sessionmaker

from db import models
from domain.ledger import (
    AccountId,
    AccountPreferences,
    CarId,
    ConsumptionUnit,
    DistanceUnit,
    LedgerRecord,
    OdometerRange,
    RecordId,
    RecordKind,
    TagId,
    TravelId,
    TravelRecord,
    TravelType,
    VolumeUnit,
)


class AccountNotFoundError(Exception):
    def __init__(self, message: str, *, account_id: str) -> None:
        super().__init__(message)
        self.account_id = account_id


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SqlLedgerSource:
    """Read-only ledger collaborators backed by the SQLAlchemy models.

    One instance is scoped to one account: an empty ``car_ids`` selects every
    car of that account. Queries are blocking and run in a worker thread.
    """

    def __init__(self, session_factory: sessionmaker[Session], *, account_id: AccountId) -> None:
        self._session_factory = session_factory
        self._account_id = account_id

    async def fetch_ledger_window(
        self, car_ids: Sequence[CarId], date_from: date, date_to: date
    ) -> list[LedgerRecord]:
        return await asyncio.to_thread(self.ledger_window, car_ids, date_from, date_to)

    async def fetch_travels(self, car_ids: Sequence[CarId], date_from: date, date_to: date) -> list[TravelRecord]:
        return await asyncio.to_thread(self.travels, car_ids, date_from, date_to)

    async def fetch_odometer_ranges(
        self, car_ids: Sequence[CarId], date_from: date | None = None, date_to: date | None = None
    ) -> list[OdometerRange]:
        return await asyncio.to_thread(self.odometer_ranges, car_ids, date_from, date_to)

    async def fetch_account_preferences(self, account_id: AccountId) -> AccountPreferences:
        return await asyncio.to_thread(self.account_preferences, account_id)

    def ledger_window(self, car_ids: Sequence[CarId], date_from: date, date_to: date) -> list[LedgerRecord]:
        stmt = self._records_stmt(car_ids, date_from, date_to).order_by(
            models.LedgerRecordOrm.timestamp.asc(), models.LedgerRecordOrm.id.asc()
        )
        with self._session_factory() as session:
            return [self._record_to_domain(row) for row in session.scalars(stmt)]

    def travels(self, car_ids: Sequence[CarId], date_from: date, date_to: date) -> list[TravelRecord]:
        stmt = (
            select(models.TravelOrm)
            .join(models.CarOrm, models.CarOrm.id == models.TravelOrm.car_id)
            .where(models.CarOrm.account_id == self._account_id)
            .where(
                models.TravelOrm.first_timestamp.is_(None)
                | (
                    (models.TravelOrm.first_timestamp >= _day_start(date_from))
                    & (models.TravelOrm.first_timestamp < _day_start(date_to + timedelta(days=1)))
                )
            )
            .order_by(models.TravelOrm.first_timestamp.asc(), models.TravelOrm.id.asc())
        )
        if car_ids:
            stmt = stmt.where(models.TravelOrm.car_id.in_(list(car_ids)))
        with self._session_factory() as session:
            return [self._travel_to_domain(row) for row in session.scalars(stmt)]

    def odometer_ranges(
        self, car_ids: Sequence[CarId], date_from: date | None = None, date_to: date | None = None
    ) -> list[OdometerRange]:
        stmt = (
            select(models.LedgerRecordOrm.car_id, models.LedgerRecordOrm.odometer_km)
            .join(models.CarOrm, models.CarOrm.id == models.LedgerRecordOrm.car_id)
            .where(models.CarOrm.account_id == self._account_id)
            .where(models.LedgerRecordOrm.odometer_km.is_not(None))
        )
        if car_ids:
            stmt = stmt.where(models.LedgerRecordOrm.car_id.in_(list(car_ids)))
        if date_from is not None:
            stmt = stmt.where(models.LedgerRecordOrm.timestamp >= _day_start(date_from))
        if date_to is not None:
            stmt = stmt.where(models.LedgerRecordOrm.timestamp < _day_start(date_to + timedelta(days=1)))

        # Odometers are stored as strings, so min/max are computed here.
        readings: dict[str, list[Decimal]] = defaultdict(list)
        with self._session_factory() as session:
            for car_id, odometer_km in session.execute(stmt):
                readings[car_id].append(odometer_km)

        return [
            OdometerRange(
                car_id=CarId(car_id),
                min_odometer_km=min(values),
                max_odometer_km=max(values),
                records_count=len(values),
            )
            for car_id, values in sorted(readings.items())
        ]

    def account_preferences(self, account_id: AccountId) -> AccountPreferences:
        with self._session_factory() as session:
            account = session.get(models.AccountOrm, account_id)
            if account is None:
                msg = f"Account {account_id} not found"
                raise AccountNotFoundError(msg, account_id=account_id)
            return AccountPreferences(
                home_currency=account.home_currency,
                distance_unit=DistanceUnit(account.distance_unit),
                volume_unit=VolumeUnit(account.volume_unit),
                consumption_unit=ConsumptionUnit(account.consumption_unit),
                mileage_rate_country=account.mileage_rate_country,
            )

    def _records_stmt(self, car_ids: Sequence[CarId], date_from: date, date_to: date) -> Select:
        stmt = (
            select(models.LedgerRecordOrm)
            .join(models.CarOrm, models.CarOrm.id == models.LedgerRecordOrm.car_id)
            .where(models.CarOrm.account_id == self._account_id)
            .where(models.LedgerRecordOrm.timestamp >= _day_start(date_from))
            .where(models.LedgerRecordOrm.timestamp < _day_start(date_to + timedelta(days=1)))
        )
        if car_ids:
            stmt = stmt.where(models.LedgerRecordOrm.car_id.in_(list(car_ids)))
        return stmt

    @staticmethod
    def _record_to_domain(row: models.LedgerRecordOrm) -> LedgerRecord:
        return LedgerRecord(
            id=RecordId(row.id),
            car_id=CarId(row.car_id),
            kind=RecordKind(row.kind),
            timestamp=_as_utc(row.timestamp),
            odometer_km=row.odometer_km,
            amount_hc=row.amount_hc,
            amount_foreign=row.amount_foreign,
            currency_code=row.currency_code,
            volume_liters=row.volume_liters,
            fuel_type=row.fuel_type,
            is_full_tank=row.is_full_tank,
            category_id=row.category_id,
            kind_id=row.kind_id,
            is_maintenance=row.is_maintenance,
            travel_id=TravelId(row.travel_id) if row.travel_id is not None else None,
            tag_ids=frozenset(TagId(tag.tag_id) for tag in row.tags),
        )

    @staticmethod
    def _travel_to_domain(row: models.TravelOrm) -> TravelRecord:
        return TravelRecord(
            id=TravelId(row.id),
            car_id=CarId(row.car_id),
            travel_type=TravelType(row.travel_type),
            first_odometer_km=row.first_odometer_km,
            last_odometer_km=row.last_odometer_km,
            first_timestamp=_as_utc(row.first_timestamp),
            last_timestamp=_as_utc(row.last_timestamp),
            distance_km=row.distance_km,
            is_round_trip=row.is_round_trip,
            reimbursement_rate=row.reimbursement_rate,
            reimbursement_currency=row.reimbursement_currency,
            purpose=row.purpose,
            destination=row.destination,
            tag_ids=frozenset(TagId(tag.tag_id) for tag in row.tags),
        )


__all__ = ["AccountNotFoundError", "SqlLedgerSource"]
