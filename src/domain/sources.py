from __future__ import annotations

from datetime import date
from typing import Protocol, Sequence

from .ledger import AccountId, AccountPreferences, CarId, LedgerRecord, OdometerRange, TravelRecord


class LedgerSource(Protocol):
    """Read access to the ledger window. Empty ``car_ids`` means every car of the account."""

    async def fetch_ledger_window(
        self, car_ids: Sequence[CarId], date_from: date, date_to: date
    ) -> list[LedgerRecord]: ...

    async def fetch_travels(self, car_ids: Sequence[CarId], date_from: date, date_to: date) -> list[TravelRecord]: ...


class OdometerSource(Protocol):
    async def fetch_odometer_ranges(
        self, car_ids: Sequence[CarId], date_from: date | None = None, date_to: date | None = None
    ) -> list[OdometerRange]: ...


class PreferencesSource(Protocol):
    async def fetch_account_preferences(self, account_id: AccountId) -> AccountPreferences: ...
