from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, NamedTuple

from pydantic import BaseModel

from .ledger import LedgerRecord


class CurrencyAmount(BaseModel):
    currency: str
    amount: Decimal
    records_count: int


class CurrencyEntry(NamedTuple):
    amount: Decimal
    currency: str
    records_count: int = 1


@dataclass
class CurrencyBuckets:
    total_home_currency: Decimal = Decimal(0)
    home_records_count: int = 0
    foreign_buckets: list[CurrencyAmount] = field(default_factory=list)

    @property
    def total_foreign_records_count(self) -> int:
        return sum(bucket.records_count for bucket in self.foreign_buckets)

    @property
    def records_count(self) -> int:
        return self.home_records_count + self.total_foreign_records_count


def bucket_amounts(entries: Iterable[CurrencyEntry], home_currency: str) -> CurrencyBuckets:
    """Split amounts into a home-currency total and per-currency foreign buckets.

    No exchange rate is ever applied. Callers that need a single converted
    total must convert before calling this.
    """
    home = home_currency.upper()
    home_total = Decimal(0)
    home_count = 0
    foreign: list[CurrencyEntry] = []

    for entry in entries:
        if entry.currency.upper() == home:
            home_total += entry.amount
            home_count += entry.records_count
        else:
            foreign.append(entry)

    return CurrencyBuckets(
        total_home_currency=home_total, home_records_count=home_count, foreign_buckets=_group_by_currency(foreign)
    )


def _group_by_currency(entries: Iterable[CurrencyEntry]) -> list[CurrencyAmount]:
    """One bucket per currency code, most records first, then by code."""
    totals: dict[str, Decimal] = defaultdict(Decimal)
    counts: dict[str, int] = defaultdict(int)
    for entry in entries:
        currency = entry.currency.upper()
        totals[currency] += entry.amount
        counts[currency] += entry.records_count

    buckets = [
        CurrencyAmount(currency=currency, amount=amount, records_count=counts[currency])
        for currency, amount in totals.items()
    ]
    buckets.sort(key=lambda bucket: (-bucket.records_count, bucket.currency))
    return buckets


def record_entry(record: LedgerRecord, home_currency: str) -> CurrencyEntry | None:
    """Map a record onto the single bucket it belongs to.

    Records paid in a foreign currency keep their unconverted amount; all
    other records contribute their home-currency amount. Records with no
    amount at all return ``None``.
    """
    home = home_currency.upper()
    if record.currency_code is not None and record.amount_foreign is not None and record.currency_code != home:
        return CurrencyEntry(amount=record.amount_foreign, currency=record.currency_code)
    if record.amount_hc is not None:
        return CurrencyEntry(amount=record.amount_hc, currency=home)
    if record.amount_foreign is not None and record.currency_code == home:
        return CurrencyEntry(amount=record.amount_foreign, currency=home)
    return None


def entries_from_records(records: Iterable[LedgerRecord], home_currency: str) -> list[CurrencyEntry]:
    entries: list[CurrencyEntry] = []
    for record in records:
        entry = record_entry(record, home_currency)
        if entry is not None:
            entries.append(entry)
    return entries


def bucket_records(records: Iterable[LedgerRecord], home_currency: str) -> CurrencyBuckets:
    return bucket_amounts(entries_from_records(records, home_currency), home_currency)


def merge_foreign_buckets(*bucket_lists: Iterable[CurrencyAmount]) -> list[CurrencyAmount]:
    """Combine foreign buckets from several sources, keeping the bucket ordering."""
    entries = [
        CurrencyEntry(amount=bucket.amount, currency=bucket.currency, records_count=bucket.records_count)
        for buckets in bucket_lists
        for bucket in buckets
    ]
    return _group_by_currency(entries)


__all__ = [
    "CurrencyAmount",
    "CurrencyBuckets",
    "CurrencyEntry",
    "bucket_amounts",
    "bucket_records",
    "entries_from_records",
    "merge_foreign_buckets",
    "record_entry",
]
