from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Hashable, Iterable, Sequence, TypeVar

from domain.currency import bucket_records
from domain.ledger import CarId, LedgerRecord, OdometerRange, RecordKind, ReportPeriod, TagId

from .models import CategoryBreakdown, KindBreakdown

_HUNDRED = Decimal(100)
QUANTITY_PLACES = Decimal("0.01")

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


@dataclass(frozen=True)
class LedgerWindow:
    """Ledger records of one report, already restricted to its cars and period.

    ``records`` also honours the tag filter; ``all_records`` does not and is
    used where totals must cover every record of the selected cars.
    """

    period: ReportPeriod
    car_ids: list[CarId]
    records: list[LedgerRecord] = field(default_factory=list)
    all_records: list[LedgerRecord] = field(default_factory=list)

    def of_kind(self, kind: RecordKind, *, tagged: bool = True) -> list[LedgerRecord]:
        source = self.records if tagged else self.all_records
        return [record for record in source if record.kind == kind]

    @property
    def refuels(self) -> list[LedgerRecord]:
        return self.of_kind(RecordKind.REFUEL)

    @property
    def expenses(self) -> list[LedgerRecord]:
        return self.of_kind(RecordKind.EXPENSE)

    @property
    def revenues(self) -> list[LedgerRecord]:
        return self.of_kind(RecordKind.REVENUE)

    @property
    def vehicles_count(self) -> int:
        return len({record.car_id for record in self.records})


def prepare_ledger_window(
    records: Iterable[LedgerRecord],
    *,
    period: ReportPeriod,
    car_ids: Sequence[CarId] = (),
    tag_ids: Sequence[TagId] = (),
) -> LedgerWindow:
    """Restrict fetched records to the requested cars, period and tags, oldest first.

    Collaborators may return more than was asked for; this is the only place
    where fetched records are narrowed down before aggregation.
    """
    wanted_cars = set(car_ids)
    wanted_tags = set(tag_ids)

    selected = [
        record
        for record in records
        if (not wanted_cars or record.car_id in wanted_cars) and period.contains(record.timestamp)
    ]
    selected.sort(key=lambda record: (record.timestamp, record.id))
    tagged = [record for record in selected if not wanted_tags or record.tag_ids & wanted_tags]

    resolved_cars = list(car_ids) if car_ids else sorted({record.car_id for record in selected})
    return LedgerWindow(period=period, car_ids=resolved_cars, records=tagged, all_records=selected)


def percentage(part: Decimal | None, whole: Decimal | None) -> Decimal | None:
    if part is None or whole is None or whole <= 0:
        return None
    return round_quantity(part / whole * _HUNDRED)


def share_of_total(part: Decimal, whole: Decimal) -> Decimal:
    return percentage(part, whole) or Decimal(0)


def safe_divide(numerator: Decimal | None, denominator: Decimal | int | None) -> Decimal | None:
    if numerator is None or denominator is None or denominator == 0:
        return None
    return numerator / Decimal(denominator)


def round_quantity(value: Decimal | None) -> Decimal | None:
    if value is None:
        return None
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def odometer_distance(ranges: Iterable[OdometerRange]) -> Decimal | None:
    """Sum of per-car odometer spans; ``None`` when no car has both readings."""
    total: Decimal | None = None
    for odometer_range in ranges:
        distance = odometer_range.distance_km
        if distance is None:
            continue
        total = (total or Decimal(0)) + max(distance, Decimal(0))
    return total


def ranges_from_records(records: Iterable[LedgerRecord]) -> list[OdometerRange]:
    readings: dict[CarId, list[Decimal]] = defaultdict(list)
    for record in records:
        if record.odometer_km is not None:
            readings[record.car_id].append(record.odometer_km)
    return [
        OdometerRange(
            car_id=car_id,
            min_odometer_km=min(values),
            max_odometer_km=max(values),
            records_count=len(values),
        )
        for car_id, values in sorted(readings.items())
    ]


def min_odometer(ranges: Iterable[OdometerRange]) -> Decimal | None:
    values = [item.min_odometer_km for item in ranges if item.min_odometer_km is not None]
    return min(values) if values else None


def max_odometer(ranges: Iterable[OdometerRange]) -> Decimal | None:
    values = [item.max_odometer_km for item in ranges if item.max_odometer_km is not None]
    return max(values) if values else None


def group_by(items: Iterable[T], key: Callable[[T], K]) -> dict[K, list[T]]:
    groups: dict[K, list[T]] = defaultdict(list)
    for item in items:
        groups[key(item)].append(item)
    return groups


def is_maintenance(record: LedgerRecord) -> bool:
    return record.kind == RecordKind.EXPENSE and record.is_maintenance


def is_other_expense(record: LedgerRecord) -> bool:
    return record.kind == RecordKind.EXPENSE and not record.is_maintenance


def _breakdown_sort_key(total: Decimal, identifier: int | None) -> tuple:
    return (-total, identifier is None, identifier or 0)


def breakdown_by_category(records: Sequence[LedgerRecord], home_currency: str) -> list[CategoryBreakdown]:
    overall = bucket_records(records, home_currency).total_home_currency
    rows: list[CategoryBreakdown] = []
    for category_id, group in group_by(records, lambda record: record.category_id).items():
        buckets = bucket_records(group, home_currency)
        rows.append(
            CategoryBreakdown(
                category_id=category_id,
                total_amount_hc=buckets.total_home_currency,
                records_count=buckets.home_records_count,
                percentage_of_total=share_of_total(buckets.total_home_currency, overall),
                foreign_currencies=buckets.foreign_buckets,
                total_foreign_records_count=buckets.total_foreign_records_count,
            )
        )
    rows.sort(key=lambda row: _breakdown_sort_key(row.total_amount_hc, row.category_id))
    return rows


def breakdown_by_kind(records: Sequence[LedgerRecord], home_currency: str) -> list[KindBreakdown]:
    overall = bucket_records(records, home_currency).total_home_currency
    rows: list[KindBreakdown] = []
    for (category_id, kind_id), group in group_by(records, lambda record: (record.category_id, record.kind_id)).items():
        buckets = bucket_records(group, home_currency)
        rows.append(
            KindBreakdown(
                kind_id=kind_id,
                category_id=category_id,
                total_amount_hc=buckets.total_home_currency,
                records_count=buckets.home_records_count,
                percentage_of_total=share_of_total(buckets.total_home_currency, overall),
                foreign_currencies=buckets.foreign_buckets,
                total_foreign_records_count=buckets.total_foreign_records_count,
            )
        )
    rows.sort(key=lambda row: _breakdown_sort_key(row.total_amount_hc, row.kind_id))
    return rows


def home_total(records: Iterable[LedgerRecord], home_currency: str) -> Decimal:
    return bucket_records(records, home_currency).total_home_currency


def month_of(record: LedgerRecord) -> tuple[int, int]:
    day = record.day
    return day.year, day.month


__all__ = [
    "LedgerWindow",
    "breakdown_by_category",
    "breakdown_by_kind",
    "group_by",
    "home_total",
    "is_maintenance",
    "is_other_expense",
    "max_odometer",
    "min_odometer",
    "month_of",
    "odometer_distance",
    "percentage",
    "prepare_ledger_window",
    "ranges_from_records",
    "round_quantity",
    "safe_divide",
    "share_of_total",
]
