from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session, sessionmaker

from db import models
from db.repositories import AccountNotFoundError, SqlLedgerSource
from domain.ledger import ConsumptionUnit, DistanceUnit, RecordKind, TravelType
from tests.constants import ACCOUNT, CAR_A, CAR_B, OTHER_ACCOUNT, OTHER_ACCOUNT_CAR, TAG_UBER


def _record(record_id: str, car_id: str, timestamp: datetime, **fields) -> models.LedgerRecordOrm:
    return models.LedgerRecordOrm(id=record_id, car_id=car_id, timestamp=timestamp, **fields)


@pytest.fixture()
def seeded(test_session: Session) -> None:
    test_session.add_all(
        [
            models.AccountOrm(
                id=ACCOUNT,
                home_currency="USD",
                distance_unit="mi",
                consumption_unit="mpg-us",
                mileage_rate_country="US",
            ),
            models.AccountOrm(id=OTHER_ACCOUNT, home_currency="EUR"),
            models.CarOrm(id=CAR_A, account_id=ACCOUNT, label="Van"),
            models.CarOrm(id=CAR_B, account_id=ACCOUNT, label="Sedan"),
            models.CarOrm(id=OTHER_ACCOUNT_CAR, account_id=OTHER_ACCOUNT),
        ]
    )
    test_session.flush()
    trip = models.TravelOrm(
        id="t1",
        car_id=CAR_A,
        travel_type="business",
        distance_km=Decimal("120.5"),
        first_timestamp=datetime(2024, 3, 2, 8, tzinfo=timezone.utc),
        purpose="Delivery",
    )
    trip.tags.append(models.TravelTagOrm(tag_id=TAG_UBER))
    undated = models.TravelOrm(id="t2", car_id=CAR_B, travel_type="personal")
    test_session.add_all([trip, undated])
    test_session.flush()

    refuel = _record(
        "r1",
        CAR_A,
        datetime(2024, 3, 2, 9, tzinfo=timezone.utc),
        kind="refuel",
        odometer_km=Decimal("9500"),
        amount_hc=Decimal("61.20"),
        volume_liters=Decimal("40.5"),
        fuel_type="diesel",
        is_full_tank=True,
        travel_id="t1",
    )
    refuel.tags.append(models.RecordTagOrm(tag_id=TAG_UBER))
    test_session.add_all(
        [
            refuel,
            _record(
                "r2",
                CAR_A,
                datetime(2024, 3, 31, 23, 59, tzinfo=timezone.utc),
                kind="checkpoint",
                odometer_km=Decimal("10000"),
            ),
            _record(
                "r3",
                CAR_B,
                datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc),
                kind="expense",
                amount_foreign=Decimal("20"),
                currency_code="EUR",
                is_maintenance=True,
            ),
            _record(
                "r4",
                CAR_A,
                datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc),
                kind="checkpoint",
                odometer_km=Decimal("10100"),
            ),
            _record(
                "r5",
                OTHER_ACCOUNT_CAR,
                datetime(2024, 3, 5, tzinfo=timezone.utc),
                kind="revenue",
                amount_hc=Decimal("10"),
            ),
        ]
    )
    test_session.commit()


@pytest.fixture()
def repo(test_session_factory: sessionmaker[Session], seeded: None) -> SqlLedgerSource:
    return SqlLedgerSource(test_session_factory, account_id=ACCOUNT)


def test_ledger_window_is_scoped_to_account_and_dates(repo: SqlLedgerSource) -> None:
    records = repo.ledger_window([], date(2024, 3, 1), date(2024, 3, 31))

    assert [record.id for record in records] == ["r3", "r1", "r2"]
    refuel = records[1]
    assert refuel.kind == RecordKind.REFUEL
    assert refuel.amount_hc == Decimal("61.20")
    assert refuel.volume_liters == Decimal("40.5")
    assert refuel.travel_id == "t1"
    assert refuel.tag_ids == frozenset({TAG_UBER})
    assert refuel.timestamp == datetime(2024, 3, 2, 9, tzinfo=timezone.utc)
    assert records[0].currency_code == "EUR"


def test_ledger_window_filters_cars(repo: SqlLedgerSource) -> None:
    records = repo.ledger_window([CAR_B], date(2024, 3, 1), date(2024, 4, 30))

    assert [record.id for record in records] == ["r3"]


def test_odometer_ranges_compare_numerically(repo: SqlLedgerSource) -> None:
    [car_a] = repo.odometer_ranges([], date(2024, 3, 1), date(2024, 3, 31))

    assert car_a.car_id == CAR_A
    assert car_a.min_odometer_km == Decimal("9500")
    assert car_a.max_odometer_km == Decimal("10000")
    assert car_a.records_count == 2

    [lifetime] = repo.odometer_ranges([CAR_A])
    assert lifetime.max_odometer_km == Decimal("10100")


def test_travels_include_undated_trips(repo: SqlLedgerSource) -> None:
    travels = repo.travels([], date(2024, 3, 1), date(2024, 3, 31))

    by_id = {travel.id: travel for travel in travels}
    assert set(by_id) == {"t1", "t2"}
    assert by_id["t1"].travel_type == TravelType.BUSINESS
    assert by_id["t1"].effective_distance_km == Decimal("120.5")
    assert by_id["t1"].tag_ids == frozenset({TAG_UBER})
    assert by_id["t2"].first_timestamp is None


def test_account_preferences(repo: SqlLedgerSource) -> None:
    preferences = repo.account_preferences(ACCOUNT)

    assert preferences.home_currency == "USD"
    assert preferences.distance_unit == DistanceUnit.MI
    assert preferences.consumption_unit == ConsumptionUnit.MPG_US
    assert preferences.mileage_rate_country == "US"

    with pytest.raises(AccountNotFoundError):
        repo.account_preferences("missing")


@pytest.mark.asyncio
async def test_async_fetch_runs_queries_off_the_loop(repo: SqlLedgerSource) -> None:
    records = await repo.fetch_ledger_window([CAR_A], date(2024, 3, 1), date(2024, 3, 31))
    ranges = await repo.fetch_odometer_ranges([CAR_A], date(2024, 3, 1), date(2024, 3, 31))
    preferences = await repo.fetch_account_preferences(ACCOUNT)

    assert [record.id for record in records] == ["r1", "r2"]
    assert ranges[0].distance_km == Decimal("500")
    assert preferences.home_currency == "USD"
