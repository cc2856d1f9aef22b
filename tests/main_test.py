import json
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from db import models
from db.db import init_db
from main import main
from tests.constants import ACCOUNT, CAR_A


@pytest.fixture()
def db_file(tmp_path: Path) -> Path:
    path = tmp_path / "fleet.sqlite"
    session_factory = init_db(path)
    with session_factory() as session:
        session.add(models.AccountOrm(id=ACCOUNT, home_currency="USD", mileage_rate_country="US"))
        session.add(models.CarOrm(id=CAR_A, account_id=ACCOUNT))
        session.flush()
        session.add_all(
            [
                models.LedgerRecordOrm(
                    id="r1",
                    car_id=CAR_A,
                    kind="refuel",
                    timestamp=datetime(2024, 3, 1, 10, tzinfo=timezone.utc),
                    odometer_km=Decimal("10000"),
                    amount_hc=Decimal("60"),
                    volume_liters=Decimal("40"),
                    fuel_type="petrol",
                    is_full_tank=True,
                ),
                models.LedgerRecordOrm(
                    id="r2",
                    car_id=CAR_A,
                    kind="refuel",
                    timestamp=datetime(2024, 3, 20, 10, tzinfo=timezone.utc),
                    odometer_km=Decimal("10500"),
                    amount_hc=Decimal("64"),
                    volume_liters=Decimal("40"),
                    fuel_type="petrol",
                    is_full_tank=True,
                ),
                models.LedgerRecordOrm(
                    id="r3",
                    car_id=CAR_A,
                    kind="revenue",
                    timestamp=datetime(2024, 3, 21, 10, tzinfo=timezone.utc),
                    amount_hc=Decimal("300"),
                ),
            ]
        )
        session.commit()
    return path


def test_expense_summary_as_json(db_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(
        ["expense-summary", "--db", str(db_file), "--account", ACCOUNT, "--as-of", "2024-03-31", "--format", "json"]
    )

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["date_from"] == "2024-03-02"
    assert report["refuels_count"] == 1
    assert Decimal(report["refuels_cost_hc"]) == Decimal("64")


@pytest.mark.parametrize(
    "args",
    [
        ["expense-summary", "--from", "2024-03-01", "--to", "2024-03-31"],
        ["yearly", "--year", "2024"],
        ["profitability", "--from", "2024-03-01", "--to", "2024-03-31"],
        ["travel", "--from", "2024-03-01", "--to", "2024-03-31", "--travel-type", "business"],
    ],
)
def test_text_reports(db_file: Path, args: list[str], capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main([*args, "--db", str(db_file), "--account", ACCOUNT])

    assert exit_code == 0
    out = capsys.readouterr().out
    assert "2024" in out


def test_invalid_request_exits_with_errors(db_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["profitability", "--db", str(db_file), "--account", ACCOUNT, "--from", "2024-03-01"])

    assert exit_code == 2
    assert "date_to" in capsys.readouterr().err


def test_unknown_account_is_reported_as_unavailable(db_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = main(["yearly", "--db", str(db_file), "--account", "nobody", "--year", "2024"])

    assert exit_code == 1
    assert "account preferences" in capsys.readouterr().err
