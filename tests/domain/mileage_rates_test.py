from domain.mileage_rates import CRA_TIER_BOUNDARY_KM, get_rate_table, supported_countries


def test_known_year_is_returned() -> None:
    table = get_rate_table("us", 2024)

    assert table is not None
    assert table.country == "US"
    assert table.year == 2024


def test_missing_year_falls_back_to_latest() -> None:
    table = get_rate_table("CA", 2031)

    assert table is not None
    assert table.year == 2025
    assert table.tiers_for("business")[0].up_to == CRA_TIER_BOUNDARY_KM


def test_unknown_country_has_no_table() -> None:
    assert get_rate_table("DE", 2024) is None
    assert get_rate_table(None, 2024) is None
    assert supported_countries() == ["CA", "US"]
