from decimal import Decimal

import pytest

from commission_recon.splitter import (
    BaseRole,
    CatchAllRole,
    OverriddenRole,
    RolePercentageTable,
    split,
    split_cents,
)


def test_override_suffix_replaces_table_percentage(table: RolePercentageTable) -> None:
    """RD2-05 splits at 5%, not RD2's default 10%; OTG takes the remainder."""
    result = split(Decimal("100.00"), ["RD1", "RD2-05"], table)
    assert result == {
        "RD1": Decimal("20.00"),
        "RD2": Decimal("5.00"),
        "OTG": Decimal("75.00"),
    }


def test_three_cents_goes_entirely_to_otg(table: RolePercentageTable) -> None:
    assert split(Decimal("0.03"), ["RD1", "RD2"], table) == {"OTG": Decimal("0.03")}
    assert split(Decimal("-0.03"), ["RD1", "RD2"], table) == {"OTG": Decimal("-0.03")}


def test_four_cents_follows_normal_split(table: RolePercentageTable) -> None:
    # RD1: 4 * 20% = 0.8 -> 1 cent; RD2: 0.4 -> 0
    assert split_cents(4, ["RD1", "RD2"], table) == {"RD1": 1, "OTG": 3}


def test_rounding_is_half_away_from_zero(table: RolePercentageTable) -> None:
    assert split_cents(25, ["RD2"], table) == {"RD2": 3, "OTG": 22}
    assert split_cents(-25, ["RD2"], table) == {"RD2": -3, "OTG": -22}


def test_negative_amount_splits_like_positive(table: RolePercentageTable) -> None:
    result = split_cents(-10001, ["RD1", "RD2", "RM1"], table)
    assert result == {"RD1": -2000, "RD2": -1000, "RM1": -2000, "OTG": -5001}


@pytest.mark.parametrize("amount", [
    "100.00", "0.01", "0.03", "0.04", "-0.04", "19.99", "-1234.57", "33.33", "0.00",
])
@pytest.mark.parametrize("codes", [
    [],
    ["RD1"],
    ["RD1", "RD2-05"],
    ["RD1", "RD2", "RD3", "RD4", "RD5", "RM1", "RM2", "RM3", "RM4", "OVR"],
    ["HA6", "RD1-15", "RM4"],
    ["N/A"],
])
def test_splits_sum_to_commission(amount: str, codes, table: RolePercentageTable) -> None:
    cents = int(Decimal(amount) * 100)
    assert sum(split_cents(cents, codes, table).values()) == cents


def test_zero_buckets_are_omitted(table: RolePercentageTable) -> None:
    result = split(Decimal("10.00"), ["RD1", "RD2", "RM3"], table)
    assert "RD3" not in result
    assert all(value != 0 for value in result.values())
    assert split(Decimal("0.00"), ["RD1"], table) == {}


def test_ha_codes_accumulate_into_otg(table: RolePercentageTable) -> None:
    assert split_cents(10000, ["HA1", "RD1"], table) == {"RD1": 2000, "OTG": 8000}
    assert split_cents(10000, ["HA5"], table) == {"OTG": 10000}


def test_otg_and_unknown_codes_take_no_share(table: RolePercentageTable) -> None:
    assert split_cents(10000, ["OTG", "OTG.0-ZF", "ZZ9"], table) == {"OTG": 10000}


def test_float_amount_converted_without_drift(table: RolePercentageTable) -> None:
    assert split(19.99, ["RD1"], table) == {"RD1": Decimal("4.00"), "OTG": Decimal("15.99")}


def test_role_resolution_variants(table: RolePercentageTable) -> None:
    assert table.resolve("rd1") == BaseRole("RD1", Decimal("20"))
    assert table.resolve("RD2-05") == OverriddenRole("RD2-05", "RD2", Decimal("5"))
    assert table.resolve("HA3") == CatchAllRole("HA3", Decimal("20"))
    assert isinstance(table.resolve("HA3-15"), CatchAllRole)
    assert table.resolve("HA3-15").percent == Decimal("15")
    assert table.resolve("") is None


def test_known_codes(table: RolePercentageTable) -> None:
    assert table.knows("RD1")
    assert table.knows("RD4-07")
    assert table.knows("OTG")
    assert not table.knows("N/A")
    assert not table.knows("Missing")


def test_custom_percentage_card() -> None:
    custom = RolePercentageTable({"RD1": 50})
    assert split_cents(10000, ["RD1", "RD2"], custom) == {"RD1": 5000, "OTG": 5000}
