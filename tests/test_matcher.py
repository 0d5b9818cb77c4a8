from decimal import Decimal

import pytest

from commission_recon.master_index import MasterIndex, StateLookup, build_index
from commission_recon.matcher import find_best_match, match
from commission_recon.models import EmptyMasterIndexError, MasterRecord


def test_empty_index_is_fatal(make_row) -> None:
    with pytest.raises(EmptyMasterIndexError):
        match([make_row("ABC123", "10.00")], MasterIndex())


def test_matched_row_carries_splits_and_comp_key_data(index, table, make_row) -> None:
    result = match([make_row("abc-123", "100.00", invoice_total="250.00")], index, table)

    assert result.unmatched == []
    row = result.matched[0]
    assert row.master_billing_item == "ABC123"
    assert row.role_splits == {
        "RD1": Decimal("20.00"),
        "RD2": Decimal("5.00"),
        "OTG": Decimal("75.00"),
    }
    assert row.provider == "Zayo"
    assert row.state == "TX"
    assert row.expected_percent == Decimal("10")
    assert row.invoice_total == Decimal("250.00")


def test_blank_billing_item_is_unmatched_with_warning(index, table, make_row) -> None:
    result = match([make_row("  - ", "10.00"), make_row("NOPE", "5.00")], index, table)

    assert result.matched == []
    assert len(result.unmatched) == 2
    assert len(result.warnings) == 1
    assert "blank billing item" in result.warnings[0]


def test_starred_zayo_account_becomes_ena(index, table, make_row) -> None:
    rows = [
        make_row("ABC123", "10.00", account_name="*Acme Corp", carrier_name="Zayo"),
        make_row("ABC123", "10.00", account_name="*Acme Corp", carrier_name="Lumen"),
        make_row("ABC123", "10.00", account_name="Acme Corp", carrier_name="Zayo"),
        make_row("XYZ", "10.00", account_name="Xylo", carrier_name="Lumen", provider="ENA"),
    ]
    providers = [row.provider for row in match(rows, index, table).matched]
    assert providers == ["ENA", "Zayo", "Zayo", "ENA"]


def test_duplicate_billing_items_resolved_by_account_name(table, make_row) -> None:
    index = build_index([
        MasterRecord("DUP1", account_name="Alpha Inc", role_codes=("RD1",)),
        MasterRecord("DUP1", account_name="Beta Inc", role_codes=("RM1",)),
    ])
    rows = [
        make_row("DUP1", "100.00", account_name="beta  inc"),
        make_row("DUP1", "100.00", account_name="Beta"),
        make_row("DUP1", "100.00", account_name="Gamma"),
    ]
    result = match(rows, index, table)

    assert [r.account_name for r in result.matched] == ["beta  inc", "Beta", "Gamma"]
    assert [set(r.role_splits) for r in result.matched] == [
        {"RM1", "OTG"},
        {"RM1", "OTG"},
        {"RD1", "OTG"},
    ]


def test_find_best_match_skips_placeholders(make_row) -> None:
    placeholder = MasterRecord("DUP1", account_name="Acme Corp", role_codes=("N/A",))
    real = MasterRecord("DUP1", account_name="Other", role_codes=("RD1",))
    assert find_best_match([placeholder, real], make_row("DUP1", "1.00")) is real
    assert find_best_match([], make_row("DUP1", "1.00")) is None


def test_invalid_state_filled_from_lookup(master_records, index, table, make_row) -> None:
    lookup = StateLookup([MasterRecord("XYZ", state="WA")])
    rows = [
        make_row("XYZ", "1.00", state=""),
        make_row("XYZ", "1.00", state="ca"),
        make_row("ABC123", "1.00", state="Texas"),
    ]
    states = [row.state for row in match(rows, index, table, lookup).matched]
    assert states == ["WA", "CA", "TX"]


def test_matched_splits_sum_to_commission(index, table, make_row) -> None:
    rows = [make_row("ABC123", amount) for amount in ("0.01", "0.03", "-0.04", "99.99", "-50.00")]
    for row in match(rows, index, table).matched:
        assert sum(row.role_split_cents.values()) == row.commission_cents


def test_ena_override_matches_zayo_carrier_variants(index, table, make_row) -> None:
    rows = [
        make_row("ABC123", "10.00", account_name="*Acme Corp", carrier_name="Zayo Group"),
        make_row("ABC123", "10.00", account_name="*Acme Corp", carrier_name=" ZAYO "),
        make_row("ABC123", "10.00", account_name="*Acme Corp", carrier_name="Zayotel"),
    ]
    providers = [row.provider for row in match(rows, index, table).matched]
    assert providers == ["ENA", "ENA", "Zayo"]
