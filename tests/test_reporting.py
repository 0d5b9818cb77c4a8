from decimal import Decimal

import pandas as pd

from commission_recon.disputes import detect_canceled
from commission_recon.reporting import (
    build_summary,
    commissionable_totals,
    deposit_totals,
    disputes_frame,
    matched_rows_frame,
    seller_statement_frame,
)
from commission_recon.seller_statements import aggregate


def test_deposit_totals_per_carrier(make_row) -> None:
    rows = [
        make_row("ABC123", "100.00"),
        make_row("NOT-INDEXED", "50.25"),
        make_row("XYZ", "10.00", carrier_name="Lumen"),
    ]
    totals = deposit_totals(rows)
    assert list(totals["carrier"]) == ["Lumen", "Zayo"]
    assert list(totals["total"]) == [Decimal("10.00"), Decimal("150.25")]


def test_deposit_totals_empty() -> None:
    assert deposit_totals([]).empty


def test_commissionable_totals_order(matched, make_row) -> None:
    rows = matched(
        make_row("ABC123", "100.00"),
        make_row("ABC123", "40.00", account_name="*Acme Corp"),
        make_row("XYZ", "10.00", carrier_name="Lumen"),
        make_row("XYZ", "7.00", carrier_name="Acme Telecom"),
        make_row("XYZ", "0.00", carrier_name="MetTel"),
    )
    totals = commissionable_totals(rows)
    assert list(totals["label"]) == ["ENA", "Lumen", "Zayo", "Acme Telecom"]
    assert list(totals["total"]) == [
        Decimal("40.00"), Decimal("10.00"), Decimal("100.00"), Decimal("7.00"),
    ]


def test_frames(index, matched, make_row) -> None:
    rows = matched(make_row("ABC123", "100.00"), make_row("XYZ", "50.00"))

    frame = matched_rows_frame(rows)
    assert len(frame) == 2
    assert frame.loc[0, "RD1"] == Decimal("20.00")
    assert pd.isna(frame.loc[0, "RM1"])

    disputes = disputes_frame(detect_canceled(rows, index))
    assert set(disputes["route"]) == {"Non-MRC Billing", "ZMap", "Canceled / Missing"}

    otg = aggregate(rows)[-1]
    assert list(seller_statement_frame(otg)["billing_item"]) == ["XYZ", "ABC123"]


def test_build_summary(index, matched, make_row) -> None:
    carrier_rows = [
        make_row("ABC123", "100.00"),
        make_row("XYZ", "200.00", carrier_name="Lumen"),
        make_row("NEW1", "1.00"),
    ]
    rows = matched(*carrier_rows)
    disputes = detect_canceled(carrier_rows, index)

    summary = build_summary(carrier_rows, rows, disputes, aggregate(rows))

    assert summary.startswith("Carrier Statement Processing Complete")
    assert "- Total rows extracted: 3" in summary
    assert "- Matched rows: 2" in summary
    assert "- Unmatched rows: 1" in summary
    assert "  - canceled: 3" in summary
    assert "- Total OTG Commission: $300.00" in summary
    assert "  - RD1/2: 1 items, $25.00" in summary
