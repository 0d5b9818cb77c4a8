"""
Tabular and text views of a reconciled month for reporting.

Frames carry money as Decimal. Totals are summed in integer cents.
"""

from typing import Dict, List, Sequence

import pandas as pd

from .config import DEPOSIT_LABEL_ORDER, ENA_PROVIDER, OUTPUT_ROLES
from .models import (
    CarrierStatementRow,
    Dispute,
    MatchedRow,
    SellerStatement,
    cents_to_money,
)


# =============================================================================
# 1. FRAMES
# =============================================================================

def matched_rows_frame(rows: Sequence[MatchedRow]) -> pd.DataFrame:
    records = []
    for r in rows:
        record = {
            "state": r.state,
            "account_name": r.account_name,
            "account_number": r.account_number,
            "billing_item": r.billing_item,
            "invoice_total": r.invoice_total,
            "commission_amount": r.commission_amount,
            "provider": r.provider,
            "carrier": r.carrier_name,
            "bill_description": r.bill_description,
            "bill_period": r.bill_period,
            "expected_percent": r.expected_percent,
            "vp_notes": r.vp_notes,
        }
        splits = r.role_splits
        # zero shares stay blank
        for role in OUTPUT_ROLES:
            record[role] = splits.get(role)
        records.append(record)
    return pd.DataFrame(records)


def disputes_frame(disputes: Sequence[Dispute]) -> pd.DataFrame:
    return pd.DataFrame([{
        "type": d.type.value,
        "route": d.route.value if d.route else "",
        "state": d.state,
        "account_name": d.account_name,
        "account_number": d.account_number,
        "billing_item": d.billing_item,
        "expected_amount": d.expected_amount,
        "actual_amount": d.actual_amount,
        "difference": d.difference,
        "provider": d.provider,
        "carrier": d.carrier_name,
        "months": ", ".join(d.months),
        "line_count": len(d.line_items),
        "explanation": d.explanation,
    } for d in disputes])


def seller_statement_frame(statement: SellerStatement) -> pd.DataFrame:
    return pd.DataFrame([{
        "state": item.state,
        "account_name": item.account_name,
        "billing_item": item.billing_item,
        "otg_comp": item.otg_comp,
        "seller_comp": item.seller_comp,
        "provider": item.provider,
        "vp_notes": item.vp_notes,
    } for item in statement.items])


# =============================================================================
# 2. DEPOSIT TOTALS
# =============================================================================

def deposit_totals(rows: Sequence[CarrierStatementRow]) -> pd.DataFrame:
    """Raw commission per carrier statement, matched or not."""
    if not rows:
        return pd.DataFrame(columns=["carrier", "total"])
    detail = pd.DataFrame([{
        "carrier": r.carrier_name or "(blank)",
        "cents": r.commission_cents,
    } for r in rows])
    summary = detail.groupby("carrier", sort=True).agg(
        cents=pd.NamedAgg(column="cents", aggfunc="sum"),
    ).reset_index()
    summary["total"] = summary["cents"].map(lambda c: cents_to_money(int(c)))
    return summary[["carrier", "total"]]


def commissionable_label(row: MatchedRow) -> str:
    if row.provider.strip().upper() == ENA_PROVIDER:
        return ENA_PROVIDER
    carrier = row.carrier_name.strip()
    if carrier.upper().startswith("GOTO"):
        return carrier
    return carrier or row.provider.strip() or "(blank)"


def commissionable_totals(rows: Sequence[MatchedRow]) -> pd.DataFrame:
    """
    Matched commission bucketed as ENA, GoTo sections, then per carrier, in
    the deposit sheet's usual order with unknown labels alphabetical after.
    """
    detail = pd.DataFrame([{
        "label": commissionable_label(r),
        "cents": r.commission_cents,
    } for r in rows if r.commission_cents != 0])
    if detail.empty:
        return pd.DataFrame(columns=["label", "total"])

    summary = detail.groupby("label").agg(
        cents=pd.NamedAgg(column="cents", aggfunc="sum"),
    ).reset_index()

    order = {label.upper(): i for i, label in enumerate(DEPOSIT_LABEL_ORDER)}
    summary["rank"] = summary["label"].map(lambda label: order.get(label.upper(), len(order)))
    summary = summary.sort_values(["rank", "label"]).reset_index(drop=True)
    summary["total"] = summary["cents"].map(lambda c: cents_to_money(int(c)))
    return summary[["label", "total"]]


# =============================================================================
# 3. RUN SUMMARY
# =============================================================================

def build_summary(
    carrier_rows: Sequence[CarrierStatementRow],
    matched_rows: Sequence[MatchedRow],
    disputes: Sequence[Dispute],
    statements: Sequence[SellerStatement],
) -> str:
    by_type: Dict[str, int] = {}
    for d in disputes:
        by_type[d.type.value] = by_type.get(d.type.value, 0) + 1

    total_commission = cents_to_money(sum(r.commission_cents for r in matched_rows))
    total_seller = sum((s.total_seller_comp for s in statements), cents_to_money(0))

    lines: List[str] = [
        "Carrier Statement Processing Complete",
        "",
        "Summary:",
        f"- Total rows extracted: {len(carrier_rows)}",
        f"- Matched rows: {len(matched_rows)}",
        f"- Unmatched rows: {len(carrier_rows) - len(matched_rows)}",
        f"- Total disputes: {len(disputes)}",
    ]
    lines += [f"  - {t}: {n}" for t, n in by_type.items()]
    lines += [
        "",
        "Commissions:",
        f"- Total OTG Commission: ${total_commission:,.2f}",
        f"- Total Seller Commission: ${total_seller:,.2f}",
        "",
        "Seller Statements Generated:",
    ]
    lines += [
        f"  - {s.role_group}: {len(s.items)} items, ${s.total_seller_comp:,.2f}"
        for s in statements
    ]
    return "\n".join(lines) + "\n"
