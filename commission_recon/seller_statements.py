"""
Seller Statement Aggregator

One statement per role group, one line per billing item. A matched row
lands in every group where it has a non-zero share. Starred / ENA lines are
bucketed apart from regular lines that share their billing item.
"""

import logging
from typing import Dict, List, Sequence, Tuple

from .config import ENA_PROVIDER, STAR_MARKER, STATEMENT_GROUPS
from .master_index import normalize_key
from .models import MatchedRow, SellerStatement, SellerStatementItem, cents_to_money

logger = logging.getLogger("SellerStatements")


def is_starred(row: MatchedRow) -> bool:
    return row.provider.strip().upper() == ENA_PROVIDER or STAR_MARKER in row.account_name


def _sort_key(item: SellerStatementItem) -> Tuple[str, str, str]:
    return (item.provider.lower(), item.account_name.lower(), item.billing_item.lower())


def summarize_group(rows: Sequence[MatchedRow], roles: Sequence[str]) -> List[SellerStatementItem]:
    items: Dict[str, SellerStatementItem] = {}
    otg_cents: Dict[str, int] = {}
    seller_cents: Dict[str, int] = {}

    for row in rows:
        billing_item = row.billing_item.strip()
        key = normalize_key(billing_item)
        if not key:
            continue

        shares = [row.role_cents(role) for role in roles]
        if not any(shares):
            continue

        starred = is_starred(row)
        if starred:
            key = f"{key}__star"

        item = items.get(key)
        if item is None:
            item = SellerStatementItem(
                billing_item=billing_item,
                account_name=row.account_name,
                state=row.state,
                provider=row.provider,
                vp_notes=row.vp_notes,
                starred=starred,
            )
            items[key] = item
            otg_cents[key] = 0
            seller_cents[key] = 0

        otg_cents[key] += row.commission_cents
        seller_cents[key] += sum(shares)

        # keep first non-blank values
        item.state = item.state or row.state
        item.account_name = item.account_name or row.account_name
        item.provider = item.provider or row.provider
        item.vp_notes = item.vp_notes or row.vp_notes

    for key, item in items.items():
        item.otg_comp = cents_to_money(otg_cents[key])
        item.seller_comp = cents_to_money(seller_cents[key])

    return sorted(items.values(), key=_sort_key)


def aggregate(rows: Sequence[MatchedRow]) -> List[SellerStatement]:
    """Rebuild every role-group statement from a month's matched rows."""
    statements: List[SellerStatement] = []
    for role_group, roles in STATEMENT_GROUPS:
        items = summarize_group(rows, roles)
        statements.append(SellerStatement(
            role_group=role_group,
            items=items,
            total_otg_comp=sum((item.otg_comp for item in items), cents_to_money(0)),
            total_seller_comp=sum((item.seller_comp for item in items), cents_to_money(0)),
        ))
        logger.info(f"{role_group}: {len(items)} items, seller comp ${statements[-1].total_seller_comp:,.2f}")
    return statements
