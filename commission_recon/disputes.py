"""
Dispute Detector

Six independent classifiers over one processing month:

    NEW_ACCOUNT   statement billing item missing from the comp key
    ZERO          commission that displays as $0.00
    CHARGEBACK    any negative line; every line for that billing item is listed
    CANCELED      comp key billing item absent from every statement (ZMap /
                  Non-MRC Billing / Canceled routing)
    CHANGED_RATE  month-over-month commission swing above the threshold
    MONTHS_HELD   carrier "not paid" months accumulated until paid

CHANGED_RATE and MONTHS_HELD read earlier months' matched rows, passed in
explicitly. When those are missing the cross-month part is skipped with a
diagnostic; disputes never block matching or splitting.
"""

import logging
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DisputeThresholds
from .master_index import MasterIndex, normalize_key
from .models import (
    CENT,
    CarrierStatementRow,
    Dispute,
    DisputeType,
    MatchedRow,
    RoutingFlag,
    cents_to_money,
)

logger = logging.getLogger("DisputeDetector")

CANCELED_EXPLANATIONS: Dict[RoutingFlag, str] = {
    RoutingFlag.ZMAP: "ZMap item in Master Data not found in carrier statements",
    RoutingFlag.NON_MRC: "Non-MRC billing item in Master Data not found in carrier statements",
    RoutingFlag.NORMAL: "Item in Master Data not found in carrier statements",
}


def _group_by_key(rows: Iterable[CarrierStatementRow]) -> Dict[str, List[CarrierStatementRow]]:
    groups: Dict[str, List[CarrierStatementRow]] = {}
    for row in rows:
        key = normalize_key(row.billing_item)
        if key:
            groups.setdefault(key, []).append(row)
    return groups


def _signature(row: CarrierStatementRow) -> Tuple:
    return (
        row.state, row.account_name, row.account_number, row.billing_item,
        row.invoice_total, row.commission_amount, row.provider, row.carrier_name,
        row.bill_description, row.bill_period,
    )


def _total(rows: Iterable[CarrierStatementRow]) -> Decimal:
    return cents_to_money(sum(row.commission_cents for row in rows))


def _context(row: CarrierStatementRow) -> dict:
    return dict(
        state=row.state,
        account_number=row.account_number,
        provider=row.provider,
        carrier_name=row.carrier_name,
        bill_description=row.bill_description,
        bill_period=row.bill_period,
    )


# =============================================================================
# 1. SINGLE-MONTH CLASSIFIERS
# =============================================================================

def detect_new_accounts(rows: Iterable[CarrierStatementRow], index: MasterIndex) -> List[Dispute]:
    """Statement lines whose billing item has no comp key entry."""
    disputes: List[Dispute] = []
    seen = set()
    for row in rows:
        key = normalize_key(row.billing_item)
        if not key or key in index:
            continue
        signature = "|".join([row.account_name, row.billing_item, row.provider, row.carrier_name]).lower()
        if signature in seen:
            continue
        seen.add(signature)
        disputes.append(Dispute(
            type=DisputeType.NEW_ACCOUNT,
            billing_item=row.billing_item,
            account_name=row.account_name,
            actual_amount=cents_to_money(row.commission_cents),
            explanation=f"New account found in {row.carrier_name} statement that is not in Master Data",
            line_items=(row,),
            **_context(row),
        ))
    return disputes


def detect_zeros(rows: Iterable[MatchedRow], zero_tolerance: Decimal = DisputeThresholds.zero_tolerance) -> List[Dispute]:
    """Lines whose commission rounds to $0.00, not only exact zeros."""
    disputes: List[Dispute] = []
    for row in rows:
        if not normalize_key(row.billing_item):
            continue
        if abs(cents_to_money(row.commission_cents)) >= zero_tolerance:
            continue
        expected = None
        if row.expected_percent:
            expected = (row.invoice_total * row.expected_percent / 100).quantize(CENT)
        disputes.append(Dispute(
            type=DisputeType.ZERO,
            billing_item=row.billing_item,
            account_name=row.account_name,
            expected_amount=expected,
            actual_amount=row.commission_amount,
            explanation=f"Commission amount rounds to $0.00 (actual: ${row.commission_amount:.4f})",
            line_items=(row,),
            **_context(row),
        ))
    return disputes


def detect_chargebacks(rows: Iterable[MatchedRow]) -> List[Dispute]:
    """One dispute per billing item with a negative line, listing all its lines."""
    disputes: List[Dispute] = []
    for key, group in _group_by_key(rows).items():
        negatives = [row for row in group if row.commission_amount < 0]
        if not negatives:
            continue

        lines: List[CarrierStatementRow] = []
        seen = set()
        for row in group:
            signature = _signature(row)
            if signature not in seen:
                seen.add(signature)
                lines.append(row)

        first = negatives[0]
        net = _total(group)
        disputes.append(Dispute(
            type=DisputeType.CHARGEBACK,
            billing_item=first.billing_item,
            account_name=first.account_name,
            actual_amount=net,
            explanation=(
                f"Negative commission (chargeback) on {len(negatives)} of {len(group)} "
                f"line(s); net ${net:.2f}"
            ),
            line_items=tuple(lines),
            **_context(first),
        ))
    return disputes


def detect_canceled(rows: Iterable[CarrierStatementRow], index: MasterIndex) -> List[Dispute]:
    """Comp key billing items with no statement line at all this month."""
    found = set(_group_by_key(rows))
    disputes: List[Dispute] = []
    for key, record in index.items():
        if key in found:
            continue
        route = record.routing_flag
        disputes.append(Dispute(
            type=DisputeType.CANCELED,
            billing_item=record.billing_item,
            account_name=record.account_name,
            expected_amount=record.expected_amount if record.expected_amount is not None else Decimal("0.00"),
            route=route,
            explanation=CANCELED_EXPLANATIONS[route],
            state=record.state,
            account_number=record.account_number,
            provider=record.provider,
        ))
    return disputes


# =============================================================================
# 2. CROSS-MONTH CLASSIFIERS
# =============================================================================

def detect_changed_rates(
    rows: Sequence[MatchedRow],
    previous_rows: Optional[Sequence[MatchedRow]],
    threshold: Decimal = DisputeThresholds.changed_rate_threshold,
) -> List[Dispute]:
    """Billing items whose monthly total moved more than `threshold` dollars."""
    if not previous_rows:
        logger.warning("No previous month matches — changed rate check skipped")
        return []

    previous_totals = {key: _total(group) for key, group in _group_by_key(previous_rows).items()}

    disputes: List[Dispute] = []
    for key, group in _group_by_key(rows).items():
        # First appearance is a new account, not a rate change
        if key not in previous_totals:
            continue
        current = _total(group)
        previous = previous_totals[key]
        difference = current - previous
        if abs(difference) <= threshold:
            continue
        first = group[0]
        disputes.append(Dispute(
            type=DisputeType.CHANGED_RATE,
            billing_item=first.billing_item,
            account_name=first.account_name,
            expected_amount=previous,
            actual_amount=current,
            difference=difference,
            explanation=(
                f"Commission changed from ${previous:.2f} to ${current:.2f} "
                f"(difference: ${difference:.2f})"
            ),
            line_items=tuple(group),
            **_context(first),
        ))
    return disputes


class _HeldItem:
    def __init__(self, row: MatchedRow):
        self.row = row
        self.months: Dict[str, None] = {}
        self.lines: List[MatchedRow] = []

    def hold(self, row: MatchedRow) -> None:
        self.row = row
        self.lines.append(row)
        for token in row.months:
            self.months.setdefault(token, None)

    def release(self, row: MatchedRow) -> bool:
        """Drop paid months; True once nothing is held."""
        if not row.months:
            return True
        for token in row.months:
            self.months.pop(token, None)
        return not self.months


def detect_months_held(
    rows: Sequence[MatchedRow],
    history: Optional[Sequence[MatchedRow]] = None,
) -> List[Dispute]:
    """
    Billing items the carrier reports as not paid, with the held months
    accumulated across runs. `history` is earlier months' matched rows,
    oldest first; a paid line releases the months it lists (or the whole
    item when it lists none).
    """
    if history is None:
        logger.warning("No earlier months supplied — months held limited to the current month")
        history = []

    held: Dict[str, _HeldItem] = {}
    for row in list(history) + list(rows):
        key = normalize_key(row.billing_item)
        if not key or row.paid_flag is None:
            continue
        if row.paid_flag:
            item = held.get(key)
            if item is not None and item.release(row):
                del held[key]
            continue
        held.setdefault(key, _HeldItem(row)).hold(row)

    disputes: List[Dispute] = []
    for item in held.values():
        months = tuple(item.months)
        amount = _total(item.lines)
        disputes.append(Dispute(
            type=DisputeType.MONTHS_HELD,
            billing_item=item.row.billing_item,
            account_name=item.row.account_name,
            actual_amount=amount,
            months=months,
            explanation=(
                f"Held, not paid for {len(months)} month(s): {', '.join(months) or 'unspecified'}"
            ),
            line_items=tuple(item.lines),
            **_context(item.row),
        ))
    return disputes


# =============================================================================
# 3. DETECTOR
# =============================================================================

class DisputeDetector:
    def __init__(self, index: MasterIndex, thresholds: Optional[DisputeThresholds] = None):
        self.index = index
        self.thresholds = thresholds or DisputeThresholds()
        self.warnings: List[str] = []

    def detect_all(
        self,
        carrier_rows: Sequence[CarrierStatementRow],
        matched_rows: Sequence[MatchedRow],
        unmatched_rows: Sequence[CarrierStatementRow],
        previous_rows: Optional[Sequence[MatchedRow]] = None,
        history: Optional[Sequence[MatchedRow]] = None,
    ) -> List[Dispute]:
        """Run every classifier; one that fails is logged and skipped."""
        steps: List[Tuple[DisputeType, Callable[[], List[Dispute]]]] = [
            (DisputeType.NEW_ACCOUNT, lambda: detect_new_accounts(unmatched_rows, self.index)),
            (DisputeType.ZERO, lambda: detect_zeros(matched_rows, self.thresholds.zero_tolerance)),
            (DisputeType.CHARGEBACK, lambda: detect_chargebacks(matched_rows)),
            (DisputeType.CANCELED, lambda: detect_canceled(carrier_rows, self.index)),
            (DisputeType.CHANGED_RATE, lambda: detect_changed_rates(
                matched_rows, previous_rows, self.thresholds.changed_rate_threshold)),
            (DisputeType.MONTHS_HELD, lambda: detect_months_held(matched_rows, history)),
        ]

        disputes: List[Dispute] = []
        for dispute_type, classify in steps:
            try:
                found = classify()
            except Exception as e:
                self.warnings.append(f"{dispute_type.value} check skipped: {e}")
                logger.error(f"{dispute_type.value} check skipped: {e}")
                continue
            disputes.extend(found)
            logger.info(f"{dispute_type.value}: {len(found)} disputes")
        return disputes
