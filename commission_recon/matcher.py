"""
Matcher

Joins carrier statement rows to the comp key by billing item and attaches
the role splits. Rows that find no comp key entry come back unmatched for
new-account review; rows with no billing item at all come back unmatched
with a warning and are kept out of dispute detection.
"""

import logging
import re
from dataclasses import dataclass, field, fields
from typing import Iterable, List, Optional

from .config import ENA_CARRIER, ENA_PROVIDER, STAR_MARKER
from .master_index import STATE_PATTERN, MasterIndex, StateLookup, normalize_key
from .models import (
    CarrierStatementRow,
    EmptyMasterIndexError,
    MasterRecord,
    MatchedRow,
    to_cents,
)
from .months import canonical_carrier
from .splitter import RolePercentageTable, split_cents

logger = logging.getLogger("Matcher")


@dataclass
class MatchResult:
    matched: List[MatchedRow] = field(default_factory=list)
    unmatched: List[CarrierStatementRow] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _account_key(value) -> str:
    return re.sub(r"\s+", " ", str(value or "")).strip().upper()


def find_best_match(candidates: List[MasterRecord], row: CarrierStatementRow) -> Optional[MasterRecord]:
    """Pick one comp key entry among records sharing a billing item."""
    if not candidates:
        return None

    # When only some duplicates list splits, drop the placeholder rows
    if len(candidates) > 1:
        with_splits = [c for c in candidates if c.has_valid_splits]
        if with_splits and len(with_splits) < len(candidates):
            candidates = with_splits

    if len(candidates) == 1:
        return candidates[0]

    account = _account_key(row.account_name)
    if account:
        for candidate in candidates:
            if _account_key(candidate.account_name) == account:
                return candidate
        for candidate in candidates:
            master_account = _account_key(candidate.account_name)
            if master_account and (master_account in account or account in master_account):
                return candidate

    for candidate in candidates:
        if candidate.has_valid_splits:
            return candidate
    return candidates[0]


def resolve_provider(row: CarrierStatementRow, record: MasterRecord) -> str:
    """
    Comp key provider, except starred accounts on Zayo statements which are
    ENA. A row the extractor already tagged ENA keeps that tag.
    """
    if canonical_carrier(row.carrier_name) == ENA_CARRIER and row.account_name.strip().startswith(STAR_MARKER):
        return ENA_PROVIDER
    if row.provider.strip().upper() == ENA_PROVIDER:
        return ENA_PROVIDER
    return record.provider or row.provider


def build_matched_row(
    row: CarrierStatementRow,
    record: MasterRecord,
    table: RolePercentageTable,
    state_lookup: Optional[StateLookup] = None,
) -> MatchedRow:
    state = row.state.strip().upper()
    if not STATE_PATTERN.match(state):
        looked_up = state_lookup.get(row.billing_item) if state_lookup else ""
        state = looked_up or record.state or row.state

    values = {f.name: getattr(row, f.name) for f in fields(CarrierStatementRow)}
    values.update(state=state, provider=resolve_provider(row, record))
    return MatchedRow(
        **values,
        master_billing_item=record.billing_item,
        role_split_cents=split_cents(to_cents(row.commission_amount), record.role_codes, table),
        expected_percent=record.expected_percent,
        vp_notes=record.vp_notes,
    )


def match(
    rows: Iterable[CarrierStatementRow],
    index: MasterIndex,
    table: Optional[RolePercentageTable] = None,
    state_lookup: Optional[StateLookup] = None,
) -> MatchResult:
    if index is None or len(index) == 0:
        raise EmptyMasterIndexError("Comp key index is empty — no statement row can be matched")

    table = table or RolePercentageTable()
    result = MatchResult()

    for position, row in enumerate(rows):
        key = normalize_key(row.billing_item)
        if not key:
            result.unmatched.append(row)
            result.warnings.append(
                f"Row {position} ({row.carrier_name}): blank billing item for "
                f"'{row.account_name or '(no account)'}' — excluded from disputes"
            )
            continue

        record = find_best_match(index.candidates(key), row)
        if record is None:
            result.unmatched.append(row)
            continue

        result.matched.append(build_matched_row(row, record, table, state_lookup))

    logger.info(f"Matched {len(result.matched)} rows, {len(result.unmatched)} unmatched")
    if result.warnings:
        logger.warning(f"{len(result.warnings)} rows without a billing item")
    return result
