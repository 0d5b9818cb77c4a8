"""
Master Index

Builds the billing item -> comp key lookup the matcher joins against, and
maps a comp key table (pandas DataFrame) into MasterRecords.
"""

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Iterator, List, Optional

import pandas as pd

from .config import COMP_KEY_COLUMNS, COMP_SLOTS, NA_SENTINEL
from .models import MasterRecord, to_decimal
from .splitter import RolePercentageTable

logger = logging.getLogger("MasterIndex")

NON_ALNUM = re.compile(r"[^A-Z0-9]")
STATE_PATTERN = re.compile(r"^[A-Z]{2}$")


def normalize_key(value) -> str:
    """Join key form of a billing item: uppercase, alphanumerics only."""
    if value is None:
        return ""
    return NON_ALNUM.sub("", str(value).upper())


# =============================================================================
# 1. INDEX
# =============================================================================

class MasterIndex:
    """Normalized billing item -> preferred MasterRecord.

    Every record sharing a key is kept as a candidate so the matcher can
    pick between duplicates by account name.
    """

    def __init__(self):
        self._preferred: Dict[str, MasterRecord] = {}
        self._candidates: Dict[str, List[MasterRecord]] = {}

    def add(self, record: MasterRecord) -> None:
        key = normalize_key(record.billing_item)
        if not key:
            return
        self._candidates.setdefault(key, []).append(record)
        current = self._preferred.get(key)
        # Placeholder N/A rows never displace a row with real splits
        if current is None or (not current.has_valid_splits and record.has_valid_splits):
            self._preferred[key] = record

    def candidates(self, key: str) -> List[MasterRecord]:
        return list(self._candidates.get(normalize_key(key), []))

    def get(self, key: str, default=None) -> Optional[MasterRecord]:
        return self._preferred.get(normalize_key(key), default)

    def __getitem__(self, key: str) -> MasterRecord:
        return self._preferred[normalize_key(key)]

    def __contains__(self, key) -> bool:
        return normalize_key(key) in self._preferred

    def __iter__(self) -> Iterator[str]:
        return iter(self._preferred)

    def __len__(self) -> int:
        return len(self._preferred)

    def items(self):
        return self._preferred.items()


def build_index(records: Iterable[MasterRecord]) -> MasterIndex:
    index = MasterIndex()
    skipped = 0
    for record in records:
        if not normalize_key(record.billing_item):
            skipped += 1
            continue
        index.add(record)
    if skipped:
        logger.warning(f"{skipped} comp key rows have no billing item — not indexed")
    logger.info(f"Indexed {len(index)} billing items")
    return index


# =============================================================================
# 2. STATE LOOKUP
# =============================================================================

class StateLookup:
    """Billing item -> two-letter state from the comp key.

    Built for a single processing run from that run's comp key and
    discarded with it; nothing is cached across runs.
    """

    def __init__(self, records: Iterable[MasterRecord]):
        self._states: Dict[str, str] = {}
        for record in records:
            key = normalize_key(record.billing_item)
            state = str(record.state or "").strip().upper()
            if key and STATE_PATTERN.match(state) and not self._states.get(key):
                self._states[key] = state

    def get(self, billing_item) -> str:
        return self._states.get(normalize_key(billing_item), "")

    def __len__(self) -> int:
        return len(self._states)


# =============================================================================
# 3. COMP KEY TABLE
# =============================================================================

def _header(value) -> str:
    return re.sub(r"\s+", " ", str(value)).strip().lower()


def _find_column(columns: Dict[str, str], candidates: List[str]) -> Optional[str]:
    for name in candidates:
        found = columns.get(_header(name))
        if found is not None:
            return found
    return None


def _cell(row: pd.Series, column: Optional[str]) -> str:
    if column is None:
        return ""
    value = row.get(column)
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    return str(value).strip()


def _parse_number(text: str) -> Optional[Decimal]:
    cleaned = re.sub(r"[^0-9.\-]", "", text)
    if not cleaned:
        return None
    try:
        return to_decimal(cleaned)
    except InvalidOperation:
        return None


def _is_role_code(value: str, table: RolePercentageTable) -> bool:
    upper = value.strip().upper()
    if not upper or upper == NA_SENTINEL or len(upper) > 20:
        return False
    if "NOT ON" in upper or "MISSING" in upper:
        return False
    return table.knows(upper)


def records_from_frame(
    frame: pd.DataFrame,
    table: Optional[RolePercentageTable] = None,
    warnings: Optional[List[str]] = None,
) -> List[MasterRecord]:
    """
    Map a comp key table to MasterRecords.

    Required columns: OTG Comp Billing item, COMP 1. When either is missing
    the table is unusable and no records are returned. COMP 2-4 fall back to
    their "before 07/2025" column when blank or not a role code.

    Data-quality problems (missing columns, unreadable numbers, COMP cells
    that are not role codes) are logged and appended to `warnings` when a
    list is passed in.
    """
    table = table or RolePercentageTable()
    problems: List[str] = [] if warnings is None else warnings
    already_reported = len(problems)
    columns = {_header(c): c for c in frame.columns}

    found = {field: _find_column(columns, names) for field, names in COMP_KEY_COLUMNS.items()}
    comp_cols = {
        slot: _find_column(columns, [f"COMP {slot}", f"Comp {slot}", f"COMP{slot}", f"COMP-{slot}"])
        for slot in range(1, COMP_SLOTS + 1)
    }
    before_cols = {
        slot: _find_column(columns, [f"before 07/2025 COMP {slot}"])
        for slot in range(2, COMP_SLOTS + 1)
    }

    missing = [name for name, col in (("OTG Comp Billing item", found["billing_item"]),
                                      ("COMP 1", comp_cols[1])) if col is None]
    if missing:
        message = f"Comp key missing required columns {missing} — no records loaded"
        problems.append(message)
        logger.warning(message)
        return []

    records: List[MasterRecord] = []
    for position, row in frame.iterrows():
        billing_item = _cell(row, found["billing_item"])
        if not billing_item:
            continue

        codes: List[str] = []
        # COMP 1 is taken as written, N/A included, so placeholder rows stay visible
        comp1 = _cell(row, comp_cols[1])
        if comp1:
            codes.append(comp1.upper())
        for slot in range(2, COMP_SLOTS + 1):
            value = _cell(row, comp_cols[slot])
            if not _is_role_code(value, table):
                fallback = _cell(row, before_cols[slot])
                if _is_role_code(fallback, table):
                    value = fallback
            if _is_role_code(value, table):
                codes.append(value.upper())
            elif value and value.upper() != NA_SENTINEL:
                problems.append(f"Row {position} ({billing_item}): COMP {slot} '{value}' is not a role code — ignored")

        numbers = {}
        for field in ("expected_percent", "expected_amount"):
            text = _cell(row, found[field])
            numbers[field] = _parse_number(text)
            if text and numbers[field] is None:
                problems.append(f"Row {position} ({billing_item}): unreadable {field} '{text}' — left blank")

        records.append(MasterRecord(
            billing_item=billing_item,
            account_name=_cell(row, found["account_name"]),
            state=_cell(row, found["state"]).upper(),
            provider=_cell(row, found["provider"]),
            role_codes=tuple(codes),
            expected_percent=numbers["expected_percent"],
            vp_notes=_cell(row, found["vp_notes"]),
            zmap="zmap" in _cell(row, found["zmap"]).lower(),
            billing_type=_cell(row, found["billing_type"]),
            account_number=_cell(row, found["account_number"]),
            expected_amount=numbers["expected_amount"],
        ))

    if len(problems) > already_reported:
        logger.warning(f"{len(problems) - already_reported} comp key data-quality warnings")
    logger.info(f"Loaded {len(records)} comp key rows")
    return records
