"""
Carrier Commission Reconciliation Engine

Purpose: Reconcile one processing month of carrier commission statements
against the comp key: match lines, split commissions across roles, flag
disputes and rebuild the seller statements.

Usage:
    engine = ReconciliationEngine(master_records)
    engine.ingest(zayo_rows)
    engine.ingest(lumen_rows)
    result = engine.close_month("2025-12", previous=november_result)
    engine.print_summary(result)
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .config import DisputeThresholds
from .disputes import DisputeDetector
from .master_index import MasterIndex, StateLookup, build_index, records_from_frame
from .matcher import match
from .models import (
    CarrierStatementRow,
    Dispute,
    MasterRecord,
    MatchedRow,
    ReconciliationError,
    SellerStatement,
)
from .months import (
    format_processing_month,
    month_key,
    parse_month_key,
    previous_month_key,
    processing_month,
)
from .reporting import build_summary, deposit_totals
from .seller_statements import aggregate as aggregate_statements
from .splitter import RolePercentageTable

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ReconciliationEngine")


# =============================================================================
# 1. MONTH RESULT
# =============================================================================

@dataclass(frozen=True)
class MonthResult:
    """Everything one processing month produced. Read-only input to the next month."""
    month_key: str
    carrier_rows: Tuple[CarrierStatementRow, ...]
    matched: Tuple[MatchedRow, ...]
    unmatched: Tuple[CarrierStatementRow, ...]
    disputes: Tuple[Dispute, ...]
    seller_statements: Tuple[SellerStatement, ...]
    warnings: Tuple[str, ...]
    summary: str


# =============================================================================
# 2. THE ENGINE
# =============================================================================

class ReconciliationEngine:
    def __init__(
        self,
        master_records: Optional[Iterable[MasterRecord]] = None,
        percentages: Optional[Dict[str, float]] = None,
        thresholds: Optional[DisputeThresholds] = None,
    ):
        self.table = RolePercentageTable(percentages)
        self.thresholds = thresholds or DisputeThresholds()
        self.master_records: List[MasterRecord] = []
        self.master_warnings: List[str] = []
        self.index = MasterIndex()
        self.state_lookup = StateLookup([])
        self.carrier_rows: List[CarrierStatementRow] = []
        self.matched: List[MatchedRow] = []
        self.unmatched: List[CarrierStatementRow] = []
        self.warnings: List[str] = []
        if master_records is not None:
            self.load_master_records(master_records)

    # -----------------------------------------------------------------
    # COMP KEY
    # -----------------------------------------------------------------
    def load_master_records(self, records: Iterable[MasterRecord]) -> None:
        self.master_records = list(records)
        self.master_warnings = []
        self.index = build_index(self.master_records)
        self.state_lookup = StateLookup(self.master_records)

    def load_master_frame(self, frame: pd.DataFrame) -> None:
        """Load the comp key from a table already read into a DataFrame.

        Data-quality problems in the table are kept on `master_warnings` and
        reported with every month closed against this comp key.
        """
        warnings: List[str] = []
        records = records_from_frame(frame, self.table, warnings)
        self.load_master_records(records)
        self.master_warnings = warnings

    # -----------------------------------------------------------------
    # PHASE 1: INGEST (once per carrier statement)
    # -----------------------------------------------------------------
    def ingest(self, carrier_rows: Iterable[CarrierStatementRow]) -> List[MatchedRow]:
        """
        Match one carrier's rows against the comp key and keep them for the
        month. Raises EmptyMasterIndexError when no comp key is loaded.
        """
        rows = list(carrier_rows)
        result = match(rows, self.index, self.table, self.state_lookup)
        self.carrier_rows.extend(rows)
        self.matched.extend(result.matched)
        self.unmatched.extend(result.unmatched)
        self.warnings.extend(result.warnings)
        return result.matched

    def reset(self) -> None:
        """Drop ingested rows; the comp key stays loaded."""
        self.carrier_rows = []
        self.matched = []
        self.unmatched = []
        self.warnings = []

    # -----------------------------------------------------------------
    # PHASE 2: DISPUTES & STATEMENTS (once per month)
    # -----------------------------------------------------------------
    def detect_disputes(
        self,
        previous: Optional[Sequence[MatchedRow]] = None,
        history: Optional[Sequence[MatchedRow]] = None,
    ) -> Tuple[List[Dispute], List[str]]:
        detector = DisputeDetector(self.index, self.thresholds)
        disputes = detector.detect_all(
            carrier_rows=self.carrier_rows,
            matched_rows=self.matched,
            unmatched_rows=self.unmatched,
            previous_rows=previous,
            history=history,
        )
        return disputes, detector.warnings

    def aggregate(self) -> List[SellerStatement]:
        return aggregate_statements(self.matched)

    def close_month(
        self,
        key: str,
        previous: Optional[MonthResult] = None,
        history: Optional[Sequence[MonthResult]] = None,
    ) -> MonthResult:
        """
        Build the month's disputes, statements and summary from everything
        ingested so far. Calling it twice on the same input gives equal results.

        `previous` is the prior processing month's result (None skips the
        changed-rate check). `history` is every earlier result, oldest first,
        used to carry held months forward.
        """
        if len(self.index) == 0:
            raise ReconciliationError(f"{key}: no comp key loaded")

        history_rows: Optional[List[MatchedRow]] = None
        if history is not None:
            history_rows = [row for month in history for row in month.matched]

        disputes, dispute_warnings = self.detect_disputes(
            previous=list(previous.matched) if previous is not None else None,
            history=history_rows,
        )
        statements = self.aggregate()
        summary = build_summary(self.carrier_rows, self.matched, disputes, statements)

        logger.info(
            f"{key}: {len(self.matched)} matched, {len(self.unmatched)} unmatched, "
            f"{len(disputes)} disputes"
        )
        return MonthResult(
            month_key=key,
            carrier_rows=tuple(self.carrier_rows),
            matched=tuple(self.matched),
            unmatched=tuple(self.unmatched),
            disputes=tuple(disputes),
            seller_statements=tuple(statements),
            warnings=tuple(self.master_warnings + self.warnings + dispute_warnings),
            summary=summary,
        )

    # -----------------------------------------------------------------
    # REPORTING
    # -----------------------------------------------------------------
    def print_summary(self, result: MonthResult) -> None:
        print("\n" + "=" * 80)
        try:
            title = format_processing_month(parse_month_key(result.month_key))
        except ValueError:
            title = result.month_key
        print(f"  CARRIER COMMISSION RECONCILIATION — {title}")
        print("=" * 80)
        print(result.summary)

        deposits = deposit_totals(result.carrier_rows)
        if not deposits.empty:
            print("  Statement deposits:")
            print(deposits.to_string(index=False))

        if result.warnings:
            print(f"\n  {len(result.warnings)} warnings:")
            for w in result.warnings[:10]:
                print(f"   {w}")
            if len(result.warnings) > 10:
                print(f"   ... and {len(result.warnings) - 10} more")


# =============================================================================
# 3. MULTI-MONTH WORKFLOW
# =============================================================================

def bucket_by_processing_month(
    statements: Iterable[Tuple[str, date, Sequence[CarrierStatementRow]]],
) -> Dict[str, List[CarrierStatementRow]]:
    """
    Group (carrier, statement month, rows) into processing-month keys using
    each carrier's month offset.
    """
    buckets: Dict[str, List[CarrierStatementRow]] = {}
    for carrier, statement_month, rows in statements:
        key = month_key(processing_month(statement_month, carrier))
        buckets.setdefault(key, []).extend(rows)
    return buckets


def run_months(
    statements_by_month: Mapping[str, Sequence[CarrierStatementRow]],
    master_records: Union[Sequence[MasterRecord], Mapping[str, Sequence[MasterRecord]]],
    percentages: Optional[Dict[str, float]] = None,
    thresholds: Optional[DisputeThresholds] = None,
) -> Dict[str, MonthResult]:
    """
    Reconcile several processing months in order.

    Args:
        statements_by_month: "YYYY-MM" -> that month's carrier rows
        master_records:      one comp key for every month, or "YYYY-MM" -> comp key
        percentages:         role percentage card override
        thresholds:          dispute thresholds override

    Returns:
        "YYYY-MM" -> MonthResult for every month that completed. A month that
        fails structurally is logged and left out; later months go on without it.
    """
    results: Dict[str, MonthResult] = {}
    completed: List[MonthResult] = []

    for key in sorted(statements_by_month):
        if isinstance(master_records, Mapping):
            records = master_records.get(key, [])
        else:
            records = master_records

        engine = ReconciliationEngine(records, percentages, thresholds)
        try:
            engine.ingest(statements_by_month[key])
            result = engine.close_month(
                key,
                previous=results.get(previous_month_key(key)),
                history=completed or None,
            )
        except ReconciliationError as e:
            logger.error(f"{key} skipped: {e}")
            continue

        results[key] = result
        completed.append(result)

    logger.info(f"Reconciled {len(results)} of {len(statements_by_month)} months")
    return results
