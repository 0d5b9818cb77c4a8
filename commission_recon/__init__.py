"""Carrier commission reconciliation: matching, role splits, disputes and seller statements."""

from .config import DisputeThresholds
from .disputes import DisputeDetector
from .engine import MonthResult, ReconciliationEngine, bucket_by_processing_month, run_months
from .master_index import MasterIndex, StateLookup, build_index, normalize_key, records_from_frame
from .matcher import MatchResult, match
from .models import (
    CarrierStatementRow,
    Dispute,
    DisputeType,
    EmptyMasterIndexError,
    MasterRecord,
    MatchedRow,
    ReconciliationError,
    RoutingFlag,
    SellerStatement,
    SellerStatementItem,
)
from .seller_statements import aggregate
from .splitter import RolePercentageTable, split, split_cents

__version__ = "1.0.0"
