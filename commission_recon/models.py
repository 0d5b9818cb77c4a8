"""
Records exchanged between the reconciliation stages.

Money crosses every boundary as Decimal with two fractional digits. Role
splits are held in integer cents and converted only when read.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .config import NA_SENTINEL
from .months import month_token

CENT = Decimal("0.01")


# =============================================================================
# 1. MONEY
# =============================================================================

def to_decimal(value) -> Decimal:
    """Coerce a number-like value to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(str(value).strip())


def round_half_away(value: Decimal) -> int:
    """Round to a whole number, halves away from zero."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_cents(value) -> int:
    return round_half_away(to_decimal(value) * 100)


def cents_to_money(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(CENT)


# =============================================================================
# 2. ENUMS & ERRORS
# =============================================================================

class DisputeType(Enum):
    NEW_ACCOUNT = "new_account"
    ZERO = "zero"
    CHARGEBACK = "chargeback"
    CANCELED = "canceled"
    CHANGED_RATE = "changed_rate"
    MONTHS_HELD = "months_held"


class RoutingFlag(Enum):
    NORMAL = "Canceled / Missing"
    ZMAP = "ZMap"
    NON_MRC = "Non-MRC Billing"


class ReconciliationError(Exception):
    """Month-level failure surfaced to the caller."""


class EmptyMasterIndexError(ReconciliationError):
    """No comp key entries: every row would silently become a new account."""


# =============================================================================
# 3. COMP KEY
# =============================================================================

@dataclass(frozen=True)
class MasterRecord:
    billing_item: str
    account_name: str = ""
    state: str = ""
    provider: str = ""
    role_codes: Tuple[str, ...] = ()
    expected_percent: Optional[Decimal] = None
    vp_notes: str = ""
    zmap: bool = False
    billing_type: str = ""
    account_number: str = ""
    expected_amount: Optional[Decimal] = None

    def __post_init__(self):
        object.__setattr__(self, "role_codes", tuple(
            str(code).strip().upper() for code in self.role_codes if str(code).strip()
        ))
        if self.expected_percent is not None:
            object.__setattr__(self, "expected_percent", to_decimal(self.expected_percent))
        if self.expected_amount is not None:
            object.__setattr__(self, "expected_amount", to_decimal(self.expected_amount))

    @property
    def routing_flag(self) -> RoutingFlag:
        if self.zmap:
            return RoutingFlag.ZMAP
        billing_type = self.billing_type.strip().upper()
        if billing_type and billing_type != "MRC":
            return RoutingFlag.NON_MRC
        return RoutingFlag.NORMAL

    @property
    def has_valid_splits(self) -> bool:
        return any(code and code != NA_SENTINEL for code in self.role_codes)


# =============================================================================
# 4. CARRIER STATEMENT LINES
# =============================================================================

@dataclass(frozen=True)
class CarrierStatementRow:
    billing_item: str
    account_name: str
    commission_amount: Decimal
    carrier_name: str
    state: str = ""
    account_number: str = ""
    invoice_total: Decimal = Decimal("0")
    provider: str = ""
    bill_description: str = ""
    bill_period: str = ""
    paid_flag: Optional[bool] = None   # carrier "Paid" column, when the carrier reports one
    months: Tuple[str, ...] = ()       # month tokens attached to the paid flag

    def __post_init__(self):
        object.__setattr__(self, "commission_amount", to_decimal(self.commission_amount))
        object.__setattr__(self, "invoice_total", to_decimal(self.invoice_total))
        object.__setattr__(self, "months", _month_tokens(self.months))

    @property
    def commission_cents(self) -> int:
        return to_cents(self.commission_amount)


def _month_tokens(values) -> Tuple[str, ...]:
    if isinstance(values, (str, date)):
        values = [values]
    tokens: List[str] = []
    for value in values or ():
        token = month_token(value)
        if token and token not in tokens:
            tokens.append(token)
    return tuple(tokens)


@dataclass(frozen=True)
class MatchedRow(CarrierStatementRow):
    master_billing_item: str = ""
    role_split_cents: Dict[str, int] = field(default_factory=dict)
    expected_percent: Optional[Decimal] = None
    vp_notes: str = ""

    def __post_init__(self):
        super().__post_init__()
        if self.expected_percent is not None:
            object.__setattr__(self, "expected_percent", to_decimal(self.expected_percent))

    @property
    def role_splits(self) -> Dict[str, Decimal]:
        """Non-zero role shares in dollars."""
        return {
            role: cents_to_money(cents)
            for role, cents in self.role_split_cents.items()
            if cents
        }

    def role_cents(self, role: str) -> int:
        return self.role_split_cents.get(role, 0)


# =============================================================================
# 5. DISPUTES
# =============================================================================

@dataclass(frozen=True)
class Dispute:
    type: DisputeType
    billing_item: str
    account_name: str
    explanation: str
    expected_amount: Optional[Decimal] = None
    actual_amount: Optional[Decimal] = None
    difference: Optional[Decimal] = None
    route: Optional[RoutingFlag] = None
    state: str = ""
    account_number: str = ""
    provider: str = ""
    carrier_name: str = ""
    bill_description: str = ""
    bill_period: str = ""
    months: Tuple[str, ...] = ()
    line_items: Tuple[CarrierStatementRow, ...] = ()


# =============================================================================
# 6. SELLER STATEMENTS
# =============================================================================

@dataclass
class SellerStatementItem:
    billing_item: str
    account_name: str = ""
    state: str = ""
    provider: str = ""
    vp_notes: str = ""
    starred: bool = False
    otg_comp: Decimal = Decimal("0.00")     # full commission of contributing rows
    seller_comp: Decimal = Decimal("0.00")  # this group's role shares only


@dataclass
class SellerStatement:
    role_group: str
    items: List[SellerStatementItem] = field(default_factory=list)
    total_otg_comp: Decimal = Decimal("0.00")
    total_seller_comp: Decimal = Decimal("0.00")
