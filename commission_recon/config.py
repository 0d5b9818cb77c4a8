"""
Reconciliation configuration: role percentage card, statement groups,
carrier conventions and dispute thresholds.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Tuple

# =============================================================================
# 1. ROLE PERCENTAGE CARD
# =============================================================================

# Default share of each commission dollar per role code (percent)
ROLE_PERCENTAGE_MAP: Dict[str, float] = {
    "RD1": 20,
    "RD2": 10,
    "RD3": 20,
    "RD4": 10,
    "RD5": 20,
    "RM1": 20,
    "RM2": 10,
    "RM3": 20,
    "RM4": 10,
    "OVR": 10,
    # HA* shares always land in OTG
    "HA1": 20,
    "HA2": 10,
    "HA3": 20,
    "HA4": 10,
    "HA5": 100,
    "HA6": 90,
}

# Roles that appear as split columns; anything else is absorbed by OTG
OUTPUT_ROLES: Tuple[str, ...] = (
    "RD1", "RD2", "RD3", "RD4", "RD5",
    "RM1", "RM2", "RM3", "RM4",
    "OVR", "OTG",
)

CATCH_ALL_ROLE = "OTG"

# Commission of 3 cents or less goes entirely to OTG
MICRO_AMOUNT_CENTS = 3

# Placeholder role code on comp key rows with no splits listed
NA_SENTINEL = "N/A"

# =============================================================================
# 2. SELLER STATEMENT GROUPS
# =============================================================================

STATEMENT_GROUPS: List[Tuple[str, Tuple[str, ...]]] = [
    ("RD1/2", ("RD1", "RD2")),
    ("RD3/4", ("RD3", "RD4")),
    ("RM1/2", ("RM1", "RM2")),
    ("RM3/4", ("RM3", "RM4")),
    ("OVR/RD5", ("OVR", "RD5")),
    ("OTG", ("OTG",)),
]

# =============================================================================
# 3. CARRIER CONVENTIONS
# =============================================================================

# Starred ("*") Zayo accounts are routed to the ENA provider
ENA_PROVIDER = "ENA"
ENA_CARRIER = "Zayo"
STAR_MARKER = "*"

# Months to add to a statement month to get its processing month
CARRIER_OFFSETS: Dict[str, int] = {
    "GoTo": 1,
    "Lumen": 3,
    "MetTel": 2,
    "TBO": 1,
    "Zayo": 2,
    "Allstream": 2,
}

# Display order for the "Commissionable to OTG" deposit table
DEPOSIT_LABEL_ORDER: List[str] = [
    "Allstream",
    "ENA",
    "GoTo",
    "GoTo (SPIFF Upfront)",
    "GoTo Equipment",
    "Lumen",
    "MetTel",
    "TBO",
    "Zayo",
]

# =============================================================================
# 4. COMP KEY COLUMNS (header candidates, first match wins)
# =============================================================================

COMP_KEY_COLUMNS: Dict[str, List[str]] = {
    "billing_item": ["OTG Comp Billing item", "otgCompBillingItem"],
    "account_name": ["Account **CARRIER**", "Account Name", "clientName"],
    "account_number": ["Cust. ACTIVE BAN", "ACTIVE BAN", "Account Number", "Account #", "BAN"],
    "state": ["ST", "State"],
    "provider": ["Service Provider", "serviceProvider", "Provider"],
    "vp_notes": ["VP NOTES", "VP NOTE", "NOTES"],
    "expected_percent": [
        "EXPECTED/Mo. OTG Comp % - column R Comp Key",
        "EXPECTED/Mo. OTG Comp %",
        "expectedCompPercent",
    ],
    "expected_amount": ["Monthly Comp Expected to OTG", "expectedAmount", "Monthly Unit Price"],
    "billing_type": ["Billing Type", "W"],
    "zmap": ["ZMap", "H"],
}

COMP_SLOTS = 4

# =============================================================================
# 5. DISPUTE THRESHOLDS
# =============================================================================

@dataclass(frozen=True)
class DisputeThresholds:
    # abs(value) below this displays as $0.00
    zero_tolerance: Decimal = Decimal("0.005")
    # month-over-month swing (dollars) that flags a changed rate
    changed_rate_threshold: Decimal = Decimal("50.00")
