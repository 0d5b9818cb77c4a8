"""
Commission Splitter

Splits one commission amount across the role codes listed on its comp key
entry. All arithmetic is in integer cents; OTG absorbs the micro amounts,
the HA* shares and whatever per-role rounding leaves over, so the buckets
always sum exactly to the commission.

Usage:
    table = RolePercentageTable()
    split(Decimal("100.00"), ["RD1", "RD2-05"], table)
    # {"RD1": Decimal("20.00"), "RD2": Decimal("5.00"), "OTG": Decimal("75.00")}
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Union

from .config import (
    CATCH_ALL_ROLE,
    MICRO_AMOUNT_CENTS,
    OUTPUT_ROLES,
    ROLE_PERCENTAGE_MAP,
)
from .models import cents_to_money, round_half_away, to_cents

# RD2-05 -> RD2 at 5%
OVERRIDE_PATTERN = re.compile(r"^([A-Z]+\d+)-(\d+)$")
HA_PATTERN = re.compile(r"^HA\d+$")


# =============================================================================
# 1. RESOLVED ROLES
# =============================================================================

@dataclass(frozen=True)
class BaseRole:
    code: str
    percent: Decimal

    @property
    def target(self) -> str:
        return self.code


@dataclass(frozen=True)
class OverriddenRole:
    code: str
    base: str
    percent: Decimal

    @property
    def target(self) -> str:
        return self.base


@dataclass(frozen=True)
class CatchAllRole:
    code: str
    percent: Decimal

    @property
    def target(self) -> str:
        return CATCH_ALL_ROLE


ResolvedRole = Union[BaseRole, OverriddenRole, CatchAllRole]


class RolePercentageTable:
    """Role code -> resolved role, classified once per code."""

    def __init__(self, percentages: Optional[Dict[str, float]] = None):
        source = ROLE_PERCENTAGE_MAP if percentages is None else percentages
        self.percentages: Dict[str, Decimal] = {
            str(code).strip().upper(): Decimal(str(pct)) for code, pct in source.items()
        }
        self._resolved: Dict[str, Optional[ResolvedRole]] = {}
        for code in self.percentages:
            self.resolve(code)

    def resolve(self, code) -> Optional[ResolvedRole]:
        raw = str(code or "").strip().upper()
        if not raw:
            return None
        if raw not in self._resolved:
            self._resolved[raw] = self._classify(raw)
        return self._resolved[raw]

    def knows(self, code) -> bool:
        """True for codes that carry a share (or are OTG itself)."""
        role = self.resolve(code)
        if role is None:
            return False
        return role.percent > 0 or role.code.startswith(CATCH_ALL_ROLE)

    def _classify(self, raw: str) -> ResolvedRole:
        # OTG / OTG.0-ZF never take a share; OTG is the remainder
        if raw.startswith(CATCH_ALL_ROLE):
            return CatchAllRole(raw, Decimal("0"))

        match = OVERRIDE_PATTERN.match(raw)
        if match:
            base, percent = match.group(1), Decimal(int(match.group(2)))
            if base in OUTPUT_ROLES and not HA_PATTERN.match(base):
                return OverriddenRole(raw, base, percent)
            return CatchAllRole(raw, percent)

        percent = self.percentages.get(raw, Decimal("0"))
        if raw in OUTPUT_ROLES and not HA_PATTERN.match(raw):
            return BaseRole(raw, percent)
        return CatchAllRole(raw, percent)


# =============================================================================
# 2. SPLITTING
# =============================================================================

def split_cents(amount_cents: int, role_codes: Iterable[str], table: RolePercentageTable) -> Dict[str, int]:
    """Per-role cents summing exactly to `amount_cents`. Zero buckets are dropped."""
    buckets: Dict[str, int] = {role: 0 for role in OUTPUT_ROLES}

    if abs(amount_cents) <= MICRO_AMOUNT_CENTS:
        buckets[CATCH_ALL_ROLE] = amount_cents
    else:
        for code in role_codes:
            role = table.resolve(code)
            if role is None or role.percent <= 0:
                continue
            share = round_half_away(Decimal(amount_cents) * role.percent / 100)
            buckets[role.target] += share

        remainder = amount_cents - sum(buckets.values())
        buckets[CATCH_ALL_ROLE] += remainder

    return {role: cents for role, cents in buckets.items() if cents}


def split(commission_amount, role_codes: Iterable[str], table: RolePercentageTable) -> Dict[str, Decimal]:
    """Dollar view of `split_cents` for a currency amount."""
    cents = split_cents(to_cents(commission_amount), role_codes, table)
    return {role: cents_to_money(value) for role, value in cents.items()}
