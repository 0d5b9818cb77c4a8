"""
Processing-month arithmetic.

A carrier statement is reconciled in a later processing month than the
period it covers (Zayo two months later, Lumen three, and so on).
"""

import logging
import re
from datetime import date, datetime
from typing import Optional

from .config import CARRIER_OFFSETS

logger = logging.getLogger("ProcessingMonth")

MONTH_ABBR = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})(?:-\d{1,2})?$")


def shift_month(value: date, months: int) -> date:
    """First day of the month `months` away from `value`."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def canonical_carrier(name) -> str:
    """Known carrier label for a statement's carrier name ("zayo group" -> "Zayo").

    Unknown names come back with whitespace collapsed.
    """
    text = " ".join(str(name or "").split())
    lowered = text.lower()
    for label in CARRIER_OFFSETS:
        key = label.lower()
        if lowered == key or lowered.startswith(key + " "):
            return label
    return text


def processing_month(statement_month: date, carrier: str) -> date:
    offset = CARRIER_OFFSETS.get(canonical_carrier(carrier))
    if offset is None:
        logger.warning(f"No month offset for carrier '{carrier}' — using statement month")
        offset = 0
    return shift_month(statement_month, offset)


def month_key(value: date) -> str:
    return f"{value.year}-{value.month:02d}"


def parse_month_key(key: str) -> date:
    match = MONTH_KEY_PATTERN.match(str(key).strip())
    if not match:
        raise ValueError(f"Not a YYYY-MM month key: '{key}'")
    return date(int(match.group(1)), int(match.group(2)), 1)


def previous_month_key(key: str) -> str:
    return month_key(shift_month(parse_month_key(key), -1))


def format_processing_month(value: date) -> str:
    """e.g. "December 2025"."""
    return datetime(value.year, value.month, 1).strftime("%B %Y")


def month_token(value) -> Optional[str]:
    """Normalize a held-month cell to a token like "Dec'25".

    Dates and YYYY-MM(-DD) strings are converted; any other text is kept
    as written so carrier-specific labels still group together.
    """
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return f"{MONTH_ABBR[value.month - 1]}'{str(value.year)[-2:]}"
    text = str(value).strip()
    if not text:
        return None
    if MONTH_KEY_PATTERN.match(text):
        return month_token(parse_month_key(text))
    return text
