"""Normalization utilities shared by the write paths.

Covers:
  - Date parsing (several US/ISO/EU variants, stored as ISO)
  - Amount conversion between dollars and integer cents
  - Name cleanup for merchants and categories
"""

import decimal
from datetime import date, datetime
from typing import Optional

from ..errors import InvalidInputError

# ─────────────────────────────────────────────────────────────────────────────
# Date parsing
# ─────────────────────────────────────────────────────────────────────────────

_DATE_FORMATS = [
    "%Y-%m-%d",             # 2026-01-15
    "%m/%d/%Y",             # 01/15/2026
    "%m-%d-%Y",             # 01-15-2026
    "%Y/%m/%d",             # 2026/01/15
    "%m/%d/%y",             # 01/15/26
    "%d-%b-%Y",             # 15-Jan-2026
    "%d %b %Y",             # 15 Jan 2026
    "%b %d, %Y",            # Jan 15, 2026
    "%B %d, %Y",            # January 15, 2026
    "%Y-%m-%dT%H:%M:%S",    # 2026-01-15T12:00:00
    "%Y-%m-%dT%H:%M:%S.%f", # 2026-01-15T12:00:00.000000
]


def parse_date(value: Optional[str]) -> str:
    """Return ISO date string YYYY-MM-DD; raises InvalidInputError if unparseable."""
    v = (value or "").strip()
    if not v:
        raise InvalidInputError("missing required field: date")
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(v, fmt).date().isoformat()
        except ValueError:
            continue
    raise InvalidInputError(f"unrecognised date: {value!r}")


def to_date(iso: str) -> date:
    """YYYY-MM-DD → date."""
    return date.fromisoformat(iso)


# ─────────────────────────────────────────────────────────────────────────────
# Amounts
# ─────────────────────────────────────────────────────────────────────────────


def to_cents(amount: float) -> int:
    """Convert float dollars to integer cents (ROUND_HALF_UP)."""
    return int(
        (decimal.Decimal(str(amount)) * 100).quantize(
            decimal.Decimal("1"), rounding=decimal.ROUND_HALF_UP
        )
    )


def from_cents(cents: int) -> float:
    return round(cents / 100, 2)


def parse_amount_cents(amount: Optional[float]) -> int:
    """Validate a transaction amount and return it as positive cents.

    Amounts are magnitudes: zero and negative values are rejected, the
    direction of money comes from the category multiplier.
    """
    if amount is None:
        raise InvalidInputError("missing required field: amount")
    cents = to_cents(amount)
    if cents == 0:
        raise InvalidInputError("amount must be non-zero")
    if cents < 0:
        raise InvalidInputError("amount must be a positive magnitude; use the category multiplier for direction")
    return cents


# ─────────────────────────────────────────────────────────────────────────────
# Names / multipliers
# ─────────────────────────────────────────────────────────────────────────────

VALID_MULTIPLIERS = (-1, 1)


def clean_name(value: Optional[str]) -> str:
    """Trim surrounding whitespace; matching after that is exact and case-sensitive."""
    return (value or "").strip()


def check_multiplier(multiplier: Optional[int]) -> int:
    if multiplier not in VALID_MULTIPLIERS:
        raise InvalidInputError(f"category multiplier must be -1 or 1, got {multiplier!r}")
    return multiplier
