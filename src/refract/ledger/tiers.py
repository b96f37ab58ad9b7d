# src/refract/ledger/tiers.py
from __future__ import annotations

"""Maturity tier tables for bonds.

Both tables are ordered (threshold_days, value) pairs, highest threshold first.
Lookup returns the value of the first threshold the maturity reaches; the
trailing default applies below the lowest threshold.
"""

from decimal import Decimal
from typing import Sequence, Tuple, TypeVar

from refract.ledger.constants import REFRACTION_INDEX_SCALE

T = TypeVar("T")

# maturity days -> annual interest percent
INTEREST_RATE_TIERS: Tuple[Tuple[int, int], ...] = (
    (360, 15),
    (320, 14),
    (280, 13),
    (240, 12),
    (200, 11),
    (160, 10),
    (120, 9),
    (80, 8),
    (40, 7),
)
INTEREST_RATE_DEFAULT: int = 6

# maturity days -> refraction index
REFRACTION_INDEX_TIERS: Tuple[Tuple[int, Decimal], ...] = (
    (360, Decimal("46")),
    (180, Decimal("28")),
    (90, Decimal("19")),
    (60, Decimal("16")),
    (30, Decimal("13")),
    (20, Decimal("12")),
    (15, Decimal("11.5")),
    (10, Decimal("11")),
    (5, Decimal("10.5")),
)
REFRACTION_INDEX_DEFAULT: Decimal = Decimal("10")


def tier_lookup(tiers: Sequence[Tuple[int, T]], default: T, maturity_days: int) -> T:
    d = int(maturity_days)
    for threshold, value in tiers:
        if d >= threshold:
            return value
    return default


def get_interest_rate(maturity_days: int) -> int:
    return tier_lookup(INTEREST_RATE_TIERS, INTEREST_RATE_DEFAULT, maturity_days)


def get_refraction_index(maturity_days: int) -> Decimal:
    return tier_lookup(REFRACTION_INDEX_TIERS, REFRACTION_INDEX_DEFAULT, maturity_days)


def to_fixed_index(value: Decimal) -> int:
    """Encode a refraction index as a scaled integer for JSON state."""
    scaled = Decimal(value) * REFRACTION_INDEX_SCALE
    if scaled != scaled.to_integral_value():
        raise ValueError(f"refraction index {value} not representable at scale {REFRACTION_INDEX_SCALE}")
    return int(scaled)


def from_fixed_index(fixed: int) -> Decimal:
    return Decimal(int(fixed)) / REFRACTION_INDEX_SCALE


def refraction_index_fixed(maturity_days: int) -> int:
    return to_fixed_index(get_refraction_index(maturity_days))


__all__ = [
    "INTEREST_RATE_TIERS",
    "REFRACTION_INDEX_TIERS",
    "get_interest_rate",
    "get_refraction_index",
    "refraction_index_fixed",
    "to_fixed_index",
    "from_fixed_index",
    "tier_lookup",
]
