# Overview: Pure bale/ton and price conversions used by the ledger and invoices.

"""
HayLedger Unit Rules (authoritative)

Storage units:
- Transaction and ticket amounts are always stored in bales.
- Transaction prices are always stored in $/ton.
- A ton is 2000 lbs.

Weight resolution:
- A stack's weight_per_bale override wins when it is set and > 0.
- Otherwise the bale size label selects a default weight; unknown labels use 1200 lbs.

Rounding:
- tons -> bales rounds to the nearest whole bale (halves round up). This is lossy:
  tons -> bales -> tons does not always reproduce the entered tons.
"""

from __future__ import annotations

import math

LBS_PER_TON = 2000
FALLBACK_WEIGHT_LBS = 1200

BALE_SIZE_WEIGHTS = {
    "3x3": 1100,
    "3x4": 1200,
    "4x4": 1800,
    "2-Tie": 60,
    "3-Tie": 90,
}

# Labels written before the dual-unit migration
LEGACY_BALE_SIZES = {
    "3x4x8": "3x4",
    "3x3x8": "3x3",
    "Round": "4x4",
    "Small Square": "3-Tie",
}

UNIT_BALES = "bales"
UNIT_TONS = "tons"
AMOUNT_UNITS = (UNIT_BALES, UNIT_TONS)

PRICE_UNIT_BALE = "bale"
PRICE_UNIT_TON = "ton"
PRICE_UNITS = (PRICE_UNIT_BALE, PRICE_UNIT_TON)


def normalize_bale_size(bale_size: str | None) -> str | None:
    """Map a legacy bale size label to its canonical short label."""
    if bale_size is None:
        return None
    label = bale_size.strip()
    return LEGACY_BALE_SIZES.get(label, label)


def default_weight(bale_size: str | None) -> int:
    return BALE_SIZE_WEIGHTS.get(normalize_bale_size(bale_size), FALLBACK_WEIGHT_LBS)


def resolve_weight(weight_per_bale: float | None, bale_size: str | None) -> float:
    """Stack override if usable, otherwise the bale size default."""
    if weight_per_bale is not None and weight_per_bale > 0:
        return weight_per_bale
    return default_weight(bale_size)


def bales_to_tons(bales: float, lbs_per_bale: float) -> float:
    return bales * lbs_per_bale / LBS_PER_TON


def tons_to_bales(tons: float, lbs_per_bale: float) -> int:
    # floor(x + 0.5) keeps halves rounding up, unlike round()'s banker's rounding
    return int(math.floor(tons * LBS_PER_TON / lbs_per_bale + 0.5))


def to_bales(amount: float, unit: str, lbs_per_bale: float) -> float:
    """Convert an entered amount into bales."""
    if unit == UNIT_TONS:
        return tons_to_bales(amount, lbs_per_bale)
    return amount


def normalize_price(price: float, unit: str, lbs_per_bale: float) -> float:
    """Convert an entered price to $/ton, the canonical storage form."""
    if unit == PRICE_UNIT_TON:
        return price
    return price * LBS_PER_TON / lbs_per_bale


def price_per_ton_to_per_bale(price_per_ton: float, lbs_per_bale: float) -> float:
    return price_per_ton * lbs_per_bale / LBS_PER_TON


def format_dual_units(bales: float, lbs_per_bale: float) -> str:
    """e.g. '1,250 bales (750.00 tons)'"""
    tons = bales_to_tons(bales, lbs_per_bale)
    return f"{bales:,.0f} bales ({tons:,.2f} tons)"
