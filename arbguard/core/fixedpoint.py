"""
Fixed-point helpers.

Prices, liquidity and profit figures are integers carrying 18 fractional
digits (WAD). All engine arithmetic stays in integers; Decimal is only
used at the edges to convert human-readable values in and out.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Union

WAD = 10**18
BPS_DENOMINATOR = 10_000

Numeric = Union[int, float, str, Decimal]


def to_wad(value: Numeric) -> int:
    """
    Convert a human-unit value to an 18-decimal fixed-point integer.

    Args:
        value: Value in whole units, e.g. 3000 or "2950.5"

    Returns:
        Fixed-point integer (truncated toward zero)
    """
    if isinstance(value, float):
        # Route floats through str so 0.1 stays 0.1
        value = str(value)
    scaled = Decimal(value) * WAD
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_wad(value: int) -> Decimal:
    """Convert a fixed-point integer back to a Decimal in whole units."""
    return Decimal(value) / WAD


def format_wad(value: int, places: int = 2) -> str:
    """Format a fixed-point integer for display."""
    quant = Decimal(1).scaleb(-places)
    return f"{from_wad(value).quantize(quant, rounding=ROUND_DOWN):,}"


def bps_gap(high: int, low: int) -> int:
    """
    Price gap in basis points measured against the lower price.

    Multiplication happens before the floor division.
    """
    return (high - low) * BPS_DENOMINATOR // low
