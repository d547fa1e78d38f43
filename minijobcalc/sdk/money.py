"""Money conversion helpers.

All ledger arithmetic runs on integer cents. Decimal appears only at the
boundaries (input models and presentation).
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

Amount = Union[Decimal, int, float, str]


def to_decimal(value: Amount) -> Decimal:
    """Coerce to a 2-place Decimal. Floats go through str() to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_cents(value: Amount) -> int:
    """Convert an amount to integer cents (half-up)."""
    return int(to_decimal(value) * 100)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a 2-place Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def format_eur(value: Amount) -> str:
    """Format as a German-style euro string, e.g. 1.234,56 €."""
    amount = to_decimal(value)
    text = f"{amount:,.2f}"
    return text.replace(",", "_").replace(".", ",").replace("_", ".") + " €"
