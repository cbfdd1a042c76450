"""Money and search helpers shared by the data access and action layers."""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union


def to_cents(amount: Decimal) -> int:
    """Convert a dollar amount to integer cents, rounding half up."""
    return int((amount * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_currency(amount: Optional[Union[int, Decimal]]) -> str:
    """Format an amount in cents as US dollars, e.g. ``123456`` -> ``$1,234.56``.

    A missing sum (no matching rows) formats as ``$0.00``.
    """
    dollars = Decimal(amount or 0) / 100
    return f"${dollars:,.2f}"


def like_pattern(query: str) -> str:
    """Substring pattern for ``ILIKE ... ESCAPE '\\'`` with wildcards escaped."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
