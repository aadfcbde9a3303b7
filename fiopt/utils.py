"""General utilities for FIOpt

Contents
--------
- Validation helpers
- Rate conversions (annual to monthly, compounded; percent to fraction)
- Currency formatting (Indian digit grouping)
"""

from __future__ import annotations

import math

__all__ = [
    # Validation
    "is_positive_number",
    # Rates
    "annual_to_monthly",
    "percent_to_rate",
    # Formatting
    "format_inr",
]

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def is_positive_number(value: object) -> bool:
    """True for finite real numbers strictly greater than zero (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


# ---------------------------------------------------------------------------
# Rate conversions (compounded)
# ---------------------------------------------------------------------------

def annual_to_monthly(r_annual: float) -> float:
    """Convert nominal annual rate to equivalent compounded monthly rate.

    Uses: (1 + r_a) ** (1/12) - 1. Accepts negative values above -1.
    """
    return float((1.0 + r_annual) ** (1.0 / 12.0) - 1.0)


def percent_to_rate(percent: float) -> float:
    """5 -> 0.05. Step-ups and increases travel as percentages."""
    return float(percent) / 100.0


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_inr(value: float, symbol: str = "₹") -> str:
    """
    Format an amount with Indian digit grouping (lakh/crore).

    Parameters
    ----------
    value : float
        Amount in rupees. Rounded to the nearest whole rupee.
    symbol : str, default '₹'
        Currency symbol prefix.

    Returns
    -------
    str
        Grouped amount, e.g. 1,23,45,678.

    Examples
    --------
    >>> format_inr(50_000)
    '₹50,000'
    >>> format_inr(12_345_678)
    '₹1,23,45,678'
    >>> format_inr(-1_500)
    '-₹1,500'
    """
    sign = "-" if value < 0 else ""
    digits = str(int(round(abs(value))))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"{sign}{symbol}{digits}"
