"""
Global constants for FIOpt.

Purpose
-------
Centralizes the market assumptions, behavioral buffers, search bounds and
scenario grids used throughout the FIOpt codebase. Every projection,
sustainability check and optimization run reads its defaults from here
(via ``fiopt.config`` when the caller wants to override them).

Usage
-----
>>> from fiopt.constants import INFLATION_RATE, FI_AGE_CAP
>>> INFLATION_RATE
0.07

Categories
----------
- Accumulation: contribution-phase return regimes
- Withdrawal: retirement-phase returns, step-up, buffers, tax
- Existing assets: fixed-income and growth lump sums
- Longevity: health status to end-of-life mapping
- Optimization: target age, scenario grids, cache, timeouts
- Input limits: bounds enforced at the file/CLI boundary
"""

from typing import Dict, Tuple

__all__ = [
    # Accumulation
    "MONTHS_PER_YEAR",
    "SHORT_TERM_RETURN_RATE",
    "LONG_TERM_RETURN_RATE",
    "SHORT_TERM_THRESHOLD_YEARS",
    "INFLATION_RATE",
    # Withdrawal
    "WITHDRAWAL_RETURN_RATE",
    "WITHDRAWAL_STEP_UP_RATE",
    "LIFESTYLE_BUFFER",
    "SUSTAINABILITY_BUFFER",
    "LTCG_TAX_RATE",
    # Existing assets
    "FIXED_INCOME_GROWTH_RATE",
    "GROWTH_ASSET_GROWTH_RATE",
    # Longevity
    "MAX_AGE_BY_HEALTH",
    "DEFAULT_MAX_AGE",
    "FI_AGE_CAP",
    "UNREACHABLE_FI_AGE",
    # Optimization
    "TARGET_FI_AGE",
    "STEP_UP_TEST_VALUES",
    "INVESTMENT_INCREASE_TEST_VALUES",
    "COMBINED_SCENARIOS",
    "DEFAULT_CACHE_CAPACITY",
    "DEFAULT_CACHE_EVICTION_FRACTION",
    "MAX_SEARCH_ITERATIONS",
    "DEFAULT_WORKER_TIMEOUT",
    "DEFAULT_ADVISORY_TIMEOUT",
    # Input limits
    "MAX_AGE_INPUT",
    "MAX_MONTHLY_EXPENSE",
    "MAX_MONTHLY_INVESTMENT",
]


# =============================================================================
# Accumulation Phase
# =============================================================================

MONTHS_PER_YEAR: int = 12
"""Number of months in a year (used for compounding and step-up boundaries)."""

SHORT_TERM_RETURN_RATE: float = 0.12
"""Annual return on contributions for horizons below the regime threshold."""

LONG_TERM_RETURN_RATE: float = 0.14
"""Annual return applied after the first SHORT_TERM_THRESHOLD_YEARS years."""

SHORT_TERM_THRESHOLD_YEARS: int = 7
"""Horizon (years) at which the accumulation return switches regime."""

INFLATION_RATE: float = 0.07
"""Annual inflation applied to today's monthly expense."""


# =============================================================================
# Withdrawal Phase
# =============================================================================

WITHDRAWAL_RETURN_RATE: float = 0.10
"""Annual return earned by the corpus while withdrawals are running."""

WITHDRAWAL_STEP_UP_RATE: float = 0.08
"""Annual increase applied to the scheduled monthly withdrawal."""

LIFESTYLE_BUFFER: float = 0.25
"""Markup on the inflation-adjusted expense when sizing the target withdrawal."""

SUSTAINABILITY_BUFFER: float = 0.10
"""Fraction of the starting corpus that must remain at end of life."""

LTCG_TAX_RATE: float = 0.125
"""Flat long-term capital gains rate used to gross up withdrawals."""


# =============================================================================
# Existing Assets
# =============================================================================

FIXED_INCOME_GROWTH_RATE: float = 0.07
"""Annual growth of an existing fixed-income (deposit) corpus."""

GROWTH_ASSET_GROWTH_RATE: float = 0.12
"""Annual growth of an existing growth-asset (mutual fund) corpus."""


# =============================================================================
# Longevity
# =============================================================================

MAX_AGE_BY_HEALTH: Dict[str, int] = {
    "needs_improvement": 70,
    "generally_healthy": 80,
    "very_healthy": 90,
}
"""End-of-life age assumed for each health status."""

DEFAULT_MAX_AGE: int = 80
"""Max age used when the health status is not recognized."""

FI_AGE_CAP: int = 60
"""Latest age the FI search will consider or return."""

UNREACHABLE_FI_AGE: int = 100
"""Effective baseline used for comparisons when FI is never reached."""


# =============================================================================
# Optimization
# =============================================================================

TARGET_FI_AGE: int = 45
"""Baselines at or below this age skip optimization; earns a scoring bonus."""

STEP_UP_TEST_VALUES: Tuple[float, ...] = (5, 7, 10)
"""Annual step-up percentages tried on their own (ordered by preference)."""

INVESTMENT_INCREASE_TEST_VALUES: Tuple[float, ...] = (5, 10, 15, 20)
"""One-time monthly investment increases (percent) tried on their own."""

COMBINED_SCENARIOS: Tuple[Tuple[float, float], ...] = (
    (5, 5),
    (7, 5),
    (5, 10),
    (7, 10),
    (10, 5),
    (10, 10),
)
"""(step-up %, investment increase %) pairs tried together."""

DEFAULT_CACHE_CAPACITY: int = 1000
"""Maximum number of memoized corpus projections per run."""

DEFAULT_CACHE_EVICTION_FRACTION: float = 0.2
"""Fraction of capacity evicted (oldest insertions first) on overflow."""

MAX_SEARCH_ITERATIONS: int = 100
"""Termination safeguard for the FI age binary search."""

DEFAULT_WORKER_TIMEOUT: float = 30.0
"""Seconds to wait for a background optimization run before falling back."""

DEFAULT_ADVISORY_TIMEOUT: float = 10.0
"""Seconds to wait for a remote advisory provider."""


# =============================================================================
# Input Limits
# =============================================================================

MAX_AGE_INPUT: int = 99
"""Largest current age accepted at the file/CLI boundary."""

MAX_MONTHLY_EXPENSE: float = 1_000_000
"""Largest monthly expense accepted at the file/CLI boundary."""

MAX_MONTHLY_INVESTMENT: float = 500_000
"""Largest monthly investment accepted at the file/CLI boundary."""

MAX_EXISTING_CORPUS: float = 1_000_000_000_000
"""Largest existing lump sum (per asset class) accepted at the file/CLI boundary."""
