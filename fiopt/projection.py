"""
Accumulation-phase projections for FIOpt.

Purpose
-------
Projects how a monthly investment stream and pre-existing lump sums grow
until a candidate FI age, and sizes the withdrawal needed at that age.

Key components
--------------
- project_contributions:
    Single-rate projection of a monthly contribution stream with an
    optional annual step-up (annuity-due, monthly compounding).

- CorpusProjector:
    Two-regime projection. Horizons below the threshold (7 years) use the
    short-term rate throughout. Longer horizons accumulate the first 7
    years at the short-term rate, then continue contributions at the
    long-term rate from the stepped-up level, while the year-7 balance is
    compounded forward at the *long-term* rate. Optionally memoized
    through a ``ComputationCache``.

- ExistingAssetGrower:
    Annual compounding of a fixed-income and a growth-asset lump sum, each
    at its own rate.

- withdrawal_target:
    Inflation-adjusted expense → target withdrawal (lifestyle buffer) →
    pre-tax gross withdrawal (flat LTCG gross-up).

Mathematical Framework
----------------------
Monthly rate from annual: r_m = (1 + r_a)^(1/12) - 1

Contribution recursion (month t = 1..12Y):
    V_t = (V_{t-1} + c_t)(1 + r_m)
    c_{t+1} = c_t (1 + s)   if t is a multiple of 12 and t < 12Y

Two-regime value for Y >= 7:
    V(Y) = V_short(7)·(1 + r_long)^(Y-7) + V_long(Y-7; c_0(1+s)^7)

Example
-------
>>> projector = CorpusProjector()
>>> projector.project(50_000, 0).total_value
0.0
>>> short = project_contributions(50_000, 0.12, 7)
>>> projector.project(50_000, 7).total_value == short.total_value
True
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from . import constants as C
from .cache import ComputationCache
from .config import AssumptionsConfig
from .utils import annual_to_monthly, percent_to_rate

__all__ = [
    "CorpusProjection",
    "WithdrawalTarget",
    "project_contributions",
    "inflation_adjusted_expense",
    "withdrawal_target",
    "CorpusProjector",
    "ExistingAssetGrower",
]


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CorpusProjection:
    """Projected value of a contribution stream."""
    total_value: float
    invested_amount: float

    @property
    def estimated_returns(self) -> float:
        return self.total_value - self.invested_amount


ZERO_PROJECTION = CorpusProjection(total_value=0.0, invested_amount=0.0)


@dataclass(frozen=True)
class WithdrawalTarget:
    """
    Withdrawal sizing at a candidate FI age.

    Attributes
    ----------
    inflation_adjusted_expense : float
        Today's expense inflated to the FI age.
    target_withdrawal : float
        Expense plus lifestyle buffer (what the household spends).
    gross_withdrawal : float
        Pre-tax amount to redeem so that ``target_withdrawal`` remains
        after the flat capital gains tax.
    """
    inflation_adjusted_expense: float
    target_withdrawal: float
    gross_withdrawal: float


# ---------------------------------------------------------------------------
# Single-regime contribution projection
# ---------------------------------------------------------------------------

def project_contributions(
    monthly_contribution: float,
    annual_rate: float,
    years: float,
    step_up_percent: float = 0.0,
) -> CorpusProjection:
    """
    Project a monthly contribution stream at one annual rate.

    Parameters
    ----------
    monthly_contribution : float
        First month's contribution. Non-positive values project to zero.
    annual_rate : float
        Annual return as a fraction (0.12 for 12%). Rates <= -1 project to zero.
    years : float
        Horizon in years. Non-positive values project to zero.
    step_up_percent : float, default 0
        Contribution increase applied at each 12-month boundary, except
        after the final month.

    Returns
    -------
    CorpusProjection
        End value and total contributed.
    """
    if monthly_contribution <= 0 or years <= 0 or annual_rate <= -1:
        return ZERO_PROJECTION

    months = int(round(years * C.MONTHS_PER_YEAR))
    growth = 1.0 + annual_to_monthly(annual_rate)
    step_up = 1.0 + percent_to_rate(step_up_percent)

    total_value = 0.0
    invested = 0.0
    contribution = float(monthly_contribution)
    for month in range(1, months + 1):
        total_value = (total_value + contribution) * growth
        invested += contribution
        if month % C.MONTHS_PER_YEAR == 0 and month < months:
            contribution *= step_up

    return CorpusProjection(total_value=total_value, invested_amount=invested)


# ---------------------------------------------------------------------------
# Expense and withdrawal sizing
# ---------------------------------------------------------------------------

def inflation_adjusted_expense(
    monthly_expense: float,
    years_from_now: float,
    inflation_rate: float = C.INFLATION_RATE,
) -> float:
    """Today's monthly expense grown by annual inflation."""
    return monthly_expense * (1.0 + inflation_rate) ** years_from_now


def withdrawal_target(
    monthly_expense: float,
    years_from_now: float,
    assumptions: Optional[AssumptionsConfig] = None,
) -> WithdrawalTarget:
    """
    Size the monthly withdrawal needed at a candidate FI age.

    Examples
    --------
    >>> t = withdrawal_target(50_000, 0)
    >>> round(t.target_withdrawal)
    62500
    >>> round(t.gross_withdrawal)
    71429
    """
    a = assumptions or AssumptionsConfig()
    expense = inflation_adjusted_expense(monthly_expense, years_from_now, a.inflation_rate)
    target = expense * (1.0 + a.lifestyle_buffer)
    gross = target / (1.0 - a.ltcg_tax_rate)
    return WithdrawalTarget(
        inflation_adjusted_expense=expense,
        target_withdrawal=target,
        gross_withdrawal=gross,
    )


# ---------------------------------------------------------------------------
# Two-regime projector
# ---------------------------------------------------------------------------

class CorpusProjector:
    """
    Two-regime projection of a monthly investment stream.

    Parameters
    ----------
    assumptions : AssumptionsConfig, optional
        Rates and regime threshold. Defaults to the documented values.
    cache : ComputationCache, optional
        When given, ``total_value`` memoizes results by
        (monthly investment, years, step-up).
    """

    def __init__(
        self,
        assumptions: Optional[AssumptionsConfig] = None,
        cache: Optional[ComputationCache] = None,
    ):
        self.assumptions = assumptions or AssumptionsConfig()
        self.cache = cache

    def rate_for_horizon(self, years: float) -> float:
        """Accumulation rate in force for a horizon of ``years``."""
        a = self.assumptions
        if years < a.short_term_threshold_years:
            return a.short_term_return_rate
        return a.long_term_return_rate

    def project(
        self,
        monthly_investment: float,
        years: float,
        step_up_percent: float = 0.0,
    ) -> CorpusProjection:
        """
        Project total value and amount invested over ``years``.

        Parameters
        ----------
        monthly_investment : float
            Monthly contribution today (> 0, otherwise zero result).
        years : float
            Horizon in years (> 0, otherwise zero result).
        step_up_percent : float, default 0
            Annual contribution step-up in percent.

        Returns
        -------
        CorpusProjection
        """
        if years <= 0 or monthly_investment <= 0:
            return ZERO_PROJECTION

        a = self.assumptions
        threshold = a.short_term_threshold_years
        if years < threshold:
            return project_contributions(
                monthly_investment, a.short_term_return_rate, years, step_up_percent
            )

        first = project_contributions(
            monthly_investment, a.short_term_return_rate, threshold, step_up_percent
        )
        stepped_up = monthly_investment * (1.0 + percent_to_rate(step_up_percent)) ** threshold
        remaining_years = years - threshold
        rest = project_contributions(
            stepped_up, a.long_term_return_rate, remaining_years, step_up_percent
        )
        carried = first.total_value * (1.0 + a.long_term_return_rate) ** remaining_years

        return CorpusProjection(
            total_value=carried + rest.total_value,
            invested_amount=first.invested_amount + rest.invested_amount,
        )

    def total_value(
        self,
        monthly_investment: float,
        years: float,
        step_up_percent: float = 0.0,
    ) -> float:
        """Projected total value, served from the cache when available."""
        if years <= 0 or monthly_investment <= 0:
            return 0.0
        if self.cache is None:
            return self.project(monthly_investment, years, step_up_percent).total_value

        key = ComputationCache.make_key(monthly_investment, years, step_up_percent)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        value = self.project(monthly_investment, years, step_up_percent).total_value
        self.cache.set(key, value)
        return value


# ---------------------------------------------------------------------------
# Existing lump sums
# ---------------------------------------------------------------------------

class ExistingAssetGrower:
    """
    Compound existing lump sums forward, annually, each at its own rate.

    Examples
    --------
    >>> grower = ExistingAssetGrower()
    >>> round(grower.grow(100_000, 0, 1))
    107000
    >>> grower.grow(100_000, 50_000, 0)
    150000.0
    """

    def __init__(self, assumptions: Optional[AssumptionsConfig] = None):
        self.assumptions = assumptions or AssumptionsConfig()

    def grow(self, fixed_income_corpus: float, growth_corpus: float, years: float) -> float:
        fixed_income_corpus = max(0.0, float(fixed_income_corpus or 0.0))
        growth_corpus = max(0.0, float(growth_corpus or 0.0))
        if years <= 0:
            return fixed_income_corpus + growth_corpus

        a = self.assumptions
        return (
            fixed_income_corpus * (1.0 + a.fixed_income_growth_rate) ** years
            + growth_corpus * (1.0 + a.growth_asset_growth_rate) ** years
        )
