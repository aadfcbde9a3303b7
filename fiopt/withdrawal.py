"""
Withdrawal-phase modeling for FIOpt.

Purpose
-------
Simulates a systematic withdrawal plan (a monthly withdrawal that steps up
once a year) against a starting corpus, and decides whether that plan is
sustainable until end of life.

Mathematical Framework
----------------------
For month t = 1..12Y with r_m = (1 + r_a)^(1/12) - 1:

    B_t = B_{t-1}(1 + r_m) - w_t
    w_{t+1} = w_t (1 + s)   if t is a multiple of 12

The balance is NOT clamped at zero: a negative final balance is the
depletion signal. Amounts actually paid out are capped at the available
balance when computing ``total_withdrawn``.

Sustainability:

    sustainable  ⇔  B_{12Y} ≥ buffer · B_0      (buffer = 10% by default)

Key components
--------------
- WithdrawalResult / SustainabilityCheck: immutable result containers
- simulate_withdrawals: the monthly recursion above
- WithdrawalSimulator: assumption-aware wrapper (withdrawal-phase return,
  step-up and sustainability buffer from ``AssumptionsConfig``)
- max_sustainable_withdrawal: largest starting withdrawal that never
  leaves a negative final balance
- withdrawal_schedule: month-by-month table, stopping at depletion

Example
-------
>>> sim = WithdrawalSimulator()
>>> check = sim.check_sustainability(corpus=5e7, monthly_withdrawal=1e5, years=30)
>>> check.sustainable
True
>>> sim.check_sustainability(corpus=0, monthly_withdrawal=1e5, years=30).sustainable
False
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from . import constants as C
from .config import AssumptionsConfig
from .utils import annual_to_monthly

__all__ = [
    "WithdrawalResult",
    "SustainabilityCheck",
    "simulate_withdrawals",
    "WithdrawalSimulator",
    "max_sustainable_withdrawal",
    "withdrawal_schedule",
]


# ---------------------------------------------------------------------------
# Result containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WithdrawalResult:
    """
    Outcome of a withdrawal simulation.

    Attributes
    ----------
    starting_corpus : float
        Balance at the start of the withdrawal phase.
    final_balance : float
        Balance after the last month; negative when the plan ran dry.
    total_withdrawn : float
        Sum of amounts actually paid (capped at the available balance).
    months_withdrawn : int
        Months in which a positive amount was paid.
    yearly_balances : np.ndarray
        Balance at the end of each simulated year.
    """
    starting_corpus: float
    final_balance: float
    total_withdrawn: float
    months_withdrawn: int
    yearly_balances: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @property
    def depleted(self) -> bool:
        return self.final_balance <= 0


@dataclass(frozen=True)
class SustainabilityCheck:
    """Whether a corpus sustains a withdrawal plan to end of life."""
    sustainable: bool
    final_corpus: float
    final_corpus_percentage: float
    required_final_corpus: float

    @classmethod
    def unsustainable(cls) -> SustainabilityCheck:
        return cls(
            sustainable=False,
            final_corpus=0.0,
            final_corpus_percentage=0.0,
            required_final_corpus=0.0,
        )


# ---------------------------------------------------------------------------
# Core recursion
# ---------------------------------------------------------------------------

def simulate_withdrawals(
    corpus: float,
    monthly_withdrawal: float,
    step_up_rate: float,
    annual_rate: float,
    years: float,
) -> WithdrawalResult:
    """
    Run the monthly withdrawal recursion.

    Parameters
    ----------
    corpus : float
        Starting balance. Non-positive values yield a zero result.
    monthly_withdrawal : float
        First month's scheduled withdrawal.
    step_up_rate : float
        Annual withdrawal increase as a fraction (0.08 for 8%).
    annual_rate : float
        Annual return during withdrawals as a fraction. Rates <= -1 yield
        a zero result.
    years : float
        Horizon in years. Non-positive values yield a zero result.

    Returns
    -------
    WithdrawalResult
    """
    if corpus <= 0 or years <= 0 or annual_rate <= -1:
        return WithdrawalResult(
            starting_corpus=max(float(corpus), 0.0),
            final_balance=0.0,
            total_withdrawn=0.0,
            months_withdrawn=0,
        )

    months = int(round(years * C.MONTHS_PER_YEAR))
    growth = 1.0 + annual_to_monthly(annual_rate)
    balance = float(corpus)
    scheduled = float(monthly_withdrawal)
    total_withdrawn = 0.0
    months_withdrawn = 0
    yearly = []

    for month in range(1, months + 1):
        balance *= growth
        if balance > 0:
            paid = min(balance, scheduled)
            total_withdrawn += paid
            if paid > 0:
                months_withdrawn += 1
        balance -= scheduled

        if month % C.MONTHS_PER_YEAR == 0:
            yearly.append(balance)
            if step_up_rate > 0:
                scheduled *= 1.0 + step_up_rate

    return WithdrawalResult(
        starting_corpus=float(corpus),
        final_balance=balance,
        total_withdrawn=total_withdrawn,
        months_withdrawn=months_withdrawn,
        yearly_balances=np.asarray(yearly, dtype=float),
    )


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

class WithdrawalSimulator:
    """
    Withdrawal simulation under the configured withdrawal-phase assumptions.

    Parameters
    ----------
    assumptions : AssumptionsConfig, optional
        Supplies the withdrawal-phase return, annual step-up and the
        sustainability buffer.
    """

    def __init__(self, assumptions: Optional[AssumptionsConfig] = None):
        self.assumptions = assumptions or AssumptionsConfig()

    def simulate(
        self,
        corpus: float,
        monthly_withdrawal: float,
        years: float,
        step_up_rate: Optional[float] = None,
        annual_rate: Optional[float] = None,
    ) -> WithdrawalResult:
        a = self.assumptions
        return simulate_withdrawals(
            corpus,
            monthly_withdrawal,
            a.withdrawal_step_up_rate if step_up_rate is None else step_up_rate,
            a.withdrawal_return_rate if annual_rate is None else annual_rate,
            years,
        )

    def check_sustainability(
        self,
        corpus: float,
        monthly_withdrawal: float,
        years: float,
        buffer: Optional[float] = None,
    ) -> SustainabilityCheck:
        """
        Test whether ``corpus`` sustains the withdrawal for ``years``.

        Parameters
        ----------
        corpus : float
            Corpus at the start of the withdrawal phase.
        monthly_withdrawal : float
            Gross monthly withdrawal in the first year.
        years : float
            Years from FI age to max age.
        buffer : float, optional
            Required final fraction of ``corpus``; defaults to
            ``assumptions.sustainability_buffer``.

        Returns
        -------
        SustainabilityCheck
            Never sustainable for a non-positive corpus or horizon.
        """
        if corpus <= 0 or years <= 0:
            return SustainabilityCheck.unsustainable()

        buffer = self.assumptions.sustainability_buffer if buffer is None else buffer
        result = self.simulate(corpus, monthly_withdrawal, years)
        required = corpus * buffer
        return SustainabilityCheck(
            sustainable=result.final_balance >= required,
            final_corpus=result.final_balance,
            final_corpus_percentage=result.final_balance / corpus * 100.0,
            required_final_corpus=required,
        )


# ---------------------------------------------------------------------------
# Derived tools
# ---------------------------------------------------------------------------

def max_sustainable_withdrawal(
    corpus: float,
    years: float,
    step_up_rate: float = C.WITHDRAWAL_STEP_UP_RATE,
    annual_rate: float = C.WITHDRAWAL_RETURN_RATE,
    precision: float = 10.0,
) -> int:
    """
    Largest starting monthly withdrawal whose final balance stays >= 0.

    Binary search between 0 and the corpus grown over the whole horizon,
    to within ``precision``. Returns 0 for a non-positive corpus or horizon.
    """
    if corpus <= 0 or years <= 0 or annual_rate <= -1:
        return 0

    low = 0.0
    high = corpus * (1.0 + annual_rate) ** years
    best = 0.0
    while high - low > precision:
        mid = (low + high) / 2.0
        result = simulate_withdrawals(corpus, mid, step_up_rate, annual_rate, years)
        if result.final_balance >= 0:
            best = mid
            low = mid
        else:
            high = mid
    return int(math.floor(best))


def withdrawal_schedule(
    corpus: float,
    monthly_withdrawal: float,
    years: float,
    step_up_rate: float = C.WITHDRAWAL_STEP_UP_RATE,
    annual_rate: float = C.WITHDRAWAL_RETURN_RATE,
) -> pd.DataFrame:
    """
    Month-by-month withdrawal table, ending at the month the corpus runs out.

    Returns
    -------
    pd.DataFrame
        Columns: month, beginning_balance, returns, withdrawal,
        ending_balance. Empty for a non-positive corpus or horizon.
    """
    columns = ["month", "beginning_balance", "returns", "withdrawal", "ending_balance"]
    if corpus <= 0 or years <= 0 or annual_rate <= -1:
        return pd.DataFrame(columns=columns)

    months = int(round(years * C.MONTHS_PER_YEAR))
    r_m = annual_to_monthly(annual_rate)
    balance = float(corpus)
    scheduled = float(monthly_withdrawal)
    rows = []

    for month in range(1, months + 1):
        if balance <= 0:
            break
        returns = balance * r_m
        available = balance + returns
        if scheduled > available:
            paid, ending = max(available, 0.0), 0.0
        else:
            paid, ending = scheduled, available - scheduled
        rows.append((month, balance, returns, paid, ending))

        if ending <= 0:
            break
        balance = ending
        if month % C.MONTHS_PER_YEAR == 0 and step_up_rate > 0:
            scheduled *= 1.0 + step_up_rate

    return pd.DataFrame(rows, columns=columns)
