"""
Baseline financial independence plan for FIOpt.

Purpose
-------
Builds the "current plan" view: one row per age from today to max age with
the projected corpus (contributions without step-up plus grown existing
assets), the withdrawal it would need to fund, and whether that withdrawal
is sustainable until end of life. The earliest sustainable age at or below
the FI age cap is the plan's FI age.

This view is produced independently of the optimizer so it stays
available when optimization is skipped or fails.

Key components
--------------
- YearlyBreakdownRow: one displayed age (values rounded for display)
- PlanResult: rows, FI age and a user-facing message; ``to_frame()``
- FinancialIndependencePlanner: ``plan``, ``optimize`` and ``run``
- PlanReport: plan + optimization of a full run

Example
-------
>>> planner = FinancialIndependencePlanner()
>>> plan = planner.plan(PlanningInputs(30, 50_000, 50_000))
>>> plan.to_frame()[["age", "corpus", "sustainable"]].head()
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import List, Optional, Tuple

import pandas as pd

from .config import AssumptionsConfig, OptimizerConfig
from .host import ConcurrencyHost
from .inputs import PlanningInputs
from .optimization import OptimizationResult, ScenarioOptimizer
from .advisory import AdvisoryChain
from .projection import CorpusProjector, ExistingAssetGrower, withdrawal_target
from .types import YearlyBreakdownDict
from .utils import format_inr
from .withdrawal import WithdrawalSimulator

__all__ = [
    "YearlyBreakdownRow",
    "PlanResult",
    "PlanReport",
    "FinancialIndependencePlanner",
]

logger = logging.getLogger(__name__)


def _whole(value: float) -> float:
    """Nearest whole rupee; non-finite amounts (overflow) display as 0."""
    return float(round(value)) if math.isfinite(value) else 0.0


@dataclass(frozen=True)
class YearlyBreakdownRow:
    """
    One age of the baseline plan.

    Amounts are rounded to whole units and the final corpus percentage to
    two decimals; ``accumulation_rate`` is the annual rate in force for the
    horizon to this age.
    """
    age: int
    years_from_now: int
    corpus: float
    accumulation_rate: float
    inflation_adjusted_expense: float
    target_withdrawal: float
    years_in_fi: int
    sustainable: bool
    final_corpus: float
    final_corpus_percentage: float

    def to_dict(self) -> YearlyBreakdownDict:
        return asdict(self)


@dataclass(frozen=True)
class PlanResult:
    """
    Baseline plan.

    Attributes
    ----------
    max_age : int
    current_age : int
    can_be_fi : bool
        True when some age at or below the cap is sustainable.
    earliest_fi_age : int or None
    yearly_breakdown : tuple of YearlyBreakdownRow
        Empty when the current age is at or past max age.
    message : str
    sustainable_after_cap : bool
        True when sustainability is only reached after the cap.
    """
    max_age: int
    current_age: int
    can_be_fi: bool
    earliest_fi_age: Optional[int]
    yearly_breakdown: Tuple[YearlyBreakdownRow, ...]
    message: str
    sustainable_after_cap: bool = False

    def to_frame(self) -> pd.DataFrame:
        """Yearly breakdown as a DataFrame, one row per age."""
        columns = list(YearlyBreakdownRow.__dataclass_fields__)
        return pd.DataFrame([asdict(r) for r in self.yearly_breakdown], columns=columns)

    def to_dict(self) -> dict:
        return {
            "max_age": self.max_age,
            "current_age": self.current_age,
            "can_be_fi": self.can_be_fi,
            "earliest_fi_age": self.earliest_fi_age,
            "sustainable_after_cap": self.sustainable_after_cap,
            "message": self.message,
            "yearly_breakdown": [r.to_dict() for r in self.yearly_breakdown],
        }


@dataclass(frozen=True)
class PlanReport:
    """Everything one planning request produces."""
    inputs: PlanningInputs
    plan: PlanResult
    optimization: OptimizationResult


class FinancialIndependencePlanner:
    """
    Baseline plan plus optimization, end to end.

    Parameters
    ----------
    assumptions : AssumptionsConfig, optional
    optimizer_config : OptimizerConfig, optional
    advisor : AdvisoryChain, optional
        Recommendation chain used by ``optimize``; local only by default.
    """

    def __init__(
        self,
        assumptions: Optional[AssumptionsConfig] = None,
        optimizer_config: Optional[OptimizerConfig] = None,
        advisor: Optional[AdvisoryChain] = None,
    ):
        self.assumptions = assumptions or AssumptionsConfig()
        self.optimizer_config = optimizer_config or OptimizerConfig()
        self.advisor = advisor
        self.projector = CorpusProjector(self.assumptions)
        self.grower = ExistingAssetGrower(self.assumptions)
        self.simulator = WithdrawalSimulator(self.assumptions)

    # ------------------------------------------------------------------
    # Baseline plan
    # ------------------------------------------------------------------

    def _row(self, inputs: PlanningInputs, age: int) -> YearlyBreakdownRow:
        years_from_now = age - inputs.current_age
        years_in_fi = inputs.max_age - age

        corpus = (
            self.projector.total_value(inputs.monthly_investment, years_from_now)
            + self.grower.grow(
                inputs.existing_fixed_income_corpus, inputs.existing_growth_corpus, years_from_now
            )
        )
        target = withdrawal_target(inputs.monthly_expense, years_from_now, self.assumptions)

        sustainable, final_corpus, final_pct = False, 0.0, 0.0
        finite = math.isfinite(corpus) and math.isfinite(target.gross_withdrawal)
        if years_in_fi > 0 and corpus > 0 and finite:
            check = self.simulator.check_sustainability(corpus, target.gross_withdrawal, years_in_fi)
            sustainable = check.sustainable
            final_corpus = check.final_corpus
            final_pct = check.final_corpus_percentage

        return YearlyBreakdownRow(
            age=age,
            years_from_now=years_from_now,
            corpus=_whole(corpus),
            accumulation_rate=self.projector.rate_for_horizon(years_from_now),
            inflation_adjusted_expense=_whole(target.inflation_adjusted_expense),
            target_withdrawal=_whole(target.target_withdrawal),
            years_in_fi=years_in_fi,
            sustainable=sustainable,
            final_corpus=_whole(final_corpus),
            final_corpus_percentage=round(final_pct, 2) if math.isfinite(final_pct) else 0.0,
        )

    def plan(self, inputs: PlanningInputs) -> PlanResult:
        """
        Yearly breakdown and FI age for the inputs as given.

        Invalid inputs produce an empty plan with an explanatory message
        rather than an exception.
        """
        max_age = inputs.max_age
        current_age = inputs.current_age

        if not inputs.is_valid:
            return PlanResult(
                max_age=max_age,
                current_age=current_age,
                can_be_fi=False,
                earliest_fi_age=None,
                yearly_breakdown=(),
                message="Unable to plan: age, expense and investment must be positive.",
            )

        if current_age >= max_age:
            return PlanResult(
                max_age=max_age,
                current_age=current_age,
                can_be_fi=False,
                earliest_fi_age=None,
                yearly_breakdown=(),
                message=(
                    f"Your current age ({current_age}) is at or exceeds the estimated max age "
                    f"({max_age}). Unable to plan for financial independence."
                ),
            )

        cap = self.assumptions.fi_age_cap
        rows: List[YearlyBreakdownRow] = []
        earliest = None
        after_cap = False
        for age in range(int(current_age), int(max_age) + 1):
            row = self._row(inputs, age)
            rows.append(row)
            if row.sustainable and earliest is None:
                if age <= cap:
                    earliest = age
                else:
                    after_cap = True

        message = self._message(inputs, earliest, after_cap)
        logger.debug("Plan for age %d: FI age %s", current_age, earliest)
        return PlanResult(
            max_age=max_age,
            current_age=current_age,
            can_be_fi=earliest is not None,
            earliest_fi_age=earliest,
            yearly_breakdown=tuple(rows),
            message=message,
            sustainable_after_cap=after_cap,
        )

    def _message(self, inputs: PlanningInputs, earliest: Optional[int], after_cap: bool) -> str:
        if earliest is not None and earliest == inputs.current_age:
            return (
                f"Great news! You can be financially independent immediately at age "
                f"{inputs.current_age}. Your current corpus and investments are sufficient to "
                f"sustain your lifestyle until age {inputs.max_age}."
            )
        if earliest is not None:
            return (
                f"You can be financially independent at age {earliest} "
                f"(in {earliest - inputs.current_age} years). Keep investing "
                f"{format_inr(inputs.monthly_investment)} per month to achieve this goal."
            )
        if after_cap:
            return (
                f"Your current plan doesn't reach financial independence before age "
                f"{self.assumptions.fi_age_cap}."
            )
        return (
            f"Based on your current investment of {format_inr(inputs.monthly_investment)}/month "
            f"and expenses of {format_inr(inputs.monthly_expense)}/month, you cannot achieve "
            f"financial independence before age {inputs.max_age} with the current configuration. "
            f"Consider increasing your monthly investment or reducing your expenses."
        )

    # ------------------------------------------------------------------
    # Optimization
    # ------------------------------------------------------------------

    def make_optimizer(self) -> ScenarioOptimizer:
        """Fresh optimizer (and cache) for one run."""
        return ScenarioOptimizer(
            config=self.optimizer_config,
            assumptions=self.assumptions,
            advisor=self.advisor,
        )

    def optimize(self, inputs: PlanningInputs) -> OptimizationResult:
        return self.make_optimizer().run(inputs)

    def run(self, inputs: PlanningInputs, host: Optional[ConcurrencyHost] = None) -> PlanReport:
        """
        Baseline plan and optimization for one set of inputs.

        Parameters
        ----------
        inputs : PlanningInputs
        host : ConcurrencyHost, optional
            Runs the optimization on its background worker (falling back
            inline). Without a host the optimization runs on the caller's thread.
        """
        plan = self.plan(inputs)
        if host is None:
            optimization = self.optimize(inputs)
        else:
            response = host.run(inputs, self.make_optimizer().baseline_fi_age(inputs))
            optimization = response.result if response is not None else self.optimize(inputs)
        return PlanReport(inputs=inputs, plan=plan, optimization=optimization)
