"""
FI age search for FIOpt.

Purpose
-------
Finds the earliest age at which projected assets sustain the target
withdrawal until end of life, optionally under an annual contribution
step-up. Also answers the inverse question: the minimum monthly
investment that makes a given FI age sustainable.

Search Framework
----------------
For a candidate age a ∈ [current_age, min(cap, max_age)]:

    corpus(a)  = CorpusProjector(inv, a - current_age, step_up)
               + ExistingAssetGrower(fd, mf, a - current_age)
    w(a)       = gross withdrawal for expense inflated to a
    feasible(a) ⇔ corpus(a) sustains w(a) for max_age - a years

Two search strategies (mirroring a horizon search):
- "binary": O(log n) probes. Assumes feasibility is monotone in age
  (feasible at a ⇒ feasible at a + 1). Capped at 100 iterations.
- "linear": exhaustive scan from current_age upward. Used to validate the
  monotonicity assumption and available as a safe fallback.

Ages above the cap (60) are never searched nor returned.

Example
-------
>>> solver = FIAgeSolver()
>>> age = solver.solve(monthly_investment=50_000, monthly_expense=50_000,
...                    current_age=30, max_age=80)
>>> age is None or 30 <= age <= 60
True
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from . import constants as C
from .cache import ComputationCache
from .config import AssumptionsConfig
from .exceptions import ConfigurationError
from .inputs import PlanningInputs
from .projection import CorpusProjector, ExistingAssetGrower, WithdrawalTarget, withdrawal_target
from .utils import is_positive_number
from .withdrawal import SustainabilityCheck, WithdrawalSimulator

__all__ = [
    "AgeProbe",
    "FIAgeSolver",
    "MinimumInvestment",
    "minimum_investment_for_fi",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgeProbe:
    """Everything computed while testing one candidate FI age."""
    age: int
    years_from_now: int
    years_in_fi: int
    corpus: float
    target: WithdrawalTarget
    check: SustainabilityCheck

    @property
    def sustainable(self) -> bool:
        return self.check.sustainable


class FIAgeSolver:
    """
    Earliest sustainable FI age via binary (or linear) search over ages.

    Parameters
    ----------
    assumptions : AssumptionsConfig, optional
        Rates, buffers and the FI age cap.
    cache : ComputationCache, optional
        Shared memo for corpus projections across probes and scenarios.
    search_method : {"binary", "linear"}, default "binary"
    max_iterations : int, default 100
        Termination safeguard for the binary search.
    """

    def __init__(
        self,
        assumptions: Optional[AssumptionsConfig] = None,
        cache: Optional[ComputationCache] = None,
        search_method: str = "binary",
        max_iterations: int = C.MAX_SEARCH_ITERATIONS,
    ):
        if search_method not in ("binary", "linear"):
            raise ConfigurationError(
                f"search_method must be 'binary' or 'linear', got {search_method!r}."
            )
        if max_iterations < 1:
            raise ConfigurationError(f"max_iterations must be >= 1, got {max_iterations}.")

        self.assumptions = assumptions or AssumptionsConfig()
        self.search_method = search_method
        self.max_iterations = max_iterations
        self.projector = CorpusProjector(self.assumptions, cache=cache)
        self.grower = ExistingAssetGrower(self.assumptions)
        self.simulator = WithdrawalSimulator(self.assumptions)

    # ------------------------------------------------------------------
    # Single probe
    # ------------------------------------------------------------------

    def evaluate(
        self,
        age: int,
        monthly_investment: float,
        monthly_expense: float,
        current_age: int,
        max_age: int,
        step_up_percent: float = 0.0,
        existing_fixed_income: float = 0.0,
        existing_growth: float = 0.0,
    ) -> Optional[AgeProbe]:
        """
        Test a single candidate age.

        Returns None when no withdrawal horizon remains (age >= max_age).
        """
        years_from_now = age - current_age
        years_in_fi = max_age - age
        if years_in_fi <= 0:
            return None

        corpus = (
            self.projector.total_value(monthly_investment, years_from_now, step_up_percent)
            + self.grower.grow(existing_fixed_income, existing_growth, years_from_now)
        )
        target = withdrawal_target(monthly_expense, years_from_now, self.assumptions)
        if corpus > 0 and math.isfinite(corpus) and math.isfinite(target.gross_withdrawal):
            check = self.simulator.check_sustainability(corpus, target.gross_withdrawal, years_in_fi)
        else:
            check = SustainabilityCheck.unsustainable()

        return AgeProbe(
            age=age,
            years_from_now=years_from_now,
            years_in_fi=years_in_fi,
            corpus=corpus,
            target=target,
            check=check,
        )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def solve(
        self,
        monthly_investment: float,
        monthly_expense: float,
        current_age: int,
        max_age: int,
        step_up_percent: float = 0.0,
        existing_fixed_income: float = 0.0,
        existing_growth: float = 0.0,
        search_method: Optional[str] = None,
    ) -> Optional[int]:
        """
        Earliest sustainable FI age, or None if none exists up to the cap.

        Parameters
        ----------
        monthly_investment, monthly_expense : float
            Must be positive; otherwise None.
        current_age, max_age : int
            Search range is [current_age, min(cap, max_age)].
        step_up_percent : float, default 0
            Annual contribution step-up in percent.
        existing_fixed_income, existing_growth : float, default 0
            Pre-existing lump sums.
        search_method : str, optional
            Overrides the instance strategy for this call.

        Returns
        -------
        int or None
        """
        cap = self.assumptions.fi_age_cap
        if not (is_positive_number(current_age) and is_positive_number(max_age)):
            return None
        if current_age >= cap or current_age >= max_age:
            return None
        if not (is_positive_number(monthly_investment) and is_positive_number(monthly_expense)):
            return None

        method = search_method or self.search_method
        args = (
            monthly_investment, monthly_expense, current_age, max_age,
            step_up_percent, existing_fixed_income, existing_growth,
        )
        if method == "binary":
            return self._binary_search(*args)
        if method == "linear":
            return self._linear_search(*args)
        raise ConfigurationError(f"Unknown search_method: {method!r}")

    def solve_for(
        self,
        inputs: PlanningInputs,
        step_up_percent: float = 0.0,
        monthly_investment: Optional[float] = None,
    ) -> Optional[int]:
        """``solve`` driven by a ``PlanningInputs`` record."""
        if not inputs.is_valid:
            return None
        return self.solve(
            inputs.monthly_investment if monthly_investment is None else monthly_investment,
            inputs.monthly_expense,
            inputs.current_age,
            inputs.max_age,
            step_up_percent,
            inputs.existing_fixed_income_corpus,
            inputs.existing_growth_corpus,
        )

    def _linear_search(self, monthly_investment, monthly_expense, current_age, max_age,
                       step_up_percent, existing_fixed_income, existing_growth) -> Optional[int]:
        """Scan ages upward; first sustainable age wins."""
        upper = min(self.assumptions.fi_age_cap, max_age)
        for age in range(int(current_age), int(upper) + 1):
            probe = self.evaluate(
                age, monthly_investment, monthly_expense, current_age, max_age,
                step_up_percent, existing_fixed_income, existing_growth,
            )
            if probe is not None and probe.sustainable:
                return age
        return None

    def _binary_search(self, monthly_investment, monthly_expense, current_age, max_age,
                       step_up_percent, existing_fixed_income, existing_growth) -> Optional[int]:
        """
        Binary search for the minimum sustainable age.

        Algorithm
        ---------
        1. low = current_age, high = min(cap, max_age)
        2. While low <= high (at most max_iterations times):
           a. mid = (low + high) // 2
           b. No withdrawal horizon at mid: high = mid - 1
           c. Sustainable: record mid, high = mid - 1 (look earlier)
           d. Otherwise: low = mid + 1
        3. Return the last recorded age
        """
        low = int(current_age)
        high = int(min(self.assumptions.fi_age_cap, max_age))
        result = None
        iterations = 0

        while low <= high and iterations < self.max_iterations:
            iterations += 1
            mid = (low + high) // 2
            probe = self.evaluate(
                mid, monthly_investment, monthly_expense, current_age, max_age,
                step_up_percent, existing_fixed_income, existing_growth,
            )
            if probe is None:
                high = mid - 1
                continue

            if probe.sustainable:
                result = mid
                high = mid - 1
            else:
                low = mid + 1

        logger.debug(
            "FI age search inv=%.0f step_up=%s -> %s (%d probes)",
            monthly_investment, step_up_percent, result, iterations,
        )
        return result


# ---------------------------------------------------------------------------
# Minimum investment for a target FI age
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MinimumInvestment:
    """Smallest monthly investment (and corpus) that makes a target FI age work."""
    minimum_investment: float
    required_corpus: float
    target_fi_age: int


def minimum_investment_for_fi(
    inputs: PlanningInputs,
    target_fi_age: int = C.FI_AGE_CAP,
    assumptions: Optional[AssumptionsConfig] = None,
) -> Optional[MinimumInvestment]:
    """
    Minimum monthly investment to be sustainably FI at ``target_fi_age``.

    Two nested binary searches:
    1. Smallest corpus in [10x, 50x] annual gross withdrawal that passes the
       sustainability check (precision 1,000).
    2. Smallest monthly investment (no step-up) from 1,000 up to a linear
       upper bound whose projection covers the corpus still needed after
       existing assets grow (precision 100).

    Returns
    -------
    MinimumInvestment or None
        None when the target is not after the current age or not before
        the max age, inputs are invalid, or amounts overflow. ``minimum_investment`` is 0
        when existing assets already cover the required corpus.
    """
    a = assumptions or AssumptionsConfig()
    if not is_positive_number(inputs.current_age) or not is_positive_number(inputs.monthly_expense):
        return None

    years_to_fi = target_fi_age - inputs.current_age
    years_in_fi = inputs.max_age - target_fi_age
    if years_to_fi <= 0 or years_in_fi <= 0:
        return None

    simulator = WithdrawalSimulator(a)
    projector = CorpusProjector(a)
    gross = withdrawal_target(inputs.monthly_expense, years_to_fi, a).gross_withdrawal
    grown_existing = ExistingAssetGrower(a).grow(
        inputs.existing_fixed_income_corpus, inputs.existing_growth_corpus, years_to_fi
    )
    if not (math.isfinite(gross) and math.isfinite(grown_existing)):
        return None

    low_corpus = gross * C.MONTHS_PER_YEAR * 10
    high_corpus = gross * C.MONTHS_PER_YEAR * 50
    required = low_corpus
    while high_corpus - low_corpus > 1000:
        mid = math.floor((low_corpus + high_corpus) / 2)
        if simulator.check_sustainability(mid, gross, years_in_fi).sustainable:
            required = mid
            high_corpus = mid
        else:
            low_corpus = mid
    if not simulator.check_sustainability(required, gross, years_in_fi).sustainable:
        required = high_corpus

    needed = max(0.0, required - grown_existing)
    if needed <= 0:
        return MinimumInvestment(0.0, required, target_fi_age)

    low_inv = 1000.0
    high_inv = needed / (years_to_fi * C.MONTHS_PER_YEAR)
    minimum = low_inv
    while high_inv - low_inv > 100:
        mid = math.floor((low_inv + high_inv) / 2)
        if projector.total_value(mid, years_to_fi) >= needed:
            minimum = mid
            high_inv = mid
        else:
            low_inv = mid
    if projector.total_value(minimum, years_to_fi) < needed:
        minimum = math.ceil(high_inv)

    return MinimumInvestment(float(minimum), float(required), target_fi_age)
