"""
Scenario optimization for FIOpt.

Purpose
-------
Searches behavioral adjustments that bring the FI age forward: an annual
step-up of the monthly investment, a one-time increase of it, or both.
Every scenario is solved with ``FIAgeSolver``; only candidates that beat
the effective baseline strictly survive. The sorted candidates are then
handed to an ``AdvisoryChain`` that picks and explains one of them.

Pipeline
--------
1. Baseline at or below the target age (45): skip, already optimal
2. Baseline recorded as a zero-change reference solution
3. Three independent phases (run concurrently when enabled):
   - step-up only       (5, 7, 10 %)
   - increase only      (5, 10, 15, 20 %)
   - combined pairs     ((5,5) (7,5) (5,10) (7,10) (10,5) (10,10))
   keep fi_age < effective baseline (None treated as 100)
4. Dedupe on (step-up, increase); sort by (fi_age, step-up, increase)
5. No survivor: result-level error. Otherwise recommend via the chain.

The per-run ``ComputationCache`` is cleared at the start of ``optimize``
and is the only state shared between phases.

Key components
--------------
- OptimizationSolution: one (step-up, increase) scenario and its FI age
- OptimizationResult: terminal artifact for the display layer
- ScenarioOptimizer: the pipeline above

Example
-------
>>> from fiopt import PlanningInputs, ScenarioOptimizer
>>> inputs = PlanningInputs(30, 50_000, 50_000)
>>> result = ScenarioOptimizer().run(inputs)
>>> print(result.summary())
"""

from __future__ import annotations

import concurrent.futures
import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from . import constants as C
from .advisory import AdvisoryChain, AdvisoryPreferences, AdvisoryRequest, Recommendation
from .cache import ComputationCache
from .config import AssumptionsConfig, OptimizerConfig
from .inputs import PlanningInputs
from .solver import FIAgeSolver
from .types import SolutionPayloadDict
from .utils import percent_to_rate

__all__ = [
    "OptimizationSolution",
    "OptimizationResult",
    "ScenarioOptimizer",
    "increased_investment",
    "effective_baseline",
]

logger = logging.getLogger(__name__)

NO_IMPROVEMENT_ERROR = (
    "No improvement options found within the allowed constraints. "
    "Consider increasing your investment significantly or reducing expenses."
)
INVALID_INPUTS_ERROR = "Invalid planning inputs: age and amounts must be positive."


def increased_investment(monthly_investment: float, increase_percent: float) -> float:
    """Monthly investment after a one-time increase, rounded half up to a whole unit."""
    raw = monthly_investment * (1.0 + percent_to_rate(increase_percent))
    if not math.isfinite(raw):
        return raw
    return float(math.floor(raw + 0.5))


def effective_baseline(baseline_fi_age: Optional[int]) -> int:
    """Baseline FI age, or 100 when FI is never reached."""
    return C.UNREACHABLE_FI_AGE if baseline_fi_age is None else baseline_fi_age


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OptimizationSolution:
    """
    One evaluated scenario.

    Attributes
    ----------
    fi_age : int
        Earliest sustainable FI age under the scenario.
    step_up_percent : float
        Annual investment step-up (percent).
    sip_increase_percent : float
        One-time monthly investment increase (percent).
    new_monthly_sip : float
        Monthly investment after the increase.
    improvement_years : int
        Effective baseline minus ``fi_age``.
    """
    fi_age: int
    step_up_percent: float
    sip_increase_percent: float
    new_monthly_sip: float
    improvement_years: int

    @property
    def scenario(self) -> Tuple[float, float]:
        return (self.step_up_percent, self.sip_increase_percent)

    @property
    def sort_key(self) -> Tuple[int, float, float]:
        return (self.fi_age, self.step_up_percent, self.sip_increase_percent)

    def to_payload(self) -> SolutionPayloadDict:
        return {
            "fiAge": self.fi_age,
            "stepUpPercent": self.step_up_percent,
            "sipIncreasePercent": self.sip_increase_percent,
            "newMonthlySip": self.new_monthly_sip,
            "improvementYears": self.improvement_years,
        }

    @classmethod
    def from_payload(cls, payload: SolutionPayloadDict) -> OptimizationSolution:
        return cls(
            fi_age=int(payload["fiAge"]),
            step_up_percent=float(payload["stepUpPercent"]),
            sip_increase_percent=float(payload["sipIncreasePercent"]),
            new_monthly_sip=float(payload["newMonthlySip"]),
            improvement_years=int(payload["improvementYears"]),
        )


@dataclass(frozen=True)
class OptimizationResult:
    """
    Outcome of one optimization run.

    Attributes
    ----------
    baseline_fi_age : int or None
        FI age without any change; None when unreachable before the cap.
    solutions : tuple of OptimizationSolution
        Strictly improving candidates, sorted by (fi_age, step-up, increase).
        The zero-change baseline entry is kept apart in ``baseline_solution``.
    recommended_solution : OptimizationSolution, optional
    recommendation : Recommendation, optional
    skip_optimization : bool
        True when the baseline already meets the target age.
    skip_reason : str, optional
    error : str, optional
        Set when inputs were invalid or no candidate improved the baseline.
    recommendation_source : str, optional
        Provider that produced ``recommendation`` ("fallback", "server",
        "openrouter").
    baseline_solution : OptimizationSolution, optional
        Zero-change reference entry (None when the baseline is unreachable).
    """
    baseline_fi_age: Optional[int]
    solutions: Tuple[OptimizationSolution, ...] = ()
    recommended_solution: Optional[OptimizationSolution] = None
    recommendation: Optional[Recommendation] = None
    skip_optimization: bool = False
    skip_reason: Optional[str] = None
    error: Optional[str] = None
    recommendation_source: Optional[str] = None
    baseline_solution: Optional[OptimizationSolution] = None

    @property
    def success(self) -> bool:
        return self.error is None

    def summary(self) -> str:
        """Human-readable optimization summary."""
        baseline = self.baseline_fi_age if self.baseline_fi_age is not None else "not reached"
        lines = ["OptimizationResult(", f"  Baseline FI age: {baseline}"]
        if self.skip_optimization:
            lines.append(f"  Skipped: {self.skip_reason}")
        elif self.error:
            lines.append(f"  Error: {self.error}")
        else:
            lines.append(f"  Candidates: {len(self.solutions)}")
            best = self.recommended_solution
            if best is not None:
                lines.append(
                    f"  Recommended: FI at {best.fi_age} "
                    f"({best.step_up_percent:g}% step-up, {best.sip_increase_percent:g}% increase, "
                    f"{best.improvement_years} years earlier)"
                )
            if self.recommendation is not None:
                lines.append(f"  Difficulty: {self.recommendation.difficulty.value}")
                lines.append(f"  Source: {self.recommendation_source}")
        lines.append(")")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

class ScenarioOptimizer:
    """
    Enumerates step-up / increase scenarios and recommends one.

    Parameters
    ----------
    config : OptimizerConfig, optional
        Test grids, target age, cache sizing, search method, parallelism.
    assumptions : AssumptionsConfig, optional
        Model assumptions passed to the solver.
    cache : ComputationCache, optional
        Per-run memo; a fresh one sized by ``config`` is created otherwise.
        Cleared at the start of every ``optimize`` call.
    advisor : AdvisoryChain, optional
        Recommendation chain; local scoring only by default.
    """

    def __init__(
        self,
        config: Optional[OptimizerConfig] = None,
        assumptions: Optional[AssumptionsConfig] = None,
        cache: Optional[ComputationCache] = None,
        advisor: Optional[AdvisoryChain] = None,
    ):
        self.config = config or OptimizerConfig()
        self.assumptions = assumptions or AssumptionsConfig()
        self.cache = cache if cache is not None else ComputationCache(
            self.config.cache_capacity, self.config.cache_eviction_fraction
        )
        self.advisor = advisor or AdvisoryChain()
        self.solver = FIAgeSolver(
            self.assumptions, cache=self.cache, search_method=self.config.search_method
        )

    def baseline_fi_age(self, inputs: PlanningInputs) -> Optional[int]:
        """FI age with the inputs as given (no step-up, no increase)."""
        return self.solver.solve_for(inputs)

    def run(self, inputs: PlanningInputs) -> OptimizationResult:
        """Compute the baseline, then optimize against it."""
        self.cache.clear()
        return self.optimize(inputs, self.baseline_fi_age(inputs))

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _evaluate(
        self,
        inputs: PlanningInputs,
        step_up_percent: float,
        increase_percent: float,
        baseline: int,
    ) -> Optional[OptimizationSolution]:
        new_sip = (
            increased_investment(inputs.monthly_investment, increase_percent)
            if increase_percent > 0 else float(inputs.monthly_investment)
        )
        fi_age = self.solver.solve_for(inputs, step_up_percent=step_up_percent, monthly_investment=new_sip)
        if fi_age is None or fi_age >= baseline:
            return None
        return OptimizationSolution(
            fi_age=fi_age,
            step_up_percent=float(step_up_percent),
            sip_increase_percent=float(increase_percent),
            new_monthly_sip=new_sip,
            improvement_years=baseline - fi_age,
        )

    def _run_phase(
        self,
        inputs: PlanningInputs,
        scenarios: Sequence[Tuple[float, float]],
        baseline: int,
    ) -> List[OptimizationSolution]:
        found = []
        for step_up, increase in scenarios:
            solution = self._evaluate(inputs, step_up, increase, baseline)
            if solution is not None:
                found.append(solution)
        return found

    def phases(self) -> List[List[Tuple[float, float]]]:
        """Scenario grids: step-up only, increase only, combined."""
        cfg = self.config
        return [
            [(float(s), 0.0) for s in cfg.step_up_values],
            [(0.0, float(i)) for i in cfg.increase_values],
            [(float(s), float(i)) for s, i in cfg.combined_scenarios],
        ]

    def generate_candidates(
        self,
        inputs: PlanningInputs,
        baseline_fi_age: Optional[int],
    ) -> List[OptimizationSolution]:
        """
        Strictly improving candidates, deduplicated and sorted.

        Phases share nothing but the thread-safe cache, so they may run on
        a thread pool; the merge order (step-up, increase, combined) is
        fixed either way.
        """
        baseline = effective_baseline(baseline_fi_age)
        grids = self.phases()
        run_phase: Callable[[Sequence[Tuple[float, float]]], List[OptimizationSolution]] = (
            lambda grid: self._run_phase(inputs, grid, baseline)
        )

        if self.config.parallel:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=len(grids), thread_name_prefix="fiopt-phase"
            ) as executor:
                results = list(executor.map(run_phase, grids))
        else:
            results = [run_phase(grid) for grid in grids]

        seen = set()
        candidates = []
        for phase in results:
            for solution in phase:
                if solution.scenario in seen:
                    continue
                seen.add(solution.scenario)
                candidates.append(solution)

        candidates.sort(key=lambda s: s.sort_key)
        logger.debug("Generated %d candidates against baseline %d", len(candidates), baseline)
        return candidates

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def optimize(
        self,
        inputs: PlanningInputs,
        baseline_fi_age: Optional[int],
    ) -> OptimizationResult:
        """
        Run the optimization pipeline against a known baseline.

        Parameters
        ----------
        inputs : PlanningInputs
        baseline_fi_age : int or None
            FI age without changes (None when unreachable).

        Returns
        -------
        OptimizationResult
            Never raises for bad inputs; the failure is reported in ``error``.
        """
        self.cache.clear()

        if not inputs.is_valid:
            return OptimizationResult(baseline_fi_age=None, error=INVALID_INPUTS_ERROR)

        target = self.config.target_fi_age
        if baseline_fi_age is not None and baseline_fi_age <= target:
            logger.info("Baseline FI age %d already meets target %d", baseline_fi_age, target)
            return OptimizationResult(
                baseline_fi_age=baseline_fi_age,
                skip_optimization=True,
                skip_reason=(
                    f"Already optimal! Your financial independence age is {baseline_fi_age} "
                    f"which is already optimised. Keep investing!"
                ),
            )

        baseline_solution = None
        if baseline_fi_age is not None:
            baseline_solution = OptimizationSolution(
                fi_age=baseline_fi_age,
                step_up_percent=0.0,
                sip_increase_percent=0.0,
                new_monthly_sip=float(inputs.monthly_investment),
                improvement_years=0,
            )

        candidates = self.generate_candidates(inputs, baseline_fi_age)
        if not candidates:
            return OptimizationResult(
                baseline_fi_age=baseline_fi_age,
                error=NO_IMPROVEMENT_ERROR,
                baseline_solution=baseline_solution,
            )

        request = AdvisoryRequest(
            baseline_fi_age=effective_baseline(baseline_fi_age),
            solutions=tuple(candidates),
            preferences=AdvisoryPreferences(target_age=target),
        )
        outcome = self.advisor.recommend(request)
        index = outcome.recommendation.recommended_index
        recommended = candidates[index] if 0 <= index < len(candidates) else candidates[0]

        stats = self.cache.stats()
        logger.debug("Cache: %d entries, hit rate %.1f%%", stats.size, stats.hit_rate * 100)
        return OptimizationResult(
            baseline_fi_age=baseline_fi_age,
            solutions=tuple(candidates),
            recommended_solution=recommended,
            recommendation=outcome.recommendation,
            recommendation_source=outcome.source,
            baseline_solution=baseline_solution,
        )
