"""
Unit tests for optimization module.

Tests:
- increased_investment and effective_baseline helpers
- ScenarioOptimizer: skip rule, strict improvement filter, dedupe,
  ordering, no-improvement error, parallel/serial equivalence
- OptimizationResult summary
"""

import math
from unittest.mock import Mock

import pytest

from fiopt.advisory import AdvisoryChain, AdvisoryOutcome, Recommendation
from fiopt.config import OptimizerConfig
from fiopt.inputs import PlanningInputs
from fiopt.optimization import (
    INVALID_INPUTS_ERROR,
    NO_IMPROVEMENT_ERROR,
    OptimizationResult,
    OptimizationSolution,
    ScenarioOptimizer,
    effective_baseline,
    increased_investment,
)
from fiopt.solver import FIAgeSolver


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class TestHelpers:
    """Tests for module helpers."""

    @pytest.mark.parametrize("investment, increase, expected", [
        (50_000, 10, 55_000),
        (33_333, 5, 35_000),     # 34_999.65 rounds up
        (10_001, 15, 11_501),    # 11_501.15 rounds down
        (1, 50, 2),              # 1.5 rounds half up
    ])
    def test_increased_investment(self, investment, increase, expected):
        """Test one-time increase rounds to a whole unit."""
        assert increased_investment(investment, increase) == expected

    def test_increased_investment_overflow(self, base_inputs, serial_config):
        """Test an overflowing increase is dropped instead of raising."""
        assert math.isinf(increased_investment(1e308, 10))
        huge = base_inputs.with_investment(1e308)
        result = ScenarioOptimizer(serial_config).run(huge)
        assert all(s.sip_increase_percent == 0 for s in result.solutions)

    def test_effective_baseline(self):
        """Test unreachable baselines count as 100."""
        assert effective_baseline(None) == 100
        assert effective_baseline(52) == 52


# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

class TestScenarioOptimizer:
    """Tests for the optimization pipeline."""

    def test_concrete_scenario(self, base_inputs, serial_config):
        """Test the typical saver: baseline in range and 10% step-up kept when it helps."""
        optimizer = ScenarioOptimizer(serial_config)
        baseline = optimizer.baseline_fi_age(base_inputs)
        assert baseline is None or 30 <= baseline <= 60

        result = optimizer.optimize(base_inputs, baseline)
        stepped = FIAgeSolver().solve_for(base_inputs, step_up_percent=10)
        if not result.skip_optimization and stepped is not None and stepped <= effective_baseline(baseline) - 1:
            assert any(
                s.step_up_percent == 10 and s.sip_increase_percent == 0 and s.fi_age == stepped
                for s in result.solutions
            )

    def test_candidates_strictly_improve(self, base_inputs, serial_config):
        """Test every candidate beats the effective baseline."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        baseline = effective_baseline(result.baseline_fi_age)
        assert result.solutions
        for solution in result.solutions:
            assert solution.fi_age < baseline
            assert solution.improvement_years == baseline - solution.fi_age
            assert (solution.step_up_percent, solution.sip_increase_percent) != (0, 0)

    def test_candidates_sorted(self, base_inputs, serial_config):
        """Test ordering by FI age, then step-up, then increase."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        keys = [(s.fi_age, s.step_up_percent, s.sip_increase_percent) for s in result.solutions]
        assert keys == sorted(keys)

    def test_candidates_unique(self, base_inputs):
        """Test duplicated combined pairs are collected once."""
        config = OptimizerConfig(
            step_up_values=[10],
            increase_values=[20],
            combined_scenarios=[(10, 10), (10, 10)],
            parallel=False,
        )
        result = ScenarioOptimizer(config).run(base_inputs)
        scenarios = [s.scenario for s in result.solutions]
        assert len(scenarios) == len(set(scenarios))

    def test_new_monthly_sip(self, base_inputs, serial_config):
        """Test increased investments are recorded per candidate."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        for solution in result.solutions:
            expected = increased_investment(50_000, solution.sip_increase_percent)
            assert solution.new_monthly_sip == expected

    def test_baseline_solution_recorded(self, base_inputs, serial_config):
        """Test the zero-change reference entry is kept apart."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        if result.baseline_fi_age is not None:
            reference = result.baseline_solution
            assert reference.fi_age == result.baseline_fi_age
            assert reference.scenario == (0.0, 0.0)
            assert reference.improvement_years == 0
            assert reference not in result.solutions

    def test_recommendation_attached(self, base_inputs, serial_config):
        """Test the local scorer picks one of the candidates."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        assert result.success
        assert result.recommendation_source == "fallback"
        index = result.recommendation.recommended_index
        assert result.recommended_solution == result.solutions[index]

    def test_skip_when_already_optimal(self, on_track_inputs, serial_config):
        """Test baselines at or below the target age skip optimization."""
        optimizer = ScenarioOptimizer(serial_config)
        baseline = optimizer.baseline_fi_age(on_track_inputs)
        assert baseline is not None and baseline <= 45

        result = optimizer.optimize(on_track_inputs, baseline)
        assert result.skip_optimization
        assert result.solutions == ()
        assert result.skip_reason == (
            f"Already optimal! Your financial independence age is {baseline} "
            f"which is already optimised. Keep investing!"
        )

    def test_skip_boundary(self, base_inputs, serial_config):
        """Test a baseline equal to the target age is skipped."""
        result = ScenarioOptimizer(serial_config).optimize(base_inputs, 45)
        assert result.skip_optimization

    def test_no_improvement_error(self, hopeless_inputs, serial_config):
        """Test an unreachable plan with no improving scenario reports an error."""
        result = ScenarioOptimizer(serial_config).run(hopeless_inputs)
        assert result.baseline_fi_age is None
        assert result.solutions == ()
        assert result.recommended_solution is None
        assert result.error == NO_IMPROVEMENT_ERROR
        assert result.baseline_solution is None

    def test_no_improvement_with_mocked_solver(self, base_inputs, serial_config):
        """Test candidates equal to the baseline are dropped."""
        optimizer = ScenarioOptimizer(serial_config)
        optimizer.solver = Mock(spec=FIAgeSolver)
        optimizer.solver.solve_for.return_value = 52

        result = optimizer.optimize(base_inputs, 52)
        assert result.error == NO_IMPROVEMENT_ERROR
        expected_calls = 3 + 4 + 6
        assert optimizer.solver.solve_for.call_count == expected_calls

    def test_unreachable_baseline_treated_as_100(self, base_inputs, serial_config):
        """Test any reachable candidate improves on an unreachable baseline."""
        optimizer = ScenarioOptimizer(serial_config)
        optimizer.solver = Mock(spec=FIAgeSolver)
        optimizer.solver.solve_for.return_value = 58

        result = optimizer.optimize(base_inputs, None)
        assert len(result.solutions) == 13
        assert all(s.improvement_years == 42 for s in result.solutions)
        assert result.baseline_solution is None

    def test_invalid_inputs(self, serial_config):
        """Test invalid inputs are reported, not raised."""
        inputs = PlanningInputs(current_age=-1, monthly_expense=50_000, monthly_investment=50_000)
        result = ScenarioOptimizer(serial_config).run(inputs)
        assert result.error == INVALID_INPUTS_ERROR
        assert result.baseline_fi_age is None

    def test_parallel_matches_serial(self, base_inputs):
        """Test concurrent phases give the same result as serial ones."""
        serial = ScenarioOptimizer(OptimizerConfig(parallel=False)).run(base_inputs)
        parallel = ScenarioOptimizer(OptimizerConfig(parallel=True)).run(base_inputs)
        assert serial.solutions == parallel.solutions
        assert serial.recommended_solution == parallel.recommended_solution

    def test_linear_search_matches_binary(self, base_inputs):
        """Test the search strategy does not change the candidates."""
        binary = ScenarioOptimizer(OptimizerConfig(parallel=False)).run(base_inputs)
        linear = ScenarioOptimizer(OptimizerConfig(parallel=False, search_method="linear")).run(base_inputs)
        assert binary.solutions == linear.solutions

    def test_cache_cleared_per_run(self, base_inputs, serial_config):
        """Test each run starts with an empty cache."""
        optimizer = ScenarioOptimizer(serial_config)
        optimizer.cache.set("stale", 1.0)
        optimizer.optimize(base_inputs, 52)
        assert "stale" not in optimizer.cache

    def test_out_of_range_advisor_index(self, base_inputs, serial_config):
        """Test an invalid advisor index falls back to the first candidate."""
        advisor = Mock(spec=AdvisoryChain)
        advisor.recommend.return_value = AdvisoryOutcome(Recommendation(99, "?"), "server")
        result = ScenarioOptimizer(serial_config, advisor=advisor).run(base_inputs)
        assert result.recommended_solution == result.solutions[0]

    def test_advisor_receives_effective_baseline(self, base_inputs, serial_config):
        """Test the request carries the sorted candidates and target age."""
        advisor = Mock(spec=AdvisoryChain)
        advisor.recommend.return_value = AdvisoryOutcome(Recommendation(0, "ok"), "server")
        result = ScenarioOptimizer(serial_config, advisor=advisor).run(base_inputs)

        request = advisor.recommend.call_args[0][0]
        assert request.baseline_fi_age == effective_baseline(result.baseline_fi_age)
        assert request.solutions == result.solutions
        assert request.preferences.target_age == 45


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

class TestOptimizationResult:
    """Tests for result helpers."""

    def test_payload_round_trip(self):
        """Test the camelCase payload restores the solution."""
        solution = OptimizationSolution(47, 10.0, 5.0, 52_500.0, 5)
        assert OptimizationSolution.from_payload(solution.to_payload()) == solution

    def test_summary_for_skip(self):
        """Test the summary of a skipped run."""
        result = OptimizationResult(baseline_fi_age=40, skip_optimization=True, skip_reason="done")
        text = result.summary()
        assert "Baseline FI age: 40" in text
        assert "Skipped: done" in text

    def test_summary_for_success(self, base_inputs, serial_config):
        """Test the summary names the recommendation."""
        result = ScenarioOptimizer(serial_config).run(base_inputs)
        text = result.summary()
        assert text.startswith("OptimizationResult(")
        assert "Recommended: FI at" in text
        assert "Source: fallback" in text
