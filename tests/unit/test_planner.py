"""
Unit tests for planner module.

Tests:
- Baseline yearly breakdown rows and rounding
- Plan messages for each outcome
- Agreement with FIAgeSolver
- End-to-end run
"""

import math

import pandas as pd
import pytest

from fiopt.host import ConcurrencyHost
from fiopt.inputs import PlanningInputs
from fiopt.planner import FinancialIndependencePlanner, PlanReport
from fiopt.solver import FIAgeSolver


class TestPlanBreakdown:
    """Tests for the yearly breakdown."""

    def test_one_row_per_age(self, base_inputs):
        """Test rows span current age to max age inclusive."""
        plan = FinancialIndependencePlanner().plan(base_inputs)
        ages = [row.age for row in plan.yearly_breakdown]
        assert ages == list(range(30, 81))
        assert plan.max_age == 80

    def test_first_row(self, base_inputs):
        """Test the current-age row has no corpus and today's expense."""
        row = FinancialIndependencePlanner().plan(base_inputs).yearly_breakdown[0]
        assert row.years_from_now == 0
        assert row.corpus == 0
        assert row.inflation_adjusted_expense == 50_000
        assert row.target_withdrawal == 62_500
        assert row.accumulation_rate == pytest.approx(0.12)
        assert not row.sustainable

    def test_last_row_has_no_horizon(self, base_inputs):
        """Test the max-age row is never sustainable."""
        row = FinancialIndependencePlanner().plan(base_inputs).yearly_breakdown[-1]
        assert row.years_in_fi == 0
        assert not row.sustainable
        assert row.final_corpus == 0

    def test_rates_switch_at_threshold(self, base_inputs):
        """Test the accumulation rate column."""
        rows = FinancialIndependencePlanner().plan(base_inputs).yearly_breakdown
        assert rows[6].accumulation_rate == pytest.approx(0.12)
        assert rows[7].accumulation_rate == pytest.approx(0.14)

    def test_rounded_values(self, base_inputs):
        """Test amounts are whole numbers."""
        for row in FinancialIndependencePlanner().plan(base_inputs).yearly_breakdown:
            assert row.corpus == int(row.corpus)
            assert row.target_withdrawal == int(row.target_withdrawal)

    def test_existing_corpus_included(self, inputs_with_corpus):
        """Test existing assets appear in the first row."""
        row = FinancialIndependencePlanner().plan(inputs_with_corpus).yearly_breakdown[0]
        assert row.corpus == 3_500_000

    def test_to_frame(self, base_inputs):
        """Test DataFrame export."""
        frame = FinancialIndependencePlanner().plan(base_inputs).to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert len(frame) == 51
        assert {"age", "corpus", "sustainable", "final_corpus_percentage"} <= set(frame.columns)


class TestPlanOutcome:
    """Tests for FI age and messages."""

    def test_matches_solver(self, base_inputs, inputs_with_corpus):
        """Test the breakdown's FI age agrees with the search."""
        planner = FinancialIndependencePlanner()
        solver = FIAgeSolver()
        for inputs in (base_inputs, inputs_with_corpus):
            assert planner.plan(inputs).earliest_fi_age == solver.solve_for(inputs)

    def test_fi_message(self, base_inputs):
        """Test the FI-in-N-years message."""
        plan = FinancialIndependencePlanner().plan(base_inputs)
        assert plan.can_be_fi
        years = plan.earliest_fi_age - 30
        assert plan.message == (
            f"You can be financially independent at age {plan.earliest_fi_age} "
            f"(in {years} years). Keep investing ₹50,000 per month to achieve this goal."
        )

    def test_immediate_message(self):
        """Test the immediate-FI message."""
        inputs = PlanningInputs(40, 10_000, 10_000, existing_growth_corpus=500_000_000)
        plan = FinancialIndependencePlanner().plan(inputs)
        assert plan.earliest_fi_age == 40
        assert plan.message.startswith(
            "Great news! You can be financially independent immediately at age 40."
        )

    def test_unreachable_message(self, hopeless_inputs):
        """Test the cannot-achieve message."""
        plan = FinancialIndependencePlanner().plan(hopeless_inputs)
        assert not plan.can_be_fi
        assert plan.earliest_fi_age is None
        assert not plan.sustainable_after_cap
        assert "₹10,00,000/month" in plan.message
        assert "cannot achieve financial independence before age 80" in plan.message

    def test_after_cap_message(self):
        """Test sustainability reached only after 60."""
        inputs = PlanningInputs(55, 50_000, 40_000, health_status="needs_improvement",
                                existing_growth_corpus=3_000_000)
        plan = FinancialIndependencePlanner().plan(inputs)
        if plan.sustainable_after_cap:
            assert plan.earliest_fi_age is None
            assert plan.message == "Your current plan doesn't reach financial independence before age 60."

    def test_past_max_age(self):
        """Test an empty plan when already at max age."""
        inputs = PlanningInputs(70, 50_000, 50_000, health_status="needs_improvement")
        plan = FinancialIndependencePlanner().plan(inputs)
        assert plan.yearly_breakdown == ()
        assert plan.message == (
            "Your current age (70) is at or exceeds the estimated max age (70). "
            "Unable to plan for financial independence."
        )

    def test_invalid_inputs(self):
        """Test invalid inputs give an empty plan."""
        plan = FinancialIndependencePlanner().plan(PlanningInputs(30, 50_000, 0))
        assert plan.yearly_breakdown == ()
        assert not plan.can_be_fi

    def test_to_dict(self, base_inputs):
        """Test the serializable form."""
        data = FinancialIndependencePlanner().plan(base_inputs).to_dict()
        assert data["current_age"] == 30
        assert len(data["yearly_breakdown"]) == 51
        assert data["yearly_breakdown"][0]["age"] == 30


class TestNumericOverflow:
    """Tests for amounts too large to project."""

    def test_overflowing_existing_corpus(self):
        """Test a lump sum that overflows when grown degrades instead of raising."""
        inputs = PlanningInputs(30, 50_000, 50_000, existing_growth_corpus=1e308)
        plan = FinancialIndependencePlanner().plan(inputs)

        assert len(plan.yearly_breakdown) == 51
        grown = plan.yearly_breakdown[1]
        assert grown.corpus == 0.0
        assert not grown.sustainable
        for row in plan.yearly_breakdown:
            values = (row.corpus, row.final_corpus, row.final_corpus_percentage, row.target_withdrawal)
            assert all(math.isfinite(v) for v in values)

    def test_overflowing_investment(self):
        """Test a huge but finite monthly investment degrades instead of raising."""
        inputs = PlanningInputs(30, 50_000, 1e306)
        assert inputs.is_valid
        plan = FinancialIndependencePlanner().plan(inputs)
        assert all(math.isfinite(row.corpus) for row in plan.yearly_breakdown)
        assert plan.message

    def test_overflow_not_sustainable_in_solver(self):
        """Test the solver never counts an overflowed corpus as sustainable."""
        inputs = PlanningInputs(30, 50_000, 50_000, existing_growth_corpus=1e308)
        evaluated = FIAgeSolver().evaluate(
            31, 50_000, 50_000, 30, 80, existing_growth=inputs.existing_growth_corpus
        )
        assert math.isinf(evaluated.corpus)
        assert not evaluated.sustainable


class TestPlannerRun:
    """Tests for end-to-end runs."""

    def test_run_returns_report(self, base_inputs):
        """Test plan and optimization share one baseline."""
        report = FinancialIndependencePlanner().run(base_inputs)
        assert isinstance(report, PlanReport)
        assert report.optimization.baseline_fi_age == report.plan.earliest_fi_age
        assert report.inputs is base_inputs

    def test_fresh_optimizer_per_run(self):
        """Test each run builds its own optimizer and cache."""
        planner = FinancialIndependencePlanner()
        assert planner.make_optimizer().cache is not planner.make_optimizer().cache

    def test_run_on_host_matches_direct(self, base_inputs, serial_config):
        """Test a hosted run gives the same report as a direct one."""
        planner = FinancialIndependencePlanner(optimizer_config=serial_config)
        direct = planner.run(base_inputs)
        with ConcurrencyHost(planner.make_optimizer, timeout=30) as host:
            hosted = planner.run(base_inputs, host=host)

        assert hosted.plan == direct.plan
        assert hosted.optimization == direct.optimization
        assert host.current_run_id == 1
