"""
Unit tests for withdrawal module.

Tests:
- simulate_withdrawals: monthly recursion, no clamping, capped paid amounts
- WithdrawalSimulator.check_sustainability: 10% buffer rule
- max_sustainable_withdrawal: binary search on the starting withdrawal
- withdrawal_schedule: month-by-month table
"""

import numpy as np
import pytest

from fiopt.config import AssumptionsConfig
from fiopt.withdrawal import (
    SustainabilityCheck,
    WithdrawalSimulator,
    max_sustainable_withdrawal,
    simulate_withdrawals,
    withdrawal_schedule,
)


# ---------------------------------------------------------------------------
# simulate_withdrawals
# ---------------------------------------------------------------------------

class TestSimulateWithdrawals:
    """Tests for the withdrawal recursion."""

    def test_zero_withdrawal_grows_monotonically(self):
        """Test the balance only compounds when nothing is withdrawn."""
        result = simulate_withdrawals(100_000, 0, 0.08, 0.10, 5)
        assert result.final_balance == pytest.approx(100_000 * 1.1 ** 5)
        assert np.all(np.diff(result.yearly_balances) > 0)
        assert result.total_withdrawn == 0.0
        assert result.months_withdrawn == 0

    def test_yearly_balances_length(self):
        """Test one balance per simulated year."""
        result = simulate_withdrawals(1_000_000, 5_000, 0.08, 0.10, 20)
        assert len(result.yearly_balances) == 20
        assert result.yearly_balances[-1] == pytest.approx(result.final_balance)

    def test_depletion_goes_negative(self):
        """Test the final balance is not clamped at zero."""
        result = simulate_withdrawals(100_000, 50_000, 0.0, 0.10, 1)
        assert result.final_balance < 0
        assert result.depleted
        assert result.months_withdrawn == 3

    def test_total_withdrawn_capped_at_available(self):
        """Test the last payment is limited to what was left."""
        result = simulate_withdrawals(100_000, 50_000, 0.0, 0.10, 1)
        growth = 1.1 ** (1 / 12)
        balance = 100_000 * growth - 50_000
        balance = balance * growth - 50_000
        last = balance * growth
        assert result.total_withdrawn == pytest.approx(100_000 + last)

    def test_step_up_raises_withdrawals(self):
        """Test an annual step-up withdraws more in total."""
        flat = simulate_withdrawals(10_000_000, 50_000, 0.0, 0.10, 10)
        stepped = simulate_withdrawals(10_000_000, 50_000, 0.08, 0.10, 10)
        assert stepped.total_withdrawn > flat.total_withdrawn
        assert stepped.final_balance < flat.final_balance

    @pytest.mark.parametrize("corpus, years, rate", [(0, 10, 0.1), (-5, 10, 0.1),
                                                     (100_000, 0, 0.1), (100_000, 10, -1.0)])
    def test_degenerate_inputs(self, corpus, years, rate):
        """Test zero results for non-positive corpus/horizon or rate <= -100%."""
        result = simulate_withdrawals(corpus, 1_000, 0.08, rate, years)
        assert result.final_balance == 0.0
        assert result.total_withdrawn == 0.0


# ---------------------------------------------------------------------------
# Sustainability
# ---------------------------------------------------------------------------

class TestSustainability:
    """Tests for the 10% buffer rule."""

    @pytest.mark.parametrize("withdrawal", [0, 1_000, 1_000_000])
    def test_zero_corpus_never_sustainable(self, withdrawal):
        """Test a zero corpus always fails."""
        check = WithdrawalSimulator().check_sustainability(0, withdrawal, 30)
        assert check == SustainabilityCheck.unsustainable()

    def test_zero_years_never_sustainable(self):
        """Test a zero horizon always fails."""
        assert not WithdrawalSimulator().check_sustainability(1_000_000, 0, 0).sustainable

    def test_no_withdrawal_is_sustainable(self):
        """Test an untouched corpus passes and reports its growth."""
        check = WithdrawalSimulator().check_sustainability(1_000_000, 0, 2)
        assert check.sustainable
        assert check.final_corpus_percentage == pytest.approx(121.0)
        assert check.required_final_corpus == pytest.approx(100_000)

    def test_buffer_threshold(self):
        """Test the final balance is compared with buffer x starting corpus."""
        sim = WithdrawalSimulator()
        assert sim.check_sustainability(1_000_000, 0, 1, buffer=1.0).sustainable
        assert not sim.check_sustainability(1_000_000, 0, 1, buffer=1.2).sustainable

    def test_depleting_plan_unsustainable(self):
        """Test a plan that runs dry fails."""
        check = WithdrawalSimulator().check_sustainability(1_000_000, 100_000, 20)
        assert not check.sustainable
        assert check.final_corpus < 0

    def test_configured_buffer(self):
        """Test the buffer comes from assumptions."""
        strict = WithdrawalSimulator(AssumptionsConfig(sustainability_buffer=1.0))
        # withdrawals exceed returns from the first year
        check = strict.check_sustainability(10_000_000, 100_000, 30)
        assert not check.sustainable
        assert WithdrawalSimulator().check_sustainability(10_000_000, 10_000, 30).sustainable


# ---------------------------------------------------------------------------
# Derived tools
# ---------------------------------------------------------------------------

class TestMaxSustainableWithdrawal:
    """Tests for the maximum withdrawal search."""

    def test_result_is_within_precision(self):
        """Test the result keeps a non-negative balance and +20 does not."""
        best = max_sustainable_withdrawal(10_000_000, 25)
        assert best > 0
        assert simulate_withdrawals(10_000_000, best, 0.08, 0.10, 25).final_balance >= 0
        assert simulate_withdrawals(10_000_000, best + 20, 0.08, 0.10, 25).final_balance < 0

    @pytest.mark.parametrize("corpus, years", [(0, 10), (1_000_000, 0)])
    def test_degenerate_inputs(self, corpus, years):
        """Test zero for a non-positive corpus or horizon."""
        assert max_sustainable_withdrawal(corpus, years) == 0


class TestWithdrawalSchedule:
    """Tests for the month-by-month table."""

    def test_columns_and_length(self):
        """Test one row per month when the corpus survives."""
        table = withdrawal_schedule(10_000_000, 10_000, 2)
        assert list(table.columns) == [
            "month", "beginning_balance", "returns", "withdrawal", "ending_balance",
        ]
        assert len(table) == 24
        assert table["withdrawal"].iloc[12] == pytest.approx(10_800)

    def test_stops_at_depletion(self):
        """Test the table ends the month the corpus runs out."""
        table = withdrawal_schedule(100_000, 50_000, 1, step_up_rate=0.0)
        assert len(table) == 3
        assert table["ending_balance"].iloc[-1] == 0.0
        assert table["withdrawal"].iloc[-1] < 50_000

    def test_empty_for_zero_corpus(self):
        """Test an empty table for a zero corpus."""
        assert withdrawal_schedule(0, 1_000, 10).empty
