"""
Unit tests for projection module.

Tests:
- project_contributions: single-rate monthly recursion with step-up
- CorpusProjector: two-regime rule and memoization
- ExistingAssetGrower: lump-sum compounding
- withdrawal_target: inflation, lifestyle buffer and tax gross-up
"""

import pytest

from fiopt.cache import ComputationCache
from fiopt.config import AssumptionsConfig
from fiopt.projection import (
    CorpusProjector,
    ExistingAssetGrower,
    inflation_adjusted_expense,
    project_contributions,
    withdrawal_target,
)


# ---------------------------------------------------------------------------
# project_contributions
# ---------------------------------------------------------------------------

class TestProjectContributions:
    """Tests for the single-rate recursion."""

    def test_one_year_invested_amount(self):
        """Test 12 contributions are counted without step-up."""
        result = project_contributions(1_000, 0.12, 1)
        assert result.invested_amount == pytest.approx(12_000)
        assert result.total_value > result.invested_amount

    def test_zero_rate_equals_invested(self):
        """Test value equals contributions at a zero rate."""
        result = project_contributions(1_000, 0.0, 3)
        assert result.total_value == pytest.approx(36_000)

    def test_step_up_applied_at_year_boundaries(self):
        """Test step-up applies after month 12 but not after the final month."""
        result = project_contributions(1_000, 0.0, 2, step_up_percent=10)
        assert result.invested_amount == pytest.approx(12_000 + 13_200)

    def test_contributions_grow_with_interest(self):
        """Test one contribution compounds for one month (end of month value)."""
        result = project_contributions(1_000, 0.12, 1 / 12)
        assert result.total_value == pytest.approx(1_000 * 1.12 ** (1 / 12))

    @pytest.mark.parametrize("monthly, years", [(0, 10), (-500, 10), (1_000, 0), (1_000, -2)])
    def test_degenerate_inputs_project_to_zero(self, monthly, years):
        """Test non-positive contribution or horizon yields zero."""
        result = project_contributions(monthly, 0.12, years)
        assert result.total_value == 0.0
        assert result.invested_amount == 0.0


# ---------------------------------------------------------------------------
# CorpusProjector
# ---------------------------------------------------------------------------

class TestCorpusProjector:
    """Tests for the two-regime projection."""

    @pytest.mark.parametrize("monthly, years", [(0, 10), (-1, 10), (10_000, 0), (10_000, -5)])
    def test_degenerate_inputs(self, monthly, years):
        """Test zero value and zero invested amount for Y<=0 or C<=0."""
        result = CorpusProjector().project(monthly, years)
        assert result.total_value == 0.0
        assert result.invested_amount == 0.0

    def test_short_horizon_uses_short_term_rate(self):
        """Test horizons below 7 years use 12% throughout."""
        projected = CorpusProjector().project(10_000, 5, step_up_percent=5)
        expected = project_contributions(10_000, 0.12, 5, step_up_percent=5)
        assert projected.total_value == pytest.approx(expected.total_value)

    def test_regime_boundary_continuity(self):
        """Test exactly 7 years equals a pure short-term projection."""
        projected = CorpusProjector().project(10_000, 7, 0)
        expected = project_contributions(10_000, 0.12, 7)
        assert projected.total_value == pytest.approx(expected.total_value)

    def test_long_horizon_composition(self):
        """Test year-7 value compounds at 14% plus a stepped-up 14% stream."""
        monthly, years, step_up = 10_000, 12, 5
        first = project_contributions(monthly, 0.12, 7, step_up)
        rest = project_contributions(monthly * 1.05 ** 7, 0.14, 5, step_up)
        expected = first.total_value * 1.14 ** 5 + rest.total_value

        result = CorpusProjector().project(monthly, years, step_up)
        assert result.total_value == pytest.approx(expected)
        assert result.invested_amount == pytest.approx(first.invested_amount + rest.invested_amount)

    def test_invested_amount_without_step_up(self):
        """Test invested amount is 12 contributions per year across regimes."""
        result = CorpusProjector().project(10_000, 10)
        assert result.invested_amount == pytest.approx(10_000 * 120)
        assert result.estimated_returns > 0

    def test_step_up_increases_value(self):
        """Test a step-up never lowers the projection."""
        projector = CorpusProjector()
        assert projector.total_value(10_000, 15, 10) > projector.total_value(10_000, 15, 0)

    def test_rate_for_horizon(self):
        """Test the rate in force switches at the threshold."""
        projector = CorpusProjector()
        assert projector.rate_for_horizon(6) == pytest.approx(0.12)
        assert projector.rate_for_horizon(7) == pytest.approx(0.14)

    def test_custom_assumptions(self):
        """Test configured rates flow through."""
        flat = AssumptionsConfig(short_term_return_rate=0.0, long_term_return_rate=0.0)
        assert CorpusProjector(flat).total_value(1_000, 10) == pytest.approx(120_000)

    def test_total_value_memoized(self):
        """Test repeated projections are served from the cache."""
        cache = ComputationCache()
        projector = CorpusProjector(cache=cache)

        first = projector.total_value(25_000, 11, 5)
        second = projector.total_value(25_000, 11, 5)

        assert first == second
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.hits == 1
        assert ComputationCache.make_key(25_000, 11, 5) in cache

    def test_degenerate_inputs_skip_cache(self):
        """Test zero results are not stored."""
        cache = ComputationCache()
        assert CorpusProjector(cache=cache).total_value(0, 10) == 0.0
        assert len(cache) == 0


# ---------------------------------------------------------------------------
# ExistingAssetGrower
# ---------------------------------------------------------------------------

class TestExistingAssetGrower:
    """Tests for lump-sum growth."""

    def test_fixed_income_rate(self):
        """Test fixed-income corpus grows at 7%."""
        assert ExistingAssetGrower().grow(100_000, 0, 1) == pytest.approx(107_000)

    def test_growth_asset_rate(self):
        """Test growth corpus compounds annually at 12%."""
        assert ExistingAssetGrower().grow(0, 100_000, 2) == pytest.approx(125_440)

    def test_sum_of_classes(self):
        """Test both classes are added."""
        grower = ExistingAssetGrower()
        combined = grower.grow(100_000, 200_000, 5)
        assert combined == pytest.approx(grower.grow(100_000, 0, 5) + grower.grow(0, 200_000, 5))

    @pytest.mark.parametrize("years", [0, -3])
    def test_non_positive_years_returns_sum(self, years):
        """Test no growth for a non-positive horizon."""
        assert ExistingAssetGrower().grow(100_000, 50_000, years) == pytest.approx(150_000)

    def test_missing_corpus_treated_as_zero(self):
        """Test None corpora count as zero."""
        assert ExistingAssetGrower().grow(None, None, 10) == 0.0


# ---------------------------------------------------------------------------
# Withdrawal sizing
# ---------------------------------------------------------------------------

class TestWithdrawalTarget:
    """Tests for inflation and gross-up."""

    def test_inflation(self):
        """Test 7% annual inflation."""
        assert inflation_adjusted_expense(100, 1) == pytest.approx(107)
        assert inflation_adjusted_expense(100, 0) == pytest.approx(100)

    def test_buffer_and_gross_up(self):
        """Test 25% lifestyle buffer and 12.5% LTCG gross-up."""
        target = withdrawal_target(50_000, 0)
        assert target.inflation_adjusted_expense == pytest.approx(50_000)
        assert target.target_withdrawal == pytest.approx(62_500)
        assert target.gross_withdrawal == pytest.approx(62_500 / 0.875)

    def test_inflated_target(self):
        """Test all three amounts scale with inflation."""
        target = withdrawal_target(50_000, 10)
        factor = 1.07 ** 10
        assert target.gross_withdrawal == pytest.approx(50_000 * factor * 1.25 / 0.875)
