"""
Pytest configuration and fixtures for FIOpt test suite.

Fixtures provide representative planning inputs (a typical saver, one who
is already on track, one who can never reach FI) and serial configs so
results are deterministic and quick.
"""

from typing import List

import pytest

from fiopt.advisory import AdvisoryRequest
from fiopt.cache import ComputationCache
from fiopt.config import AssumptionsConfig, OptimizerConfig
from fiopt.inputs import PlanningInputs
from fiopt.optimization import OptimizationSolution


# ---------------------------------------------------------------------------
# Inputs Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def base_inputs() -> PlanningInputs:
    """
    Typical saver.

    Age 30, ₹50,000/month expense and investment, generally healthy
    (max age 80), no existing corpus.
    """
    return PlanningInputs(
        current_age=30,
        monthly_expense=50_000,
        monthly_investment=50_000,
        health_status="generally_healthy",
    )


@pytest.fixture
def on_track_inputs() -> PlanningInputs:
    """Saver whose baseline FI age is well below the target age."""
    return PlanningInputs(
        current_age=30,
        monthly_expense=10_000,
        monthly_investment=100_000,
        health_status="generally_healthy",
    )


@pytest.fixture
def hopeless_inputs() -> PlanningInputs:
    """Investment far too small for the expense; FI is never reached."""
    return PlanningInputs(
        current_age=30,
        monthly_expense=1_000_000,
        monthly_investment=1_000,
        health_status="generally_healthy",
    )


@pytest.fixture
def inputs_with_corpus() -> PlanningInputs:
    """Saver with existing fixed-income and growth-asset corpora."""
    return PlanningInputs(
        current_age=35,
        monthly_expense=60_000,
        monthly_investment=40_000,
        health_status="very_healthy",
        existing_fixed_income_corpus=1_000_000,
        existing_growth_corpus=2_500_000,
    )


# ---------------------------------------------------------------------------
# Config Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def assumptions() -> AssumptionsConfig:
    """Default model assumptions."""
    return AssumptionsConfig()


@pytest.fixture
def serial_config() -> OptimizerConfig:
    """Default grids, phases evaluated in the calling thread."""
    return OptimizerConfig(parallel=False)


@pytest.fixture
def cache() -> ComputationCache:
    """Small cache for eviction tests."""
    return ComputationCache(capacity=10, eviction_fraction=0.2)


# ---------------------------------------------------------------------------
# Advisory Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def solutions() -> List[OptimizationSolution]:
    """Sorted candidates against a baseline of 52."""
    return [
        OptimizationSolution(fi_age=45, step_up_percent=10.0, sip_increase_percent=10.0,
                             new_monthly_sip=55_000, improvement_years=7),
        OptimizationSolution(fi_age=47, step_up_percent=10.0, sip_increase_percent=0.0,
                             new_monthly_sip=50_000, improvement_years=5),
        OptimizationSolution(fi_age=49, step_up_percent=5.0, sip_increase_percent=0.0,
                             new_monthly_sip=50_000, improvement_years=3),
        OptimizationSolution(fi_age=50, step_up_percent=0.0, sip_increase_percent=20.0,
                             new_monthly_sip=60_000, improvement_years=2),
    ]


@pytest.fixture
def advisory_request(solutions) -> AdvisoryRequest:
    """Request over the sample candidates."""
    return AdvisoryRequest(baseline_fi_age=52, solutions=tuple(solutions))
