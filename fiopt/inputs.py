"""
Planning inputs for FIOpt.

Purpose
-------
Defines the immutable record a projection run starts from, and the closed
health-status enumeration that fixes the planning horizon (max age).

The engine never raises on bad inputs: ``PlanningInputs`` stores whatever
it is given, ``is_valid`` reports whether a projection is meaningful, and
unknown health statuses resolve to ``HealthStatus.GENERALLY_HEALTHY``.

Example
-------
>>> inputs = PlanningInputs(
...     current_age=30,
...     monthly_expense=50_000,
...     monthly_investment=50_000,
...     health_status="very_healthy",
... )
>>> inputs.max_age
90
>>> PlanningInputs(30, 50_000, 50_000, health_status="unknown").max_age
80
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Union

from . import constants as C
from .utils import is_positive_number

__all__ = [
    "HealthStatus",
    "PlanningInputs",
]


class HealthStatus(str, Enum):
    """Self-reported health, mapped to an end-of-life planning age."""

    NEEDS_IMPROVEMENT = "needs_improvement"
    GENERALLY_HEALTHY = "generally_healthy"
    VERY_HEALTHY = "very_healthy"

    @classmethod
    def from_value(cls, value: Union[str, "HealthStatus", None]) -> "HealthStatus":
        """
        Total mapping from any value to a status.

        Unrecognized values (including None) resolve to GENERALLY_HEALTHY,
        whose max age equals ``DEFAULT_MAX_AGE``.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERALLY_HEALTHY

    @property
    def max_age(self) -> int:
        return C.MAX_AGE_BY_HEALTH.get(self.value, C.DEFAULT_MAX_AGE)


@dataclass(frozen=True)
class PlanningInputs:
    """
    Inputs of one projection/optimization run.

    Parameters
    ----------
    current_age : int
        Age today (years, > 0).
    monthly_expense : float
        Today's monthly expense (> 0).
    monthly_investment : float
        Current monthly investment (> 0).
    health_status : HealthStatus or str, default "generally_healthy"
        Normalized through ``HealthStatus.from_value``.
    existing_fixed_income_corpus : float, default 0.0
        Existing deposit-like lump sum (>= 0).
    existing_growth_corpus : float, default 0.0
        Existing equity/mutual-fund lump sum (>= 0).
    """
    current_age: int
    monthly_expense: float
    monthly_investment: float
    health_status: Union[HealthStatus, str] = HealthStatus.GENERALLY_HEALTHY
    existing_fixed_income_corpus: float = 0.0
    existing_growth_corpus: float = 0.0

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, "health_status", HealthStatus.from_value(self.health_status))

    @property
    def max_age(self) -> int:
        """End-of-life age implied by the health status."""
        return self.health_status.max_age

    @property
    def is_valid(self) -> bool:
        """Positive age/amounts and non-negative existing corpora."""
        if not is_positive_number(self.current_age):
            return False
        if not (is_positive_number(self.monthly_expense) and is_positive_number(self.monthly_investment)):
            return False
        for corpus in (self.existing_fixed_income_corpus, self.existing_growth_corpus):
            if isinstance(corpus, bool) or not isinstance(corpus, (int, float)):
                return False
            if not math.isfinite(corpus) or corpus < 0:
                return False
        return True

    def with_investment(self, monthly_investment: float) -> PlanningInputs:
        """Copy with a different monthly investment."""
        return replace(self, monthly_investment=monthly_investment)
