"""
Serialization module for FIOpt persistence.

Purpose
-------
JSON save/load for planning inputs and optimization results, plus a
combined report (plan + optimization) written by the CLI.

Design Principles
-----------------
- Type-safe: inputs are validated through ``PlanningInputsConfig``
- Human-readable: indented JSON, snake_case keys (solutions keep the
  camelCase advisory wire format)
- Versioned: every document carries ``schema_version``; a mismatch warns

Example
-------
>>> from pathlib import Path
>>> save_inputs(inputs, Path("inputs.json"))
>>> loaded = load_inputs(Path("inputs.json"))
>>> save_optimization_result(result, Path("result.json"))
>>> restored = load_optimization_result(Path("result.json"))
"""

from __future__ import annotations

import json
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError as PydanticValidationError

from .advisory import Difficulty, Recommendation
from .config import PlanningInputsConfig
from .exceptions import ValidationError
from .inputs import PlanningInputs
from .optimization import OptimizationResult, OptimizationSolution

if TYPE_CHECKING:
    from .planner import PlanReport

__all__ = [
    "SCHEMA_VERSION",
    "inputs_to_dict",
    "inputs_from_dict",
    "save_inputs",
    "load_inputs",
    "result_to_dict",
    "result_from_dict",
    "save_optimization_result",
    "load_optimization_result",
    "report_to_dict",
    "save_report",
]


# ---------------------------------------------------------------------------
# Schema Version
# ---------------------------------------------------------------------------

SCHEMA_VERSION = "0.1.0"


def _check_schema(data: Dict[str, Any], what: str) -> None:
    schema_version = data.get("schema_version", "0.0.0")
    if schema_version != SCHEMA_VERSION:
        warnings.warn(
            f"{what} schema version {schema_version} differs from current "
            f"version {SCHEMA_VERSION}. Loading may fail or produce unexpected results.",
            UserWarning,
        )


def _write_json(data: Dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# ---------------------------------------------------------------------------
# Planning inputs
# ---------------------------------------------------------------------------

def inputs_to_dict(inputs: PlanningInputs) -> Dict[str, Any]:
    """PlanningInputs as a plain dict (health status by value)."""
    return {
        "current_age": inputs.current_age,
        "monthly_expense": inputs.monthly_expense,
        "monthly_investment": inputs.monthly_investment,
        "health_status": inputs.health_status.value,
        "existing_fixed_income_corpus": inputs.existing_fixed_income_corpus,
        "existing_growth_corpus": inputs.existing_growth_corpus,
    }


def inputs_from_dict(data: Dict[str, Any]) -> PlanningInputs:
    """
    Validate and build PlanningInputs.

    Raises
    ------
    ValidationError
        If a field is missing or outside the accepted limits.
    """
    fields = {k: v for k, v in data.items() if k != "schema_version"}
    try:
        config = PlanningInputsConfig.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid planning inputs: {e}") from e
    return config.to_inputs()


def save_inputs(inputs: PlanningInputs, path: Path) -> None:
    data = {"schema_version": SCHEMA_VERSION, **inputs_to_dict(inputs)}
    _write_json(data, path)


def load_inputs(path: Path) -> PlanningInputs:
    data = _read_json(path)
    _check_schema(data, "Inputs")
    return inputs_from_dict(data)


# ---------------------------------------------------------------------------
# Optimization results
# ---------------------------------------------------------------------------

def _solution_or_none(payload: Optional[Dict[str, Any]]) -> Optional[OptimizationSolution]:
    return OptimizationSolution.from_payload(payload) if payload else None


def result_to_dict(result: OptimizationResult) -> Dict[str, Any]:
    """OptimizationResult as a JSON-ready dict."""
    return {
        "baseline_fi_age": result.baseline_fi_age,
        "skip_optimization": result.skip_optimization,
        "skip_reason": result.skip_reason,
        "error": result.error,
        "recommendation_source": result.recommendation_source,
        "baseline_solution": (
            result.baseline_solution.to_payload() if result.baseline_solution else None
        ),
        "solutions": [s.to_payload() for s in result.solutions],
        "recommended_solution": (
            result.recommended_solution.to_payload() if result.recommended_solution else None
        ),
        "recommendation": result.recommendation.to_dict() if result.recommendation else None,
    }


def result_from_dict(data: Dict[str, Any]) -> OptimizationResult:
    recommendation = None
    rec = data.get("recommendation")
    if rec:
        recommendation = Recommendation(
            recommended_index=int(rec["recommendedIndex"]),
            explanation=rec.get("explanation", ""),
            alternatives=tuple(rec.get("alternatives", ())),
            difficulty=Difficulty.from_value(rec.get("difficulty")) or Difficulty.EASY,
        )

    return OptimizationResult(
        baseline_fi_age=data.get("baseline_fi_age"),
        solutions=tuple(OptimizationSolution.from_payload(s) for s in data.get("solutions", [])),
        recommended_solution=_solution_or_none(data.get("recommended_solution")),
        recommendation=recommendation,
        skip_optimization=bool(data.get("skip_optimization", False)),
        skip_reason=data.get("skip_reason"),
        error=data.get("error"),
        recommendation_source=data.get("recommendation_source"),
        baseline_solution=_solution_or_none(data.get("baseline_solution")),
    )


def save_optimization_result(result: OptimizationResult, path: Path) -> None:
    """
    Save OptimizationResult to a JSON file.

    Examples
    --------
    >>> save_optimization_result(result, Path("optimization.json"))
    """
    _write_json({"schema_version": SCHEMA_VERSION, **result_to_dict(result)}, path)


def load_optimization_result(path: Path) -> OptimizationResult:
    data = _read_json(path)
    _check_schema(data, "Optimization result")
    return result_from_dict(data)


# ---------------------------------------------------------------------------
# Full report
# ---------------------------------------------------------------------------

def report_to_dict(report: PlanReport) -> Dict[str, Any]:
    return {
        "schema_version": SCHEMA_VERSION,
        "inputs": inputs_to_dict(report.inputs),
        "plan": report.plan.to_dict(),
        "optimization": result_to_dict(report.optimization),
    }


def save_report(report: PlanReport, path: Path) -> None:
    """Write inputs, baseline plan and optimization to one JSON file."""
    _write_json(report_to_dict(report), path)
