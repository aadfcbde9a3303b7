"""
Type definitions for FIOpt.

Purpose
-------
Provides TypedDict definitions for the structured dictionaries exchanged
with advisory services and written by ``fiopt.serialization``. Key names
of the advisory payloads follow the camelCase wire contract shared with
the remote recommendation endpoint.

Type Definitions
----------------
SolutionPayloadDict
    One optimization candidate on the wire
PreferencesDict
    Ranking preferences sent with an advisory request
AdvisoryRequestDict
    Request body: {"baselineFiAge", "solutions", "preferences"}
RecommendationDict
    Advisory answer: {"recommendedIndex", "explanation", "alternatives", "difficulty"}
YearlyBreakdownDict
    One row of the baseline plan
"""

from typing import List
from typing_extensions import TypedDict, NotRequired

__all__ = [
    "SolutionPayloadDict",
    "PreferencesDict",
    "AdvisoryRequestDict",
    "RecommendationDict",
    "YearlyBreakdownDict",
]


class SolutionPayloadDict(TypedDict):
    """
    Optimization candidate as sent to an advisory service.

    Attributes
    ----------
    fiAge : int
        Earliest sustainable FI age under this scenario.
    stepUpPercent : float
        Annual contribution step-up (percent).
    sipIncreasePercent : float
        One-time monthly investment increase (percent).
    newMonthlySip : float
        Monthly investment after the increase.
    improvementYears : int
        Years gained relative to the effective baseline.
    """

    fiAge: int
    stepUpPercent: float
    sipIncreasePercent: float
    newMonthlySip: float
    improvementYears: int


class PreferencesDict(TypedDict):
    """Ranking preferences sent alongside the candidates."""

    preferLowerStepUp: bool
    preferLowerSipIncrease: bool
    targetAge: int


class AdvisoryRequestDict(TypedDict):
    """
    Request body for a remote advisory call.

    Examples
    --------
    >>> request: AdvisoryRequestDict = {
    ...     "baselineFiAge": 52,
    ...     "solutions": [],
    ...     "preferences": {"preferLowerStepUp": True,
    ...                     "preferLowerSipIncrease": True,
    ...                     "targetAge": 45},
    ... }
    """

    baselineFiAge: int
    solutions: List[SolutionPayloadDict]
    preferences: PreferencesDict


class RecommendationDict(TypedDict):
    """Advisory answer. Only ``recommendedIndex`` is mandatory on the wire."""

    recommendedIndex: int
    explanation: NotRequired[str]
    alternatives: NotRequired[List[str]]
    difficulty: NotRequired[str]


class YearlyBreakdownDict(TypedDict):
    """One serialized row of the baseline plan."""

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
