"""
Recommendation (advisory) layer for FIOpt.

Purpose
-------
Picks one candidate out of the optimizer's improving scenarios and explains
the choice. Remote advisors (a recommendation endpoint, an LLM via
OpenRouter) are optional: they are tried in priority order, each under a
bounded timeout, and the deterministic ``FallbackScorer`` always closes the
chain. Any remote failure (network error, timeout, HTTP error, unparsable
payload, out-of-range index) is logged and treated identically.

Scoring Framework
-----------------
For a candidate with FI age f, step-up s (%), investment increase i (%):

    score = 5·(baseline - f) - 3·s - 2·i + 20·[f ≤ target_age]

The highest score wins; ties go to the earliest candidate in the
(already sorted) list.

Difficulty
----------
- Easy:       (s ≤ 5 and i = 0) or (s = 0 and i ≤ 10)
- Aggressive: (s ≥ 10 and i ≥ 10) or s > 10 or i > 15
- Moderate:   otherwise

Key components
--------------
- Difficulty, classify_difficulty
- Recommendation, AdvisoryPreferences, AdvisoryRequest
- FallbackScorer: deterministic local ranking
- AdvisoryProvider (ABC) with LocalAdvisoryProvider,
  ServerAdvisoryProvider and OpenRouterAdvisoryProvider
- AdvisoryChain: prioritized providers with the local scorer last

Example
-------
>>> chain = AdvisoryChain()              # local scoring only
>>> outcome = chain.recommend(request)
>>> outcome.source
'fallback'
"""

from __future__ import annotations

import concurrent.futures
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING

import requests
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from . import constants as C
from .config import AdvisoryConfig
from .exceptions import (
    AdvisoryError,
    AdvisoryUnavailableError,
    ConfigurationError,
    MalformedAdvisoryResponseError,
)
from .types import AdvisoryRequestDict

if TYPE_CHECKING:
    from .optimization import OptimizationSolution

__all__ = [
    "Difficulty",
    "classify_difficulty",
    "Recommendation",
    "AdvisoryPreferences",
    "AdvisoryRequest",
    "AdvisoryOutcome",
    "FallbackScorer",
    "AdvisoryProvider",
    "LocalAdvisoryProvider",
    "ServerAdvisoryProvider",
    "OpenRouterAdvisoryProvider",
    "AdvisoryChain",
    "build_prompt",
    "parse_advisory_reply",
]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Difficulty
# ---------------------------------------------------------------------------

class Difficulty(str, Enum):
    """Effort needed to adopt a recommended change."""

    EASY = "Easy"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"

    @classmethod
    def from_value(cls, value: object) -> Optional["Difficulty"]:
        """Parse a wire value; None when unrecognized."""
        if isinstance(value, cls):
            return value
        for member in cls:
            if isinstance(value, str) and value.strip().lower() == member.value.lower():
                return member
        return None


def classify_difficulty(step_up_percent: float, increase_percent: float) -> Difficulty:
    """
    Difficulty of a (step-up %, investment increase %) change.

    Examples
    --------
    >>> classify_difficulty(5, 0)
    <Difficulty.EASY: 'Easy'>
    >>> classify_difficulty(12, 12).value
    'Aggressive'
    >>> classify_difficulty(7, 7).value
    'Moderate'
    """
    if (step_up_percent <= 5 and increase_percent == 0) or (
        step_up_percent == 0 and increase_percent <= 10
    ):
        return Difficulty.EASY
    if (
        (step_up_percent >= 10 and increase_percent >= 10)
        or step_up_percent > 10
        or increase_percent > 15
    ):
        return Difficulty.AGGRESSIVE
    return Difficulty.MODERATE


# ---------------------------------------------------------------------------
# Request / response types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recommendation:
    """
    Chosen candidate and its explanation.

    Attributes
    ----------
    recommended_index : int
        Index into the candidate list; -1 when there were no candidates.
    explanation : str
        One-sentence rationale.
    alternatives : tuple of str
        Up to two summaries of the next-best candidates.
    difficulty : Difficulty
    """
    recommended_index: int
    explanation: str
    alternatives: Tuple[str, ...] = ()
    difficulty: Difficulty = Difficulty.EASY

    def to_dict(self) -> dict:
        return {
            "recommendedIndex": self.recommended_index,
            "explanation": self.explanation,
            "alternatives": list(self.alternatives),
            "difficulty": self.difficulty.value,
        }


@dataclass(frozen=True)
class AdvisoryPreferences:
    """Ranking preferences; fixed in practice, explicit for remote advisors."""
    prefer_lower_step_up: bool = True
    prefer_lower_increase: bool = True
    target_age: int = C.TARGET_FI_AGE


@dataclass(frozen=True)
class AdvisoryRequest:
    """Baseline plus the sorted, strictly-improving candidates."""
    baseline_fi_age: int
    solutions: Tuple["OptimizationSolution", ...]
    preferences: AdvisoryPreferences = field(default_factory=AdvisoryPreferences)

    def to_payload(self) -> AdvisoryRequestDict:
        """camelCase request body shared with the remote endpoint."""
        return {
            "baselineFiAge": self.baseline_fi_age,
            "solutions": [s.to_payload() for s in self.solutions],
            "preferences": {
                "preferLowerStepUp": self.preferences.prefer_lower_step_up,
                "preferLowerSipIncrease": self.preferences.prefer_lower_increase,
                "targetAge": self.preferences.target_age,
            },
        }


@dataclass(frozen=True)
class AdvisoryOutcome:
    """Recommendation plus the name of the provider that produced it."""
    recommendation: Recommendation
    source: str


# ---------------------------------------------------------------------------
# Local scorer
# ---------------------------------------------------------------------------

def _describe_alternative(solution: "OptimizationSolution") -> str:
    if solution.step_up_percent == 0 and solution.sip_increase_percent > 0:
        return (f"{solution.sip_increase_percent:g}% SIP increase alone reaches FI "
                f"at {solution.fi_age}")
    if solution.sip_increase_percent == 0 and solution.step_up_percent > 0:
        return f"{solution.step_up_percent:g}% step-up alone reaches FI at {solution.fi_age}"
    return (f"{solution.step_up_percent:g}% step-up + {solution.sip_increase_percent:g}% "
            f"SIP increase reaches FI at {solution.fi_age}")


class FallbackScorer:
    """
    Deterministic weighted ranking of candidates.

    Parameters
    ----------
    fi_age_weight : float, default 5
        Points per year gained over the baseline.
    step_up_penalty : float, default 3
        Points lost per step-up percentage point.
    increase_penalty : float, default 2
        Points lost per investment-increase percentage point.
    target_bonus : float, default 20
        Bonus when the FI age is at or below the target age.
    """

    def __init__(
        self,
        fi_age_weight: float = 5.0,
        step_up_penalty: float = 3.0,
        increase_penalty: float = 2.0,
        target_bonus: float = 20.0,
    ):
        self.fi_age_weight = fi_age_weight
        self.step_up_penalty = step_up_penalty
        self.increase_penalty = increase_penalty
        self.target_bonus = target_bonus

    def score(self, solution: "OptimizationSolution", baseline_fi_age: int, target_age: int) -> float:
        score = self.fi_age_weight * (baseline_fi_age - solution.fi_age)
        score -= self.step_up_penalty * solution.step_up_percent
        score -= self.increase_penalty * solution.sip_increase_percent
        if solution.fi_age <= target_age:
            score += self.target_bonus
        return score

    def rank(self, request: AdvisoryRequest) -> List[Tuple[int, float]]:
        """(index, score) pairs, best first; ties keep input order."""
        target = request.preferences.target_age
        scored = [
            (index, self.score(solution, request.baseline_fi_age, target))
            for index, solution in enumerate(request.solutions)
        ]
        return sorted(scored, key=lambda pair: -pair[1])

    def recommend(self, request: AdvisoryRequest) -> Recommendation:
        if not request.solutions:
            return Recommendation(
                recommended_index=-1,
                explanation="No optimization solutions available.",
            )

        ranked = self.rank(request)
        best_index = ranked[0][0]
        best = request.solutions[best_index]
        target = request.preferences.target_age

        alternatives = []
        if len(ranked) > 1:
            alternatives.append(_describe_alternative(request.solutions[ranked[1][0]]))
        if len(ranked) > 2:
            third = request.solutions[ranked[2][0]]
            alternatives.append(
                f"Alternative: FI at {third.fi_age} with {third.step_up_percent:g}% step-up "
                f"and {third.sip_increase_percent:g}% SIP increase"
            )

        if best.fi_age <= target:
            explanation = (
                f"This plan reaches your target FI age of {target} with a "
                f"{best.step_up_percent:g}% annual step-up and {best.sip_increase_percent:g}% "
                f"SIP increase, offering the ideal balance of goal achievement and effort."
            )
        else:
            explanation = (
                f"This plan reduces your FI age from {request.baseline_fi_age} to {best.fi_age} "
                f"({best.improvement_years} years earlier) with minimal adjustments to your "
                f"current savings behavior."
            )

        return Recommendation(
            recommended_index=best_index,
            explanation=explanation,
            alternatives=tuple(alternatives),
            difficulty=classify_difficulty(best.step_up_percent, best.sip_increase_percent),
        )


# ---------------------------------------------------------------------------
# Wire parsing
# ---------------------------------------------------------------------------

class _RecommendationPayload(BaseModel):
    """Schema of an advisory answer (extra keys ignored)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    recommended_index: int = Field(alias="recommendedIndex")
    explanation: Optional[str] = None
    alternatives: List[str] = Field(default_factory=list)
    difficulty: Optional[str] = None


def _recommendation_from_data(data: object, solutions: Sequence["OptimizationSolution"]) -> Recommendation:
    """Validate a decoded payload against the candidate list."""
    try:
        payload = _RecommendationPayload.model_validate(data)
    except PydanticValidationError as e:
        raise MalformedAdvisoryResponseError(f"Invalid recommendation payload: {e}") from e

    index = payload.recommended_index
    if not (0 <= index < len(solutions)):
        raise MalformedAdvisoryResponseError(
            f"recommendedIndex {index} out of range [0, {len(solutions)})."
        )

    chosen = solutions[index]
    # difficulty is always the local classification of the chosen candidate
    difficulty = classify_difficulty(chosen.step_up_percent, chosen.sip_increase_percent)
    reported = Difficulty.from_value(payload.difficulty)
    if reported is not None and reported is not difficulty:
        logger.debug("Advisor difficulty %s replaced by %s", reported.value, difficulty.value)
    explanation = payload.explanation or (
        f"Recommended: {chosen.step_up_percent:g}% step-up + {chosen.sip_increase_percent:g}% "
        f"SIP increase for FI at age {chosen.fi_age}."
    )
    return Recommendation(
        recommended_index=index,
        explanation=explanation,
        alternatives=tuple(payload.alternatives[:2]),
        difficulty=difficulty,
    )


def parse_advisory_reply(text: str, solutions: Sequence["OptimizationSolution"]) -> Recommendation:
    """
    Parse an LLM reply: JSON, optionally wrapped in a markdown code fence.

    Raises
    ------
    MalformedAdvisoryResponseError
        Unparsable JSON, schema mismatch, or index out of range.
    """
    clean = (text or "").strip()
    if clean.startswith("```json"):
        clean = clean[7:]
    if clean.startswith("```"):
        clean = clean[3:]
    if clean.endswith("```"):
        clean = clean[:-3]
    clean = clean.strip()

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        raise MalformedAdvisoryResponseError(f"Advisor reply is not JSON: {e}") from e
    return _recommendation_from_data(data, solutions)


def build_prompt(request: AdvisoryRequest) -> str:
    """Compact ranking prompt (only index and difficulty are requested)."""
    target = request.preferences.target_age
    compact = [
        {"i": i, "fi": s.fi_age, "su": s.step_up_percent, "si": s.sip_increase_percent}
        for i, s in enumerate(request.solutions)
    ]
    return (
        "Pick the best financial independence (FI) solution.\n\n"
        f"Context: Baseline FI={request.baseline_fi_age}, Target={target}\n\n"
        "Solutions (i=index, fi=FI age, su=step-up%, si=SIP increase%):\n"
        f"{json.dumps(compact)}\n\n"
        "Rank by: 1) Lowest fi, 2) Lowest su, 3) Lowest si\n"
        f"Bonus: fi<={target} is preferred even with slightly higher su/si.\n\n"
        "Respond JSON only:\n"
        '{"recommendedIndex":<number>,"difficulty":"Easy"|"Moderate"|"Aggressive"}\n\n'
        "Difficulty: Easy=(su<=5 AND si=0) OR (su=0 AND si<=10), "
        "Aggressive=(su>=10 AND si>=10) OR su>10 OR si>15, else Moderate"
    )


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class AdvisoryProvider(ABC):
    """
    Abstract advisor: same request in, ``Recommendation`` out.

    Implementations raise ``AdvisoryError`` subclasses on any failure.
    """

    name: str = "provider"

    @abstractmethod
    def recommend(self, request: AdvisoryRequest) -> Recommendation:
        ...


class LocalAdvisoryProvider(AdvisoryProvider):
    """Wraps ``FallbackScorer``; never fails."""

    name = "fallback"

    def __init__(self, scorer: Optional[FallbackScorer] = None):
        self.scorer = scorer or FallbackScorer()

    def recommend(self, request: AdvisoryRequest) -> Recommendation:
        return self.scorer.recommend(request)


class _HTTPProvider(AdvisoryProvider):
    """Shared POST/JSON handling for remote providers."""

    def __init__(self, url: str, timeout: float, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def _post(self, body: dict, headers: Optional[dict] = None) -> object:
        try:
            response = self.session.post(self.url, json=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AdvisoryUnavailableError(f"{self.name} request failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise MalformedAdvisoryResponseError(f"{self.name} returned non-JSON body") from e


class ServerAdvisoryProvider(_HTTPProvider):
    """
    Recommendation endpoint accepting ``{baselineFiAge, solutions, preferences}``.

    The answer may be the recommendation object itself or wrapped as
    ``{"recommendation": {...}, "source": "..."}``; a null recommendation
    (server-side failure) is treated as unavailable.
    """

    name = "server"

    def recommend(self, request: AdvisoryRequest) -> Recommendation:
        data = self._post(dict(request.to_payload()))
        if isinstance(data, dict) and "recommendation" in data:
            data = data["recommendation"]
            if data is None:
                raise AdvisoryUnavailableError("server returned no recommendation")
        return _recommendation_from_data(data, request.solutions)


class OpenRouterAdvisoryProvider(_HTTPProvider):
    """LLM ranking through the OpenRouter chat completions API."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str = "google/gemini-2.0-flash-001",
        url: str = "https://openrouter.ai/api/v1/chat/completions",
        timeout: float = C.DEFAULT_ADVISORY_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ConfigurationError("OpenRouter provider requires an API key.")
        super().__init__(url, timeout, session)
        self.api_key = api_key
        self.model = model

    def recommend(self, request: AdvisoryRequest) -> Recommendation:
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": build_prompt(request)}],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "FIOpt Planner",
        }
        data = self._post(body, headers=headers)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedAdvisoryResponseError("openrouter reply has no message content") from e
        return parse_advisory_reply(content, request.solutions)


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

class AdvisoryChain:
    """
    Prioritized advisory providers with the local scorer guaranteed last.

    Each remote provider runs on a helper thread and is abandoned after
    ``timeout`` seconds, so a hung call never starves the local path.

    Parameters
    ----------
    providers : sequence of AdvisoryProvider, optional
        Remote providers in priority order. Empty means local only.
    timeout : float, default 10
        Seconds allowed per remote provider.
    local : LocalAdvisoryProvider, optional
        Terminal provider; defaults to the standard ``FallbackScorer``.
    """

    def __init__(
        self,
        providers: Optional[Sequence[AdvisoryProvider]] = None,
        timeout: float = C.DEFAULT_ADVISORY_TIMEOUT,
        local: Optional[LocalAdvisoryProvider] = None,
    ):
        self.providers = list(providers or [])
        self.timeout = timeout
        self.local = local or LocalAdvisoryProvider()

    @classmethod
    def from_config(cls, config: AdvisoryConfig, openrouter_api_key: Optional[str] = None) -> AdvisoryChain:
        """Build providers named in ``config``; unusable ones are skipped."""
        providers: List[AdvisoryProvider] = []
        for name in config.providers:
            if name == "server" and config.server_url:
                providers.append(ServerAdvisoryProvider(config.server_url, config.timeout))
            elif name == "openrouter" and openrouter_api_key:
                providers.append(OpenRouterAdvisoryProvider(
                    api_key=openrouter_api_key,
                    model=config.openrouter_model,
                    url=config.openrouter_url,
                    timeout=config.timeout,
                ))
            else:
                logger.info("Advisory provider %r not configured; skipping", name)
        return cls(providers, timeout=config.timeout)

    def _call_with_timeout(self, provider: AdvisoryProvider, request: AdvisoryRequest) -> Recommendation:
        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"fiopt-advisor-{provider.name}"
        )
        try:
            future = executor.submit(provider.recommend, request)
            return future.result(timeout=self.timeout)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise AdvisoryUnavailableError(
                f"{provider.name} timed out after {self.timeout:.1f}s"
            ) from e
        finally:
            executor.shutdown(wait=False)

    def recommend(self, request: AdvisoryRequest) -> AdvisoryOutcome:
        """First usable recommendation; the local scorer always answers."""
        if request.solutions:
            for provider in self.providers:
                try:
                    recommendation = self._call_with_timeout(provider, request)
                except AdvisoryError as e:
                    logger.warning("Advisory provider %s unavailable: %s", provider.name, e)
                    continue
                except Exception:
                    logger.exception("Advisory provider %s failed unexpectedly", provider.name)
                    continue
                logger.info("Recommendation received from %s", provider.name)
                return AdvisoryOutcome(recommendation, provider.name)

        return AdvisoryOutcome(self.local.recommend(request), self.local.name)
