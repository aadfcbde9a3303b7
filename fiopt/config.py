"""
Configuration management module for FIOpt.

Purpose
-------
Centralized configuration using Pydantic models for type-safe parameter management,
validation, and serialization. Supports environment variables and JSON configs,
with defaults taken from ``fiopt.constants``.

Design Principles
-----------------
- Type-safe: Pydantic enforces types and validates ranges
- Immutable: Frozen models prevent accidental mutation during a run
- Serializable: Easy conversion to/from JSON for config files
- Environment-aware: Supports .env files for advisory credentials
- Defaults: Every field defaults to the documented model assumption

Example
-------
>>> from fiopt.config import AssumptionsConfig, OptimizerConfig
>>> assumptions = AssumptionsConfig(ltcg_tax_rate=0.10)
>>> optimizer = OptimizerConfig(target_fi_age=42, parallel=False)
>>>
>>> # Serialize to dict/JSON
>>> config_dict = assumptions.model_dump()
>>> loaded = AssumptionsConfig.model_validate(config_dict)
"""

from __future__ import annotations
from typing import Optional, Literal, List, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import constants as C

__all__ = [
    "AssumptionsConfig",
    "OptimizerConfig",
    "AdvisoryConfig",
    "PlanningInputsConfig",
    "AppSettings",
]


# ---------------------------------------------------------------------------
# Model Assumptions
# ---------------------------------------------------------------------------

class AssumptionsConfig(BaseModel):
    """
    Market and behavioral assumptions shared by every projection.

    Attributes
    ----------
    inflation_rate : float
        Annual inflation applied to today's expense.
    short_term_return_rate, long_term_return_rate : float
        Accumulation returns before/after the regime threshold.
    short_term_threshold_years : int
        Horizon at which the accumulation regime switches.
    withdrawal_return_rate : float
        Annual return during the withdrawal phase.
    withdrawal_step_up_rate : float
        Annual increase of the scheduled withdrawal.
    lifestyle_buffer : float
        Markup on the inflation-adjusted expense.
    sustainability_buffer : float
        Fraction of the starting corpus that must survive to max age.
    ltcg_tax_rate : float
        Flat capital gains rate used to gross up withdrawals.
    fixed_income_growth_rate, growth_asset_growth_rate : float
        Annual growth of existing lump sums.
    fi_age_cap : int
        Latest FI age searched.

    Examples
    --------
    >>> config = AssumptionsConfig()
    >>> config.sustainability_buffer
    0.1
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    inflation_rate: float = Field(
        default=C.INFLATION_RATE,
        ge=0,
        le=0.5,
        description="Annual inflation rate"
    )
    short_term_return_rate: float = Field(
        default=C.SHORT_TERM_RETURN_RATE,
        gt=-1,
        le=1,
        description="Accumulation return below the regime threshold"
    )
    long_term_return_rate: float = Field(
        default=C.LONG_TERM_RETURN_RATE,
        gt=-1,
        le=1,
        description="Accumulation return from the regime threshold onward"
    )
    short_term_threshold_years: int = Field(
        default=C.SHORT_TERM_THRESHOLD_YEARS,
        ge=1,
        le=50,
        description="Years before switching to the long-term return"
    )
    withdrawal_return_rate: float = Field(
        default=C.WITHDRAWAL_RETURN_RATE,
        gt=-1,
        le=1,
        description="Annual return during withdrawals"
    )
    withdrawal_step_up_rate: float = Field(
        default=C.WITHDRAWAL_STEP_UP_RATE,
        ge=0,
        le=1,
        description="Annual step-up of the withdrawal"
    )
    lifestyle_buffer: float = Field(
        default=C.LIFESTYLE_BUFFER,
        ge=0,
        le=1,
        description="Markup on inflation-adjusted expense"
    )
    sustainability_buffer: float = Field(
        default=C.SUSTAINABILITY_BUFFER,
        ge=0,
        le=1,
        description="Required end-of-life fraction of starting corpus"
    )
    ltcg_tax_rate: float = Field(
        default=C.LTCG_TAX_RATE,
        ge=0,
        lt=1,
        description="Flat long-term capital gains tax rate"
    )
    fixed_income_growth_rate: float = Field(
        default=C.FIXED_INCOME_GROWTH_RATE,
        gt=-1,
        le=1,
        description="Growth of existing fixed-income corpus"
    )
    growth_asset_growth_rate: float = Field(
        default=C.GROWTH_ASSET_GROWTH_RATE,
        gt=-1,
        le=1,
        description="Growth of existing growth-asset corpus"
    )
    fi_age_cap: int = Field(
        default=C.FI_AGE_CAP,
        ge=18,
        le=C.MAX_AGE_INPUT,
        description="Latest FI age the search will return"
    )


# ---------------------------------------------------------------------------
# Optimizer Configuration
# ---------------------------------------------------------------------------

class OptimizerConfig(BaseModel):
    """
    Configuration for the scenario optimizer.

    Attributes
    ----------
    target_fi_age : int
        Baselines at or below this age skip optimization.
    step_up_values : list of float
        Step-up-only scenarios (percent).
    increase_values : list of float
        Investment-increase-only scenarios (percent).
    combined_scenarios : list of (float, float)
        (step-up %, increase %) pairs.
    cache_capacity : int
        Memoized corpus projections kept per run.
    cache_eviction_fraction : float
        Share of capacity evicted on overflow.
    search_method : str
        FI age search: "binary" (default) or "linear" (exhaustive).
    parallel : bool
        Evaluate the three scenario phases on a thread pool.

    Examples
    --------
    >>> config = OptimizerConfig(step_up_values=[5, 10], parallel=False)
    >>> config.combined_scenarios[0]
    (5.0, 5.0)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    target_fi_age: int = Field(
        default=C.TARGET_FI_AGE,
        ge=18,
        le=C.MAX_AGE_INPUT,
        description="Target FI age"
    )
    step_up_values: List[float] = Field(
        default_factory=lambda: list(C.STEP_UP_TEST_VALUES),
        description="Step-up-only test values (percent)"
    )
    increase_values: List[float] = Field(
        default_factory=lambda: list(C.INVESTMENT_INCREASE_TEST_VALUES),
        description="Investment-increase-only test values (percent)"
    )
    combined_scenarios: List[Tuple[float, float]] = Field(
        default_factory=lambda: [tuple(map(float, p)) for p in C.COMBINED_SCENARIOS],
        description="Combined (step-up %, increase %) pairs"
    )
    cache_capacity: int = Field(
        default=C.DEFAULT_CACHE_CAPACITY,
        ge=1,
        le=1_000_000,
        description="Corpus cache capacity"
    )
    cache_eviction_fraction: float = Field(
        default=C.DEFAULT_CACHE_EVICTION_FRACTION,
        gt=0,
        le=1,
        description="Fraction of capacity evicted on overflow"
    )
    search_method: Literal["binary", "linear"] = Field(
        default="binary",
        description="FI age search strategy"
    )
    parallel: bool = Field(
        default=True,
        description="Evaluate scenario phases concurrently"
    )

    @field_validator("step_up_values", "increase_values")
    @classmethod
    def validate_percentages(cls, v):
        """Ensure scenario percentages are positive."""
        if any(p <= 0 for p in v):
            raise ValueError(f"Scenario percentages must be positive, got {v}")
        return v

    @field_validator("combined_scenarios")
    @classmethod
    def validate_pairs(cls, v):
        """Ensure both components of a combined scenario are positive."""
        for step_up, increase in v:
            if step_up <= 0 or increase <= 0:
                raise ValueError(
                    f"Combined scenarios need positive step-up and increase, "
                    f"got ({step_up}, {increase})"
                )
        return v


# ---------------------------------------------------------------------------
# Advisory Configuration
# ---------------------------------------------------------------------------

class AdvisoryConfig(BaseModel):
    """
    Remote advisory providers, tried in order before the local scorer.

    Attributes
    ----------
    providers : list of str
        Provider names in priority order ("server", "openrouter").
        Empty list means local scoring only.
    server_url : str, optional
        Recommendation endpoint for the "server" provider.
    openrouter_url : str
        Chat completions endpoint for the "openrouter" provider.
    openrouter_model : str
        Model identifier passed to OpenRouter.
    timeout : float
        Per-provider timeout in seconds.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    providers: List[Literal["server", "openrouter"]] = Field(
        default_factory=list,
        description="Remote providers in priority order"
    )
    server_url: Optional[str] = Field(
        default=None,
        description="Recommendation endpoint URL"
    )
    openrouter_url: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="OpenRouter chat completions URL"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.0-flash-001",
        min_length=1,
        description="OpenRouter model identifier"
    )
    timeout: float = Field(
        default=C.DEFAULT_ADVISORY_TIMEOUT,
        gt=0,
        le=120,
        description="Per-provider timeout (seconds)"
    )

    @model_validator(mode="after")
    def validate_server_url(self):
        """The server provider needs an endpoint."""
        if "server" in self.providers and not self.server_url:
            raise ValueError("server_url is required when 'server' provider is enabled")
        return self


# ---------------------------------------------------------------------------
# Planning Inputs (file / CLI boundary)
# ---------------------------------------------------------------------------

class PlanningInputsConfig(BaseModel):
    """
    Validated planning inputs as read from JSON files or CLI options.

    The engine itself accepts any values (and degrades invalid ones to
    ``None`` results); this model applies the form-level limits.

    Examples
    --------
    >>> cfg = PlanningInputsConfig(current_age=30, monthly_expense=50_000,
    ...                            monthly_investment=50_000)
    >>> cfg.to_inputs().max_age
    80
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    current_age: int = Field(
        gt=0,
        le=C.MAX_AGE_INPUT,
        description="Current age in years"
    )
    monthly_expense: float = Field(
        gt=0,
        le=C.MAX_MONTHLY_EXPENSE,
        description="Today's monthly expense"
    )
    monthly_investment: float = Field(
        gt=0,
        le=C.MAX_MONTHLY_INVESTMENT,
        description="Current monthly investment"
    )
    health_status: Literal["needs_improvement", "generally_healthy", "very_healthy"] = Field(
        default="generally_healthy",
        description="Health status (sets max age)"
    )
    existing_fixed_income_corpus: float = Field(
        default=0.0,
        ge=0,
        le=C.MAX_EXISTING_CORPUS,
        description="Existing fixed-income lump sum"
    )
    existing_growth_corpus: float = Field(
        default=0.0,
        ge=0,
        le=C.MAX_EXISTING_CORPUS,
        description="Existing growth-asset lump sum"
    )

    def to_inputs(self):
        """Build the engine-level ``PlanningInputs``."""
        from .inputs import PlanningInputs

        return PlanningInputs(
            current_age=self.current_age,
            monthly_expense=self.monthly_expense,
            monthly_investment=self.monthly_investment,
            health_status=self.health_status,
            existing_fixed_income_corpus=self.existing_fixed_income_corpus,
            existing_growth_corpus=self.existing_growth_corpus,
        )


# ---------------------------------------------------------------------------
# Application Settings (Environment Variables)
# ---------------------------------------------------------------------------

class AppSettings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Supports .env files for local development. Environment variables
    should be prefixed with FIOPT_ (e.g., FIOPT_LOG_LEVEL=DEBUG).

    Attributes
    ----------
    debug : bool
        Enable debug mode with verbose logging
    log_level : str
        Logging level: "DEBUG", "INFO", "WARNING", "ERROR"
    advisory_url : str, optional
        Recommendation endpoint; enables the "server" provider when set
    openrouter_api_key : str, optional
        Enables the "openrouter" provider when set
    openrouter_model : str
        Model used with OpenRouter
    advisory_timeout : float
        Per-provider timeout in seconds
    worker_timeout : float
        Background run timeout before the synchronous fallback

    Examples
    --------
    >>> settings = AppSettings()
    >>> settings.log_level
    'INFO'

    # With .env file:
    # FIOPT_OPENROUTER_API_KEY=sk-or-...
    >>> settings = AppSettings(_env_file=".env")
    >>> settings.advisory_config().providers
    ['openrouter']
    """

    model_config = SettingsConfigDict(
        env_prefix="FIOPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    advisory_url: Optional[str] = Field(
        default=None,
        description="Remote recommendation endpoint"
    )
    openrouter_api_key: Optional[str] = Field(
        default=None,
        description="OpenRouter API key"
    )
    openrouter_model: str = Field(
        default="google/gemini-2.0-flash-001",
        description="OpenRouter model identifier"
    )
    advisory_timeout: float = Field(
        default=C.DEFAULT_ADVISORY_TIMEOUT,
        gt=0,
        le=120,
        description="Advisory timeout (seconds)"
    )
    worker_timeout: float = Field(
        default=C.DEFAULT_WORKER_TIMEOUT,
        gt=0,
        le=600,
        description="Background run timeout (seconds)"
    )

    def advisory_config(self) -> AdvisoryConfig:
        """Providers enabled by the available credentials (OpenRouter first)."""
        providers = []
        if self.openrouter_api_key:
            providers.append("openrouter")
        if self.advisory_url:
            providers.append("server")
        return AdvisoryConfig(
            providers=providers,
            server_url=self.advisory_url,
            openrouter_model=self.openrouter_model,
            timeout=self.advisory_timeout,
        )
