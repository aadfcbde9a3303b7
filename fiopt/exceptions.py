"""
Custom exceptions for FIOpt.

Purpose
-------
Provides a unified exception hierarchy for consistent error handling
across all FIOpt modules. All exceptions inherit from FIOptError,
enabling catch-all handling when needed.

Most of these never reach a caller of the planning API: advisory and
host failures are caught and resolved through the local fallback paths,
and invalid planning inputs degrade to ``None`` projections. They exist
so the seams that *do* fail can say precisely why.

Exception Hierarchy
-------------------
FIOptError (base)
├── ConfigurationError - Invalid configuration or parameters
├── ValidationError - Data validation failures
├── AdvisoryError - Advisory provider could not produce a recommendation
│   ├── AdvisoryUnavailableError - Network failure, timeout, HTTP error
│   └── MalformedAdvisoryResponseError - Unparsable payload, bad index
└── ComputationHostError - Background execution context unavailable

Usage
-----
>>> from fiopt.exceptions import AdvisoryError
>>> try:
...     recommendation = provider.recommend(request)
... except AdvisoryError as e:
...     logger.warning("Advisor failed: %s", e)
"""


class FIOptError(Exception):
    """
    Base exception for all FIOpt errors.

    Examples
    --------
    >>> try:
    ...     optimizer.optimize(inputs, baseline)
    ... except FIOptError as e:
    ...     logger.error(f"Optimization failed: {e}")
    """
    pass


class ConfigurationError(FIOptError):
    """
    Invalid configuration or parameters.

    Raised when a component is constructed with settings it cannot honor,
    such as an unknown search method or an empty provider list.

    Examples
    --------
    >>> raise ConfigurationError(
    ...     "search_method must be 'binary' or 'linear', got 'ternary'."
    ... )
    """
    pass


class ValidationError(FIOptError):
    """
    Data validation failures.

    Raised when a value fails a structural check, such as a cache capacity
    below one or an eviction fraction outside (0, 1].

    Examples
    --------
    >>> raise ValidationError(f"capacity must be >= 1, got {capacity}.")
    """
    pass


class AdvisoryError(FIOptError):
    """
    An advisory provider could not produce a usable recommendation.

    The advisory chain catches every subclass and moves on to the next
    provider; the local scorer terminates the chain.
    """
    pass


class AdvisoryUnavailableError(AdvisoryError):
    """
    Remote advisor unreachable.

    Raised for connection errors, timeouts, non-2xx responses and missing
    credentials.

    Examples
    --------
    >>> raise AdvisoryUnavailableError("Server API returned 503")
    """
    pass


class MalformedAdvisoryResponseError(AdvisoryError):
    """
    Remote advisor answered with data that cannot be used.

    Raised for unparsable JSON, schema violations and a recommended index
    outside the candidate list. Treated exactly like a network failure.

    Examples
    --------
    >>> raise MalformedAdvisoryResponseError(
    ...     f"recommendedIndex {index} out of range [0, {n})."
    ... )
    """
    pass


class ComputationHostError(FIOptError):
    """
    Background execution context failed.

    Raised when the worker pool cannot accept a task (shut down, thread
    creation refused) or a background run errors or times out. The host
    catches it and reruns the same algorithm synchronously.
    """
    pass
