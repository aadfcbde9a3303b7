"""
Background execution of optimization runs for FIOpt.

Purpose
-------
Keeps an interactive caller responsive: each optimization run is submitted
to a worker thread and tagged with a monotonically increasing run id. A
newer submission makes older runs stale; their results are discarded on
arrival (they are not forcibly aborted). When the worker cannot be used,
fails, or exceeds its timeout, the same algorithm runs synchronously in
the calling thread.

Protocol
--------
    ticket = host.submit(inputs, baseline)     # RunRequest(run_id, ...)
    response = host.collect(ticket)            # RunResponse(run_id, ...) or None if stale

Each run gets its own ``ScenarioOptimizer`` (and so its own cache), built
by ``optimizer_factory``.

Example
-------
>>> with ConcurrencyHost() as host:
...     ticket = host.submit(inputs, baseline_fi_age=52)
...     response = host.collect(ticket)
>>> response.result.recommended_solution
"""

from __future__ import annotations

import concurrent.futures
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from . import constants as C
from .exceptions import ComputationHostError
from .inputs import PlanningInputs
from .optimization import OptimizationResult, ScenarioOptimizer

__all__ = [
    "RunRequest",
    "RunResponse",
    "RunTicket",
    "ConcurrencyHost",
]

logger = logging.getLogger(__name__)

BACKGROUND = "background"
SYNCHRONOUS = "synchronous"


@dataclass(frozen=True)
class RunRequest:
    """One submitted run."""
    run_id: int
    inputs: PlanningInputs
    baseline_fi_age: Optional[int]


@dataclass(frozen=True)
class RunResponse:
    """Result tagged with the id of the run that produced it."""
    run_id: int
    result: OptimizationResult
    mode: str


@dataclass(frozen=True)
class RunTicket:
    """Handle returned by ``submit``; ``future`` is None when no worker was used."""
    request: RunRequest
    future: Optional[concurrent.futures.Future] = None

    @property
    def run_id(self) -> int:
        return self.request.run_id


class ConcurrencyHost:
    """
    Run optimizations off the calling thread with stale-run discarding.

    Parameters
    ----------
    optimizer_factory : callable, optional
        Returns a fresh ``ScenarioOptimizer`` per run. Defaults to
        ``ScenarioOptimizer()``.
    timeout : float, default 30
        Seconds to wait for the worker before falling back.
    executor : concurrent.futures.Executor, optional
        Worker pool; a single-thread pool is created lazily otherwise.
    """

    def __init__(
        self,
        optimizer_factory: Optional[Callable[[], ScenarioOptimizer]] = None,
        timeout: float = C.DEFAULT_WORKER_TIMEOUT,
        executor: Optional[concurrent.futures.Executor] = None,
    ):
        if timeout <= 0:
            raise ComputationHostError(f"timeout must be positive, got {timeout}.")
        self.optimizer_factory = optimizer_factory or ScenarioOptimizer
        self.timeout = timeout
        self._executor = executor
        self._owns_executor = executor is None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._current_id = 0
        self._closed = False

    # ------------------------------------------------------------------
    # Run ids
    # ------------------------------------------------------------------

    def _next_run_id(self) -> int:
        with self._lock:
            self._current_id = next(self._ids)
            return self._current_id

    @property
    def current_run_id(self) -> int:
        with self._lock:
            return self._current_id

    def is_current(self, run_id: int) -> bool:
        return run_id == self.current_run_id

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, request: RunRequest) -> OptimizationResult:
        optimizer = self.optimizer_factory()
        return optimizer.optimize(request.inputs, request.baseline_fi_age)

    def _get_executor(self) -> concurrent.futures.Executor:
        if self._closed:
            raise ComputationHostError("host has been shut down")
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="fiopt-host"
            )
        return self._executor

    def submit(self, inputs: PlanningInputs, baseline_fi_age: Optional[int]) -> RunTicket:
        """
        Start a run in the background and make it the current run.

        When the worker cannot accept the job the ticket carries no future
        and ``collect`` runs it synchronously.
        """
        request = RunRequest(self._next_run_id(), inputs, baseline_fi_age)
        try:
            future = self._get_executor().submit(self._execute, request)
        except (RuntimeError, ComputationHostError) as e:
            logger.info("Background execution unavailable for run %d (%s); will run inline",
                        request.run_id, e)
            return RunTicket(request)
        return RunTicket(request, future)

    def collect(self, ticket: RunTicket, timeout: Optional[float] = None) -> Optional[RunResponse]:
        """
        Wait for a run's result.

        Returns
        -------
        RunResponse or None
            None when the run became stale (a newer run was submitted).
        """
        if not self.is_current(ticket.run_id):
            if ticket.future is not None:
                ticket.future.cancel()
            logger.info("Discarding stale run %d", ticket.run_id)
            return None

        result = None
        mode = BACKGROUND
        if ticket.future is not None:
            wait = self.timeout if timeout is None else timeout
            try:
                result = ticket.future.result(timeout=wait)
            except concurrent.futures.TimeoutError:
                ticket.future.cancel()
                logger.warning("Run %d timed out after %.1fs; running inline", ticket.run_id, wait)
            except concurrent.futures.CancelledError:
                logger.info("Run %d was cancelled; running inline", ticket.run_id)
            except Exception:
                logger.exception("Run %d failed in background; running inline", ticket.run_id)

        if result is None:
            result = self._execute(ticket.request)
            mode = SYNCHRONOUS

        if not self.is_current(ticket.run_id):
            logger.info("Discarding stale run %d", ticket.run_id)
            return None
        return RunResponse(ticket.run_id, result, mode)

    def run(self, inputs: PlanningInputs, baseline_fi_age: Optional[int]) -> Optional[RunResponse]:
        """Submit and wait in one call."""
        return self.collect(self.submit(inputs, baseline_fi_age))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=wait)

    def __enter__(self) -> ConcurrencyHost:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
