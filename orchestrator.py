"""Query orchestration: debounce keystrokes, run one search at a time, apply fused results.

Every non-empty input starts a new ``RequestSession`` and cancels the previous
one. A session waits out the quiet period, issues one search, and applies the
fused ranking only if it is still the current session and the orchestrator is
still alive. Anything arriving for a superseded session is dropped.

Session states::

    DEBOUNCING -> SEARCHING -> APPLIED | FAILED
    DEBOUNCING | SEARCHING  -> CANCELLED   (superseded, cleared, or closed)

Empty input and ``clear()`` restore the unfiltered snapshot synchronously.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from client import IndexClient
from errors import ConfigurationMissing, NetworkFailure
from fusion import DEFAULT_MODEL_WEIGHT, fuse
from view import DataSource

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 0.3

WeightsProvider = Callable[[], Mapping[str, float]]


class QueryState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SEARCHING = "searching"
    APPLIED = "applied"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationToken:
    """Cooperative cancellation flag checked before every view mutation."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass
class RequestSession:
    """One keystroke-driven query: its token, its task, and where it got to."""

    query: str
    token: CancellationToken = field(default_factory=CancellationToken)
    state: QueryState = QueryState.DEBOUNCING
    task: asyncio.Task[None] | None = None

    def cancel(self) -> None:
        self.token.cancel()
        if self.task is not None and not self.task.done():
            self.task.cancel()
        if self.state in (QueryState.DEBOUNCING, QueryState.SEARCHING):
            self.state = QueryState.CANCELLED


class QueryOrchestrator:
    def __init__(
        self,
        source: DataSource,
        client: IndexClient,
        *,
        weights: Mapping[str, float] | WeightsProvider,
        quiet_period: float = DEFAULT_QUIET_PERIOD,
        k: int | None = None,
        models: Sequence[str] | None = None,
        lower_is_better: bool = True,
        default_weight: float = DEFAULT_MODEL_WEIGHT,
    ) -> None:
        self.source = source
        self.client = client
        self._weights = weights
        self.quiet_period = quiet_period
        self.k = k
        self.models = list(models) if models else None
        self.lower_is_better = lower_is_better
        self.default_weight = default_weight
        self.query = ""
        self._session: RequestSession | None = None
        self._alive = True

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def session(self) -> RequestSession | None:
        return self._session

    @property
    def state(self) -> QueryState:
        if self._session is None:
            return QueryState.IDLE
        return self._session.state

    def current_weights(self) -> Mapping[str, float]:
        if callable(self._weights):
            return self._weights()
        return self._weights

    # --- input events -------------------------------------------------

    def on_change(self, query: str) -> None:
        """Handle a new value of the search box. Must run inside the event loop."""
        if not self._alive:
            return
        self.query = query
        if query == "":
            self._supersede(None)
            self._restore()
            return

        session = RequestSession(query=query)
        self._supersede(session)
        session.task = asyncio.get_running_loop().create_task(self._run(session))

    def clear(self) -> None:
        """Clear button: drop pending work and show the unfiltered collection."""
        if not self._alive:
            return
        self.query = ""
        self._supersede(None)
        self._restore()

    def close(self) -> None:
        """Teardown. Any late callback becomes a no-op."""
        self._supersede(None)
        self._alive = False

    async def settled(self) -> None:
        """Wait until the current session (if any) has finished or been replaced."""
        while True:
            session = self._session
            if session is None or session.task is None or session.task.done():
                return
            await asyncio.wait({session.task})

    # --- internals ----------------------------------------------------

    def _supersede(self, session: RequestSession | None) -> None:
        previous, self._session = self._session, session
        if previous is not None:
            previous.cancel()

    def _is_current(self, session: RequestSession) -> bool:
        return self._alive and self._session is session and not session.token.cancelled

    def _restore(self) -> None:
        self.source.set_items(self.source.snapshot)
        self.source.force_refresh()

    async def _run(self, session: RequestSession) -> None:
        try:
            await asyncio.sleep(self.quiet_period)
            if not self._is_current(session):
                return
            if not self.client.configured:
                logger.debug("User key not configured; search suppressed")
                session.state = QueryState.IDLE
                return

            session.state = QueryState.SEARCHING
            response = await asyncio.to_thread(
                self.client.search,
                session.query,
                models=self.models,
                k=self.k,
            )
        except asyncio.CancelledError:
            logger.debug("Search for %r aborted", session.query)
            raise
        except ConfigurationMissing as e:
            if self._is_current(session):
                logger.warning("Search skipped: %s", e)
                session.state = QueryState.IDLE
            return
        except NetworkFailure:
            if not self._is_current(session):
                return
            logger.exception("Error fetching search results")
            session.state = QueryState.FAILED
            self.source.force_refresh()
            return

        if not self._is_current(session):
            logger.debug("Dropping stale results for %r", session.query)
            return

        ordered = fuse(
            response.results,
            self.source.snapshot,
            self.current_weights(),
            default_weight=self.default_weight,
            lower_is_better=self.lower_is_better,
        )
        self.source.set_items(ordered)
        self.source.force_refresh()
        session.state = QueryState.APPLIED


__all__ = [
    "QueryState",
    "CancellationToken",
    "RequestSession",
    "QueryOrchestrator",
    "DEFAULT_QUIET_PERIOD",
]
