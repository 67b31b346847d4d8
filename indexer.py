from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from client import IndexClient
from errors import ConfigurationMissing, NetworkFailure
from models import IndexRequest, Item
from sync import SyncState, should_resync
from validator import DEFAULT_RULES, DomainRules, validate_items

logger = logging.getLogger(__name__)


class Indexer:
    """Single-flight submission of validated items to the remote index.

    While one submission is outstanding, further calls to ``submit`` return
    immediately without issuing a request. Failures leave ``SyncState``
    untouched so the next change check detects the same content as stale.
    """

    def __init__(self, client: IndexClient, rules: DomainRules = DEFAULT_RULES) -> None:
        self.client = client
        self.rules = rules
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def submit(
        self,
        items: Iterable[Item],
        weights: Mapping[str, float],
        state: SyncState,
    ) -> bool:
        """Submit the valid subset of ``items`` for every model with weight > 0.

        Returns:
            True if a request was accepted and ``state`` was updated, False otherwise
            (already in flight, nothing to submit, key missing, or failure).
        """
        if self._in_flight:
            logger.debug("Index request already in flight; skipping")
            return False
        if not self.client.configured:
            logger.debug("User key not configured; skipping index request")
            return False

        validated = validate_items(items, self.rules)
        if not validated:
            logger.info("No valid items to index")
            return False

        weights_snapshot = dict(weights)
        model_ids = [model_id for model_id, weight in weights_snapshot.items() if weight > 0]
        if not model_ids:
            logger.debug("No models with weight > 0; skipping index request")
            return False

        request = IndexRequest.from_validated(validated, model_ids)
        epoch = state.account_epoch

        self._in_flight = True
        try:
            await asyncio.to_thread(self.client.submit_index, request)
        except ConfigurationMissing as e:
            logger.warning("Index request skipped: %s", e)
            return False
        except NetworkFailure:
            logger.exception("Error indexing items")
            return False
        finally:
            self._in_flight = False

        if state.account_epoch != epoch:
            logger.info("Account changed while indexing; discarding result for %s", epoch)
            return False

        state.record_success(request.names, model_ids, weights_snapshot)
        logger.info("Successfully indexed %d valid items", len(request.names))
        return True


def _log_submit_failure(task: asyncio.Task[bool]) -> None:
    # Hosts that only call check() never await the task
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Unexpected error indexing items", exc_info=exc)


class SyncCoordinator:
    """Owns one ``SyncState`` and decides when to fire the indexer.

    ``check`` is meant to be called whenever the collection or the model
    weights may have changed (each host render, each settings change).
    """

    def __init__(self, indexer: Indexer, state: SyncState | None = None) -> None:
        self.indexer = indexer
        self.state = state or SyncState()
        self._task: asyncio.Task[bool] | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def check(
        self,
        items: Iterable[Item],
        weights: Mapping[str, float],
        account_epoch: str | None,
    ) -> asyncio.Task[bool] | None:
        """Schedule a submission if the remote index is stale.

        Must be called from a running event loop. Returns the scheduled task,
        or None when nothing was scheduled.
        """
        snapshot = list(items)
        if not should_resync(
            snapshot,
            weights,
            self.state,
            account_epoch=account_epoch,
            rules=self.indexer.rules,
        ):
            return None

        if self.state.account_epoch != account_epoch:
            logger.info("Account switched to %s; resetting sync state", account_epoch)
            self.state.reset(account_epoch)

        if self.pending or self.indexer.in_flight:
            return None

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self.indexer.submit(snapshot, dict(weights), self.state))
        self._task.add_done_callback(_log_submit_failure)
        return self._task

    async def wait(self) -> bool | None:
        """Wait for the scheduled submission, if any, and return its outcome."""
        if self._task is None:
            return None
        return await self._task

    def close(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()


__all__ = ["Indexer", "SyncCoordinator"]
