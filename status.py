"""Model list and indexing-progress helpers."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping

from client import IndexClient
from models import StatusCounts

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


def merge_model_weights(
    configured: Mapping[str, float],
    remote_defaults: Mapping[str, float],
) -> dict[str, float]:
    """Remote defaults for every advertised model, overridden by configured weights.

    Configured models the service does not advertise are kept; the service may
    simply not have listed them yet.
    """
    merged = {str(k): float(v) for k, v in remote_defaults.items()}
    merged.update(configured)
    return merged


async def watch_status(
    client: IndexClient,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    max_polls: int | None = None,
) -> AsyncIterator[StatusCounts]:
    """Poll ``/statuscounts`` and yield each snapshot until every model is settled.

    Stops after ``max_polls`` snapshots when given. Errors propagate to the caller.
    """
    polls = 0
    while True:
        counts = await asyncio.to_thread(client.status_counts)
        polls += 1
        yield counts
        if counts.is_settled:
            logger.debug("Indexing settled after %d polls", polls)
            return
        if max_polls is not None and polls >= max_polls:
            return
        await asyncio.sleep(interval)


__all__ = ["DEFAULT_POLL_INTERVAL", "merge_model_weights", "watch_status"]
