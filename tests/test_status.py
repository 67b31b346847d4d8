from unittest.mock import Mock

import pytest

from errors import NetworkFailure
from models import StatusCounts
from status import merge_model_weights, watch_status


def counts(*rows) -> StatusCounts:
    return StatusCounts.model_validate({"status": "ok", "counts": {str(i): r for i, r in enumerate(rows)}})


def test_merge_prefers_configured_weights():
    merged = merge_model_weights({"0": 1.0, "local": 0.2}, {"0": 0.5, "1": 0.5})
    assert merged == {"0": 1.0, "1": 0.5, "local": 0.2}


@pytest.mark.asyncio
async def test_watch_stops_when_settled():
    client = Mock()
    client.status_counts.side_effect = [
        counts([0, 2, 1, 0]),
        counts([0, 0, 1, 2]),
        counts([1, 0, 0, 2]),
    ]
    seen = [c async for c in watch_status(client, interval=0)]
    assert [c.counts["0"].completed for c in seen] == [0, 2, 2]
    assert seen[-1].is_settled
    assert client.status_counts.call_count == 3


@pytest.mark.asyncio
async def test_watch_respects_max_polls():
    client = Mock()
    client.status_counts.return_value = counts([0, 1, 0, 0])
    seen = [c async for c in watch_status(client, interval=0, max_polls=2)]
    assert len(seen) == 2


@pytest.mark.asyncio
async def test_watch_propagates_errors():
    client = Mock()
    client.status_counts.side_effect = NetworkFailure("down")
    with pytest.raises(NetworkFailure):
        async for _ in watch_status(client, interval=0):
            pass
