"""Sync state and change detection for the remote index.

``SyncState`` records what has been successfully submitted for one account.
``should_resync`` compares it against the current collection and model weights.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from models import Item
from validator import DEFAULT_RULES, DomainRules, validate_items


@dataclass
class SyncState:
    """What the remote index is known to hold for ``account_epoch``.

    Mutated only by the indexer after a successful submission. While the
    epoch is unchanged ``indexed_model_ids`` only grows.
    """

    account_epoch: str | None = None
    last_validated_ids: list[str] = field(default_factory=list)
    indexed_model_ids: set[str] = field(default_factory=set)
    last_model_weights: dict[str, float] = field(default_factory=dict)

    def reset(self, account_epoch: str | None) -> None:
        self.account_epoch = account_epoch
        self.last_validated_ids = []
        self.indexed_model_ids = set()
        self.last_model_weights = {}

    def record_success(
        self,
        ids: Sequence[str],
        model_ids: Iterable[str],
        weights: Mapping[str, float],
    ) -> None:
        self.last_validated_ids = list(ids)
        self.indexed_model_ids.update(model_ids)
        self.last_model_weights = dict(weights)


def should_resync(
    items: Iterable[Item],
    weights: Mapping[str, float],
    state: SyncState,
    *,
    account_epoch: str | None,
    rules: DomainRules = DEFAULT_RULES,
) -> bool:
    """Return True when the remote index may be stale.

    Any of these forces a resync:
    - the account differs from the one the state was recorded for
    - the ordered list of valid ids differs (additions, removals, reordering)
    - a model with weight > 0 has never been indexed
    """
    if account_epoch != state.account_epoch:
        return True

    valid_ids = [v.id for v in validate_items(items, rules)]
    if valid_ids != state.last_validated_ids:
        return True

    for model_id, weight in weights.items():
        if weight > 0 and model_id not in state.indexed_model_ids:
            return True

    return False


__all__ = ["SyncState", "should_resync"]
