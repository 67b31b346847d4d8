"""Collection view: the data source the search control reorders.

The host owns the collection. This core only reads the unfiltered snapshot
and replaces the displayed sequence.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from models import Item


class DataSource(Protocol):
    @property
    def snapshot(self) -> Sequence[Item]:
        """The unfiltered collection (favCopy)."""
        ...

    @property
    def items(self) -> Sequence[Item]:
        """The sequence currently displayed."""
        ...

    def set_items(self, items: Sequence[Item]) -> None: ...

    def force_refresh(self) -> None: ...


class CollectionView:
    """In-memory ``DataSource`` used by the CLI and by hosts without their own state."""

    def __init__(
        self,
        snapshot: Sequence[Item] = (),
        *,
        on_refresh: Callable[[Sequence[Item]], None] | None = None,
    ) -> None:
        self._snapshot: list[Item] = list(snapshot)
        self._items: list[Item] = list(snapshot)
        self._on_refresh = on_refresh
        self.refresh_count = 0

    @property
    def snapshot(self) -> list[Item]:
        return self._snapshot

    @property
    def items(self) -> list[Item]:
        return self._items

    def set_items(self, items: Sequence[Item]) -> None:
        self._items = list(items)

    def force_refresh(self) -> None:
        self.refresh_count += 1
        if self._on_refresh is not None:
            self._on_refresh(self._items)


__all__ = ["DataSource", "CollectionView"]
