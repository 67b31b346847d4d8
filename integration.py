"""Glue between a host UI and the search/sync engines.

A host provides a search-box component type and a ``DataSource``. This module
builds the component's props so that its callbacks land in the
``QueryOrchestrator``, and offers a render hook that keeps a filtered view
across host re-renders while giving the sync engine a chance to run.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any, TypeVar

from client import IndexClient
from config import Config, config
from indexer import SyncCoordinator
from models import Item
from orchestrator import QueryOrchestrator
from view import DataSource

T = TypeVar("T")

PLACEHOLDER = "CLIP Search Favorite Gifs"


@dataclass
class SearchBarProps:
    on_change: Callable[[str], None]
    on_clear: Callable[[], None]
    query: str
    placeholder: str = PLACEHOLDER
    auto_focus: bool = True
    size: str = "md"


def build_orchestrator(
    source: DataSource,
    client: IndexClient,
    cfg: Config = config,
    **overrides: Any,
) -> QueryOrchestrator:
    """Create a ``QueryOrchestrator`` using the configured debounce, weights and fusion settings."""
    options: dict[str, Any] = {
        "weights": lambda: cfg.MODEL_WEIGHTS,
        "quiet_period": cfg.DEBOUNCE_SECONDS,
        "k": cfg.SEARCH_K,
        "lower_is_better": cfg.LOWER_SCORE_IS_BETTER,
        "default_weight": cfg.DEFAULT_MODEL_WEIGHT,
    }
    options.update(overrides)
    return QueryOrchestrator(source, client, **options)


def search_bar_props(orchestrator: QueryOrchestrator, *, placeholder: str = PLACEHOLDER) -> SearchBarProps:
    return SearchBarProps(
        on_change=orchestrator.on_change,
        on_clear=orchestrator.clear,
        query=orchestrator.query,
        placeholder=placeholder,
    )


def render_search_bar(component: Callable[..., T], orchestrator: QueryOrchestrator, **overrides: Any) -> T:
    """Instantiate the host's search component wired to ``orchestrator``."""
    bar = search_bar_props(orchestrator)
    props = {f.name: getattr(bar, f.name) for f in fields(bar)}
    props.update(overrides)
    return component(**props)


class FavoritesHook:
    """Render-time hook for hosts that rebuild their list on every render.

    ``get_favorites`` returns the filtered view while a search result is
    displayed, so a re-render (e.g. a window resize) does not lose it, and
    runs the sync check against the unfiltered collection.
    """

    def __init__(
        self,
        source: DataSource,
        orchestrator: QueryOrchestrator,
        coordinator: SyncCoordinator | None = None,
        *,
        weights: Callable[[], Mapping[str, float]] | None = None,
        account_epoch: Callable[[], str | None] | None = None,
    ) -> None:
        self.source = source
        self.orchestrator = orchestrator
        self.coordinator = coordinator
        self._weights = weights or orchestrator.current_weights
        self._account_epoch = account_epoch or (lambda: None)

    def get_favorites(self, favorites: Sequence[Item]) -> Sequence[Item]:
        if not self.orchestrator.alive:
            return favorites

        # Sync is checked against the host's collection, never the filtered view
        if self.coordinator is not None:
            self.coordinator.check(favorites, self._weights(), self._account_epoch())

        filtered = self.source.items
        if filtered is not None and len(filtered) != len(favorites):
            return filtered
        return favorites


__all__ = ["SearchBarProps", "build_orchestrator", "search_bar_props", "render_search_bar", "FavoritesHook", "PLACEHOLDER"]
