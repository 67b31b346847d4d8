"""Rank fusion over per-model search results.

Each model returns ``(locator, raw_score)`` pairs. Per model the pairs are
sorted by raw score (stable, so equal scores keep their input order) and
assigned ranks 1..N. Every returned locator is then scored as the
weighted average of its reciprocal ranks:

    combined = sum(weight_m / rank_m) / sum(weight_m)

over the models that ranked it. Locators whose total weight is zero, or that
do not resolve to an item of the unfiltered collection, are dropped. Results
are ordered by combined score, highest first; ties keep the order in which
locators were first seen across the model lists.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from models import FusedResult, Item

DEFAULT_MODEL_WEIGHT = 0.5

RankedList = Sequence[tuple[str, float]]


def rank_positions(ranked: RankedList, *, lower_is_better: bool = True) -> dict[str, int]:
    """Map locator -> 1-based rank within one model's list.

    A locator listed more than once keeps its best rank.
    """
    # sorted() is stable in both directions: equal scores keep input order
    ordered = sorted(ranked, key=lambda pair: pair[1], reverse=not lower_is_better)
    ranks: dict[str, int] = {}
    for position, (locator, _) in enumerate(ordered, start=1):
        ranks.setdefault(locator, position)
    return ranks


def _union_in_order(model_results: Mapping[str, RankedList]) -> list[str]:
    seen: dict[str, None] = {}
    for ranked in model_results.values():
        for locator, _ in ranked:
            seen.setdefault(locator, None)
    return list(seen)


def _index_items(items: Sequence[Item]) -> dict[str, Item]:
    # First occurrence wins for duplicate ids; locators are a fallback key
    by_key: dict[str, Item] = {}
    for item in items:
        by_key.setdefault(item.id, item)
    for item in items:
        by_key.setdefault(item.locator, item)
    return by_key


def fuse_scores(
    model_results: Mapping[str, RankedList],
    fav_copy: Sequence[Item],
    weights: Mapping[str, float],
    *,
    default_weight: float = DEFAULT_MODEL_WEIGHT,
    lower_is_better: bool = True,
) -> list[FusedResult]:
    rank_maps = {
        model_id: rank_positions(ranked, lower_is_better=lower_is_better)
        for model_id, ranked in model_results.items()
    }
    lookup = _index_items(fav_copy)

    fused: list[FusedResult] = []
    for locator in _union_in_order(model_results):
        total_score = 0.0
        total_weight = 0.0
        for model_id, ranks in rank_maps.items():
            rank = ranks.get(locator)
            if rank is None:
                continue
            weight = weights.get(model_id, default_weight)
            total_score += (1.0 / rank) * weight
            total_weight += weight

        if total_weight == 0:
            continue
        item = lookup.get(locator)
        if item is None:
            continue
        fused.append(FusedResult(item=item, score=total_score / total_weight))

    # list.sort is stable: equal scores keep union order
    fused.sort(key=lambda r: r.score, reverse=True)
    return fused


def fuse(
    model_results: Mapping[str, RankedList],
    fav_copy: Sequence[Item],
    weights: Mapping[str, float],
    *,
    default_weight: float = DEFAULT_MODEL_WEIGHT,
    lower_is_better: bool = True,
) -> list[Item]:
    """Return the collection view ordered by fused relevance."""
    results = fuse_scores(
        model_results,
        fav_copy,
        weights,
        default_weight=default_weight,
        lower_is_better=lower_is_better,
    )
    return [r.item for r in results]


__all__ = ["DEFAULT_MODEL_WEIGHT", "RankedList", "rank_positions", "fuse_scores", "fuse"]
