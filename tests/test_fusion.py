import pytest

from fusion import fuse, fuse_scores, rank_positions
from models import Item


def items(*names: str) -> list[Item]:
    return [Item(id=n, locator=f"https://media.tenor.co/{n}.gif") for n in names]


def test_rank_positions_ascending():
    assert rank_positions([("a", 3.0), ("b", 1.0), ("c", 2.0)]) == {"b": 1, "c": 2, "a": 3}


def test_rank_positions_ties_keep_input_order():
    assert rank_positions([("a", 1.0), ("b", 1.0), ("c", 0.5)]) == {"c": 1, "a": 2, "b": 3}


def test_rank_positions_higher_is_better():
    ranks = rank_positions([("a", 0.1), ("b", 0.9), ("c", 0.9)], lower_is_better=False)
    assert ranks == {"b": 1, "c": 2, "a": 3}


def test_rank_positions_duplicate_keeps_best():
    assert rank_positions([("a", 5.0), ("b", 2.0), ("a", 1.0)]) == {"a": 1, "b": 2}


def test_two_model_tie_broken_by_union_order():
    fav = items("x", "y", "z")
    results = {
        "A": [("x", 1.0), ("y", 2.0), ("z", 3.0)],
        "B": [("y", 1.0), ("x", 2.0)],
    }
    scored = fuse_scores(results, fav, {"A": 1.0, "B": 1.0})

    # x = (1 + 1/2) / 2, y = (1/2 + 1) / 2, z = (1/3) / 1
    assert [r.item.id for r in scored] == ["x", "y", "z"]
    assert scored[0].score == pytest.approx(0.75)
    assert scored[1].score == pytest.approx(0.75)
    assert scored[2].score == pytest.approx(1 / 3)


def test_union_order_follows_input_lists_not_sorted_order():
    fav = items("p", "q")
    # Model A lists q first in the response even though p ranks better
    results = {"A": [("q", 2.0), ("p", 1.0)], "B": [("q", 1.0), ("p", 2.0)]}
    assert [i.id for i in fuse(results, fav, {"A": 1.0, "B": 1.0})] == ["q", "p"]


def test_weights_shift_the_order():
    fav = items("x", "y")
    results = {"A": [("x", 1.0), ("y", 2.0)], "B": [("y", 1.0), ("x", 2.0)]}
    assert [i.id for i in fuse(results, fav, {"A": 0.9, "B": 0.1})] == ["x", "y"]
    assert [i.id for i in fuse(results, fav, {"A": 0.1, "B": 0.9})] == ["y", "x"]


def test_single_model_item_is_not_diluted_by_missing_models():
    fav = items("solo", "both")
    results = {"A": [("solo", 1.0), ("both", 2.0)], "B": [("both", 1.0)]}
    scored = {r.item.id: r.score for r in fuse_scores(results, fav, {"A": 1.0, "B": 1.0})}
    assert scored["solo"] == pytest.approx(1.0)
    assert scored["both"] == pytest.approx(0.75)


def test_unknown_model_uses_default_weight():
    fav = items("x", "y")
    results = {"A": [("x", 1.0), ("y", 2.0)], "new": [("y", 1.0), ("x", 2.0)]}
    # A weight 0.1 against default 0.5 for "new": y wins
    assert [i.id for i in fuse(results, fav, {"A": 0.1})] == ["y", "x"]
    assert [i.id for i in fuse(results, fav, {"A": 0.1}, default_weight=0.0)] == ["x", "y"]


def test_zero_weight_only_locators_are_dropped():
    fav = items("x", "y")
    results = {"A": [("x", 1.0)], "B": [("y", 1.0)]}
    assert [i.id for i in fuse(results, fav, {"A": 1.0, "B": 0.0})] == ["x"]


def test_unknown_locators_are_dropped():
    fav = items("x")
    results = {"A": [("ghost", 0.1), ("x", 0.2)]}
    assert [i.id for i in fuse(results, fav, {"A": 1.0})] == ["x"]


def test_resolves_by_locator_when_id_unknown():
    fav = items("x")
    results = {"A": [("https://media.tenor.co/x.gif", 0.1)]}
    assert fuse(results, fav, {"A": 1.0}) == fav


def test_empty_results():
    assert fuse({}, items("x"), {"A": 1.0}) == []
