from __future__ import annotations
import random
from app.services.prompt_order import fisher_yates, incomplete_first


def test_shuffle_is_a_permutation_and_leaves_input_alone():
    items = list(range(20))
    out = fisher_yates(items, random.Random(7))
    assert sorted(out) == items
    assert items == list(range(20))


def test_shuffle_is_reproducible_with_a_seeded_rng():
    assert fisher_yates("abcdef", random.Random(3)) == fisher_yates("abcdef", random.Random(3))


def test_shuffle_small_inputs():
    assert fisher_yates([]) == []
    assert fisher_yates(["only"]) == ["only"]


def test_shuffle_reaches_every_position():
    rng = random.Random(11)
    seen_first = {fisher_yates([1, 2, 3], rng)[0] for _ in range(200)}
    assert seen_first == {1, 2, 3}


def test_incomplete_first_is_stable():
    order = ["p3", "p1", "p4", "p2", "p5"]
    done = {"p1", "p2"}
    assert incomplete_first(order, lambda p: p in done) == ["p3", "p4", "p5", "p1", "p2"]


def test_incomplete_first_all_done_or_none_done():
    assert incomplete_first([1, 2, 3], lambda _: True) == [1, 2, 3]
    assert incomplete_first([1, 2, 3], lambda _: False) == [1, 2, 3]
