from __future__ import annotations
import random
from typing import Callable, Iterable, Sequence, TypeVar

T = TypeVar("T")


def fisher_yates(items: Sequence[T], rng: random.Random | None = None) -> list[T]:
    """Unbiased permutation; returns a new list."""
    rng = rng or random.SystemRandom()
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def incomplete_first(items: Iterable[T], is_done: Callable[[T], bool]) -> list[T]:
    """Stable partition: pending items keep their order above completed ones."""
    items = list(items)
    return [x for x in items if not is_done(x)] + [x for x in items if is_done(x)]
