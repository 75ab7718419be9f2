"""Batches: coalesce several writes into one notification per observable.

Writes inside batch(), an @action or `with transaction()` only record what
changed. When the outermost scope exits, every affected observable is
settled in dependency order and its listeners fire once, with the value from
before the batch as `previous`.
"""

from __future__ import annotations

import functools
from contextlib import contextmanager
from typing import Callable, Iterator, ParamSpec, TypeVar

from cellgraph._tracking import begin_batch, end_batch

P = ParamSpec("P")
R = TypeVar("R")


def batch(fn: Callable[[], R]) -> R:
    """Run fn inside a batch and return its result.

    Usage:
        numbers = [cell(i) for i in range(10)]
        total = merge(numbers).select(sum)
        total.subscribe(lambda new, old: print(new))

        batch(lambda: [n.update(lambda v: v + 1) for n in numbers])
        # prints 55 once, not ten times
    """
    begin_batch()
    try:
        return fn()
    finally:
        end_batch()


def action(fn: Callable[P, R]) -> Callable[P, R]:
    """Decorator: run every call to fn inside a batch.

    Usage:
        first = cell("Ada")
        last = cell("Lovelace")

        @action
        def rename(a, b):
            first.set(a)
            last.set(b)
            # listeners see both changes at once, not one at a time
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        begin_batch()
        try:
            return fn(*args, **kwargs)
        finally:
            end_batch()

    return wrapper


@contextmanager
def transaction() -> Iterator[None]:
    """Context manager for batching writes.

    Usage:
        with transaction():
            first.set("Grace")
            last.set("Hopper")
            # listeners fire here, after both are set
    """
    begin_batch()
    try:
        yield
    finally:
        end_batch()
