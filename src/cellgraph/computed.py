"""Computed observables: derived state with automatic input capture.

A ComputedObservable wraps a zero-argument function. Each evaluation records
which observables the function reads through get(), and that set becomes the
observable's inputs until the next evaluation. Inputs that are no longer read
are dropped; inputs that are still read keep their existing edges.

Like every derived observable, it re-evaluates on each read while unattached
and once per relevant upstream change while attached.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from cellgraph import _anchor, plugins
from cellgraph._tracking import NestedCaptureError, capturing
from cellgraph.observable import Observable

T = TypeVar("T")

# Ids of computations currently running their function.
_evaluating: set[int] = set()


class ComputedObservable(Observable[T]):
    """A derived value whose inputs are whatever its function reads."""

    __slots__ = ()

    def __init__(self, fn: Callable[[], T | Observable[T]]) -> None:
        super().__init__()
        obs_id = self._id

        def evaluate():
            if obs_id in _evaluating:
                raise NestedCaptureError(
                    f"{getattr(fn, '__name__', fn)!s} was re-entered while it was being evaluated"
                )
            _evaluating.add(obs_id)
            try:
                with capturing() as frame:
                    raw = fn()
            finally:
                _evaluating.discard(obs_id)
            return raw, list(frame)

        _anchor.evaluators[obs_id] = evaluate
        _anchor.dirty[obs_id] = True
        plugins.emit_create(self, None)


def compute(fn: Callable[[], T | Observable[T]]) -> ComputedObservable[T]:
    """Decorator/factory to create a ComputedObservable from a function.

    Usage:
        title = cell("Hamlet")
        author = cell("Shakespeare")

        @compute
        def book():
            return {"title": title.get(), "author": author.get()}

        book.get()  # {"title": "Hamlet", "author": "Shakespeare"}
        title.set("Macbeth")
        book.get()  # {"title": "Macbeth", "author": "Shakespeare"}
    """
    return ComputedObservable(fn)
