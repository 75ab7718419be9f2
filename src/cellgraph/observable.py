"""Observable values: cells that notify listeners when they change.

An Observable is attached while it has listeners or an attached output.
Attached observables are linked into their inputs' output lists and are kept
fresh by the batch flush; unattached ones are not referenced by their inputs
and re-evaluate on every read.

A value may itself be another observable (aliasing): the holder then mirrors
the aliased observable's value and depends on it until the alias changes.

All state lives in _anchor; instances are thin handles holding an _id.
"""

from __future__ import annotations

import weakref
from typing import TYPE_CHECKING, Callable, Generic, TypeVar

from cellgraph import _anchor, plugins
from cellgraph._tracking import begin_batch, current_capture, end_batch, mark, untracked

if TYPE_CHECKING:
    from cellgraph.derived import DerivedObservable

T = TypeVar("T")
U = TypeVar("U")

Listener = Callable[[T, T], None]
Unsubscribe = Callable[[], None]


class Observable(Generic[T]):
    """Read side of an observable: get, subscribe, and derivation helpers."""

    __slots__ = ("_id", "__weakref__")

    def __init__(self) -> None:
        self._id = _anchor.new_id()
        _anchor.values[self._id] = None
        _anchor.aliases[self._id] = None
        _anchor.inputs[self._id] = []
        _anchor.outputs[self._id] = []
        _anchor.listeners[self._id] = []
        _anchor.attached[self._id] = False
        _anchor.dirty[self._id] = False
        weakref.finalize(self, _anchor.release, self._id)

    def get(self) -> T:
        """Read the value. If inside a computation, registers the dependency."""
        frame = current_capture.get()
        if frame is None:
            return self._read()
        frame[self] = None
        # Only direct reads are captured, not what resolving this one reads.
        with untracked():
            return self._read()

    def subscribe(self, listener: Listener[T]) -> Unsubscribe:
        """Call listener(value, previous) on every change. Returns an unsubscribe function."""
        _anchor.listeners[self._id].append(listener)
        self._attach()

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            _anchor.listeners[self._id].remove(listener)
            self._detach()

        return unsubscribe

    def select(self, fn: Callable[[T], U | Observable[U]]) -> DerivedObservable[U]:
        """Derive an observable holding fn(value).

        fn may return another observable, in which case the result mirrors it.
        """
        from cellgraph.derived import combine

        return combine([self], fn)

    def filter(self, predicate: Callable[[T], bool]) -> DerivedObservable[T | None]:
        """Derive an observable holding the last value that passed predicate.

        Starts at None if the current value does not pass.
        """
        kept = None

        def keep(value):
            nonlocal kept
            if predicate(value):
                kept = value
            return kept

        return self.select(keep)

    @property
    def attached(self) -> bool:
        return _anchor.attached[self._id]

    # --- Evaluation ---

    def _read(self) -> T:
        if _anchor.attached[self._id] and not _anchor.dirty[self._id]:
            return _anchor.values[self._id]
        return self._refresh()

    def _evaluate(self) -> tuple[object, list]:
        """Return (raw value, inputs used). Derived observables have an evaluator."""
        evaluator = _anchor.evaluators.get(self._id)
        if evaluator is None:
            return _anchor.raws[self._id], []
        return evaluator()

    def _refresh(self) -> T:
        """Re-evaluate and store the value without notifying anyone."""
        raw, inputs = self._evaluate()
        alias = raw if isinstance(raw, Observable) else None
        if alias is not None and alias not in inputs:
            inputs = [*inputs, alias]
        self._set_inputs(inputs)
        _anchor.aliases[self._id] = alias
        value = alias._read() if alias is not None else raw
        _anchor.values[self._id] = value
        _anchor.dirty[self._id] = False
        return value

    def _notify(self, value: object, previous: object) -> None:
        """Announce a settled value to plugins and listeners if it changed."""
        if value is previous:
            return
        plugins.emit_change(self, value, previous)
        # Snapshot, listeners may unsubscribe while being called.
        for listener in list(_anchor.listeners[self._id]):
            listener(value, previous)

    # --- Graph edges ---

    def _set_inputs(self, new_inputs: list) -> None:
        old_inputs = _anchor.inputs[self._id]
        if old_inputs == new_inputs:
            return
        removed = [input_ for input_ in old_inputs if input_ not in new_inputs]
        added = [input_ for input_ in new_inputs if input_ not in old_inputs]
        _anchor.inputs[self._id] = list(new_inputs)
        if _anchor.attached[self._id]:
            for input_ in removed:
                self._unlink(input_)
            for input_ in added:
                self._link(input_)

    def _link(self, input_: Observable) -> None:
        _anchor.outputs[input_._id].append(self)
        plugins.emit_attach(input_, self)
        input_._attach()

    def _unlink(self, input_: Observable) -> None:
        _anchor.outputs[input_._id].remove(self)
        plugins.emit_detach(input_, self)
        input_._detach()

    # --- Attach / detach ---

    def _observed(self) -> bool:
        return bool(_anchor.listeners[self._id]) or bool(_anchor.outputs[self._id])

    def _attach(self) -> None:
        if _anchor.attached[self._id] or not self._observed():
            return
        # Inputs recorded while unattached may be stale. Re-evaluate before
        # linking so only what the current value depends on gets attached.
        self._refresh()
        _anchor.attached[self._id] = True
        for input_ in list(_anchor.inputs[self._id]):
            self._link(input_)

    def _detach(self) -> None:
        if not _anchor.attached[self._id] or self._observed():
            return
        _anchor.attached[self._id] = False
        for input_ in list(_anchor.inputs[self._id]):
            self._unlink(input_)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_anchor.values.get(self._id)!r})"


class WritableObservable(Observable[T]):
    """A root cell. Holds a value, or another observable to mirror."""

    __slots__ = ()

    def __init__(self, value: T | Observable[T]) -> None:
        super().__init__()
        _anchor.raws[self._id] = value
        self._refresh()
        plugins.emit_create(self, value)

    def _read(self) -> T:
        if _anchor.aliases[self._id] is None:
            return _anchor.values[self._id]
        return super()._read()

    def set(self, value: T | Observable[T]) -> None:
        """Write a new value. Listeners are notified when the batch flushes."""
        previous = self._read()
        _anchor.raws[self._id] = value
        current = self._refresh()
        if current is previous:
            return
        begin_batch()
        try:
            mark(self, previous)
        finally:
            end_batch()

    def update(self, fn: Callable[[T], T | Observable[T]]) -> None:
        """Write fn(current value)."""
        self.set(fn(self.get()))

    def read_only(self) -> Observable[T]:
        return self


def cell(value: T | Observable[T]) -> WritableObservable[T]:
    """Create a writable observable.

    Usage:
        book = cell("The Jungle Book")
        book.subscribe(lambda new, old: print(f"{old} -> {new}"))

        book.set("Hamlet")
        # prints "The Jungle Book -> Hamlet"

        mirror = cell(book)
        mirror.get()  # "Hamlet", follows book until set to something else
    """
    return WritableObservable(value)
