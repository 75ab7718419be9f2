"""Dependency tracking engine: the heart of cellgraph.

Uses contextvars to record which observables a computation reads directly,
so ambient derivations can rebuild their input set after every evaluation.

Batching: writes accumulate into a pending map of observable -> pre-batch
value. When the outermost batch closes, the flush is handed to the scheduler,
which settles every pending observable in dependency order and notifies each
one at most once.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

from cellgraph import _anchor

if TYPE_CHECKING:
    from cellgraph.observable import Observable

logger = logging.getLogger("cellgraph.tracking")


class NestedCaptureError(RuntimeError):
    """An ambient computation was started from inside another one."""


# The input frame of the computation currently being evaluated.
# When set, Observable.get() records itself into it. Insertion-ordered.
current_capture: contextvars.ContextVar[dict | None] = contextvars.ContextVar(
    "current_capture", default=None
)


@contextmanager
def capturing() -> Iterator[dict]:
    """Open a fresh capture frame. Frames do not nest."""
    if current_capture.get() is not None:
        raise NestedCaptureError(
            "Cannot capture inputs while another computation is capturing; "
            "read observables through get() instead of evaluating them directly"
        )
    frame: dict = {}
    token = current_capture.set(frame)
    try:
        yield frame
    finally:
        current_capture.reset(token)


@contextmanager
def untracked() -> Iterator[None]:
    """Suspend the active capture frame, if any."""
    token = current_capture.set(None)
    try:
        yield
    finally:
        current_capture.reset(token)


# ─── Batching ────────────────────────────────────────────────────────────────

# Batch depth counter. When > 0, flushing is deferred.
_batch_depth: int = 0

# Observables touched since the last flush, mapped to their pre-batch value.
_pending: dict[Observable, object] = {}

_flushing: bool = False


def _run_now(block: Callable[[], None]) -> None:
    block()


_scheduler: Callable[[Callable[[], None]], None] = _run_now


def set_scheduler(scheduler: Callable[[Callable[[], None]], None] | None) -> None:
    """Install the hook that runs batch flushes.

    The scheduler is called with a zero-argument block whenever the outermost
    batch closes with pending changes. The default runs it immediately. Pass
    None to restore the default.

        cellgraph.set_scheduler(lambda flush: loop.call_soon(flush))
    """
    global _scheduler
    _scheduler = scheduler if scheduler is not None else _run_now


def begin_batch() -> None:
    """Enter a batching scope. Nested batches are supported."""
    global _batch_depth
    _batch_depth += 1


def end_batch() -> None:
    """Exit a batching scope. When the outermost scope exits, flush pending changes."""
    global _batch_depth
    _batch_depth -= 1
    if _batch_depth == 0 and _pending:
        _scheduler(_flush_pending)


def mark(obs: Observable, previous: object) -> None:
    """Record obs and its attached outputs as changed in the current batch."""
    _pending.setdefault(obs, previous)
    for output in _anchor.outputs[obs._id]:
        if not _anchor.dirty[output._id]:
            _anchor.dirty[output._id] = True
            mark(output, _anchor.values[output._id])


def _settle_inputs(obs: Observable, batch: dict, settled: set) -> None:
    for input_ in list(_anchor.inputs[obs._id]):
        if input_ in batch:
            _settle(input_, batch, settled)


def _settle(obs: Observable, batch: dict, settled: set) -> None:
    """Settle obs after every pending input it reads, then notify it."""
    if obs in settled:
        return
    settled.add(obs)
    _settle_inputs(obs, batch, settled)
    value = obs._read()
    # A computation may have started reading other pending inputs.
    _settle_inputs(obs, batch, settled)
    obs._notify(value, batch[obs])
    if obs in _pending:
        # Re-marked while settling; it has already announced value.
        _pending[obs] = value


def _flush_pending() -> None:
    """Settle all pending observables. Handles writes made by listeners during flush."""
    global _flushing
    if _flushing:
        # The running flush drains whatever was added.
        return
    _flushing = True
    try:
        while _pending:
            # Snapshot and clear; listeners may write during settle.
            batch = dict(_pending)
            _pending.clear()
            logger.debug("Flushing %d observable(s)", len(batch))
            settled: set = set()
            try:
                for obs in list(batch):
                    _settle(obs, batch, settled)
            except BaseException:
                # Requeue what this pass did not reach so a later flush settles it.
                for obs, previous in batch.items():
                    if obs not in settled:
                        _pending.setdefault(obs, previous)
                raise
    finally:
        _flushing = False


def get_pending_count() -> int:
    """Number of observables waiting to be flushed. Useful for testing."""
    return len(_pending)
