"""Data anchor: plain Python structures that hold all graph state.

Every observable is a thin handle holding an `_id`; its value, edges,
listeners and lifecycle flags live here. Separating data from behavior keeps
the graph walkable without touching handle internals, and lets a handle's
state be dropped in one place when the handle is garbage-collected.
"""

import itertools

# Value state
values: dict[int, object] = {}  # id -> resolved (cached) value
raws: dict[int, object] = {}  # cell id -> value as written (may be an observable)
aliases: dict[int, object] = {}  # id -> observable currently mirrored, if any

# Graph edges. Inputs own their observables; outputs only list attached
# observables and are used for traversal.
inputs: dict[int, list] = {}
outputs: dict[int, list] = {}

# Lifecycle
listeners: dict[int, list] = {}
attached: dict[int, bool] = {}
dirty: dict[int, bool] = {}

# Derived observables only: id -> callable returning (raw_value, inputs)
evaluators: dict[int, object] = {}

_id_counter = itertools.count(1)

_TABLES = (values, raws, aliases, inputs, outputs, listeners, attached, dirty, evaluators)


def new_id() -> int:
    return next(_id_counter)


def release(obs_id: int) -> None:
    """Forget everything stored for obs_id. Called when its handle dies."""
    for table in _TABLES:
        table.pop(obs_id, None)
