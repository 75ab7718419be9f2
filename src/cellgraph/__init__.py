"""cellgraph: observable cells, derived values and batched change notification."""

from importlib.metadata import version as _version

__version__ = _version("cellgraph")

from cellgraph._tracking import NestedCaptureError, get_pending_count, set_scheduler
from cellgraph.observable import Observable, WritableObservable, cell
from cellgraph.derived import DerivedObservable, combine, join, merge, latest
from cellgraph.computed import ComputedObservable, compute
from cellgraph.action import action, batch, transaction
from cellgraph import plugins

__all__ = [
    "Observable",
    "WritableObservable",
    "DerivedObservable",
    "ComputedObservable",
    "cell",
    "combine",
    "join",
    "merge",
    "latest",
    "compute",
    "batch",
    "action",
    "transaction",
    "set_scheduler",
    "get_pending_count",
    "NestedCaptureError",
    "plugins",
]
