"""Instrumentation plugins: observe the graph without changing it.

A plugin subclasses Plugin and overrides any of its hooks. Registered plugins
are called in registration order; exceptions they raise propagate to the
operation that triggered the hook.

    class Counter(Plugin):
        def __init__(self):
            self.changes = 0

        def on_change(self, observable, value, previous):
            self.changes += 1

    plugins.use(Counter())
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cellgraph.observable import Observable

_plugins: list[Plugin] = []


class Plugin:
    """Base class for instrumentation hooks. Every hook is a no-op."""

    def on_create(self, observable: Observable, value: object) -> None:
        """Called once per observable. value is None for derived observables."""

    def on_change(self, observable: Observable, value: object, previous: object) -> None:
        """Called when a flush settles observable to a new value, before its listeners."""

    def on_attach(self, input_: Observable, output: Observable) -> None:
        """Called when output starts receiving updates from input_."""

    def on_detach(self, input_: Observable, output: Observable) -> None:
        """Called when output stops receiving updates from input_."""


class LoggingPlugin(Plugin):
    """Logs every graph event to the ``cellgraph.plugins`` logger."""

    def __init__(self, level: int = logging.DEBUG, logger: logging.Logger | None = None) -> None:
        self.level = level
        self.logger = logger or logging.getLogger("cellgraph.plugins")

    # Observables render their live value, so arguments are formatted now
    # rather than when a handler emits the record.

    def on_create(self, observable, value):
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, "Created %s", repr(observable))

    def on_change(self, observable, value, previous):
        if self.logger.isEnabledFor(self.level):
            self.logger.log(
                self.level,
                "Changed %s(%r): %r -> %r",
                type(observable).__name__,
                value,
                previous,
                value,
            )

    def on_attach(self, input_, output):
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, "Attached %s -> %s", repr(input_), repr(output))

    def on_detach(self, input_, output):
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, "Detached %s -> %s", repr(input_), repr(output))


def use(plugin: Plugin) -> None:
    """Register a plugin."""
    _plugins.append(plugin)


def remove(plugin: Plugin) -> None:
    """Unregister a plugin. Removing an unknown plugin is a no-op."""
    try:
        _plugins.remove(plugin)
    except ValueError:
        pass


def registered() -> list[Plugin]:
    return list(_plugins)


# ─── Dispatch (internal) ─────────────────────────────────────────────────────


def emit_create(observable, value) -> None:
    for plugin in _plugins:
        plugin.on_create(observable, value)


def emit_change(observable, value, previous) -> None:
    for plugin in _plugins:
        plugin.on_change(observable, value, previous)


def emit_attach(input_, output) -> None:
    for plugin in _plugins:
        plugin.on_attach(input_, output)


def emit_detach(input_, output) -> None:
    for plugin in _plugins:
        plugin.on_detach(input_, output)
