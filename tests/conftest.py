import pytest

from cellgraph import _tracking, plugins


@pytest.fixture(autouse=True)
def _isolate_globals():
    """Restore the flush scheduler and plugin registry after each test."""
    yield
    _tracking.set_scheduler(None)
    for plugin in plugins.registered():
        plugins.remove(plugin)
    _tracking._pending.clear()
    _tracking._batch_depth = 0
    _tracking._flushing = False
