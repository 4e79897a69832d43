import pytest

from epochs_node.epochs_runtime.tracker import EpochTracker
from epochs_node.executor import EpochsExecutor
from epochs_node.storage.state_store import MemoryEpochStore


@pytest.fixture
def store():
    return MemoryEpochStore()


@pytest.fixture
def tracker(store):
    return EpochTracker(store)


@pytest.fixture
def executor():
    """Fresh in-memory executor, no genesis run yet."""
    ex = EpochsExecutor(MemoryEpochStore())
    yield ex
    ex.stop()


class RecordingHooks:
    def __init__(self):
        self.calls = []

    def after_epoch_end(self, identifier, epoch_number, ctx):
        self.calls.append(("end", identifier, epoch_number, ctx.height))

    def before_epoch_start(self, identifier, epoch_number, ctx):
        self.calls.append(("start", identifier, epoch_number, ctx.height))


@pytest.fixture
def recording_hooks():
    return RecordingHooks()
