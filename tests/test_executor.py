from datetime import datetime, timedelta, timezone

import pytest

from epochs_node.epochs_runtime.genesis import GenesisEpoch, GenesisState
from epochs_node.epochs_runtime.handler import MsgAddEpoch
from epochs_node.epochs_runtime.types import DuplicateIdentifier, TransitionKind
from epochs_node.executor import EpochsExecutor, NoBlockInProgress, build_store
from epochs_node.storage.sqlite_store import SQLiteEpochStore
from epochs_node.storage.state_store import JSONEpochStore, MemoryEpochStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)
MONTH31 = timedelta(days=31)


def _monthly_genesis():
    return GenesisState(epochs=[GenesisEpoch("monthly", MONTH31)])


def test_init_chain_then_blocks(executor):
    res = executor.init_chain(1, T0, _monthly_genesis())
    assert res == {"ok": True, "height": 1, "epochs": ["monthly"]}

    started = executor.begin_block(2, T0 + timedelta(seconds=1))
    assert [e.kind for e in started] == [TransitionKind.STARTED]
    assert executor.last_events == [
        {"type": "epoch_start", "identifier": "monthly", "epoch_number": 1, "start_time": T0.isoformat()}
    ]

    rolled = executor.begin_block(3, T0 + timedelta(days=32))
    assert [(e.kind, e.new_epoch_number) for e in rolled] == [(TransitionKind.ROLLED_OVER, 2)]
    assert [ev["type"] for ev in executor.last_events] == ["epoch_end", "epoch_start"]
    assert executor.last_events[0]["epoch_number"] == 1

    assert executor.begin_block(4, T0 + timedelta(days=33)) == []
    assert executor.last_events == []


def test_init_chain_default_genesis(executor):
    res = executor.init_chain(1, T0)
    assert res["epochs"] == ["day", "week"]
    assert executor.is_initialized()


def test_deliver_requires_block(executor):
    with pytest.raises(NoBlockInProgress):
        executor.deliver(MsgAddEpoch("daily", DAY))


def test_deliver_uses_block_context(executor):
    executor.begin_block(10, T0)
    executor.deliver(MsgAddEpoch("daily", DAY))
    rec = executor.tracker.get_record("daily")
    assert (rec.start_height, rec.start_time) == (10, T0)
    with pytest.raises(DuplicateIdentifier):
        executor.deliver(MsgAddEpoch("daily", DAY))


def test_hooks_are_wired(recording_hooks):
    ex = EpochsExecutor(MemoryEpochStore(), hooks=[recording_hooks])
    ex.init_chain(1, T0, _monthly_genesis())
    ex.begin_block(2, T0)
    assert recording_hooks.calls == [("start", "monthly", 1, 2)]


def test_non_monotonic_blocks_only_warn(executor, caplog):
    executor.init_chain(5, T0, _monthly_genesis())
    executor.begin_block(5, T0 - timedelta(seconds=1))
    assert "did not increase" in caplog.text
    assert "went backwards" in caplog.text


def test_status(executor):
    executor.init_chain(1, T0, _monthly_genesis())
    executor.begin_block(2, T0)
    st = executor.status()
    assert st["height"] == 2
    assert st["epochs"] == 1
    assert st["last_events"][0]["type"] == "epoch_start"


def test_json_executor_persists_per_block(tmp_path):
    cfg = {"persistence": {"driver": "json", "json_path": "s.json"}}
    ex = EpochsExecutor.from_config(cfg, str(tmp_path))
    ex.init_chain(1, T0, _monthly_genesis())
    ex.begin_block(2, T0)
    ex.stop()

    again = EpochsExecutor.from_config(cfg, str(tmp_path))
    assert again.tracker.get_record("monthly").current_epoch == 1


@pytest.mark.parametrize(
    "driver, cls",
    [("memory", MemoryEpochStore), ("json", JSONEpochStore), ("sqlite", SQLiteEpochStore)],
)
def test_build_store_by_driver(tmp_path, driver, cls):
    store = build_store({"persistence": {"driver": driver}}, str(tmp_path))
    assert isinstance(store, cls)


def test_failed_block_is_not_persisted(tmp_path):
    class FailingStart:
        def after_epoch_end(self, identifier, epoch_number, ctx):
            pass

        def before_epoch_start(self, identifier, epoch_number, ctx):
            raise RuntimeError("consumer failed")

    cfg = {"persistence": {"driver": "json", "json_path": "s.json"}}
    ex = EpochsExecutor.from_config(cfg, str(tmp_path), hooks=[FailingStart()])
    ex.init_chain(1, T0, _monthly_genesis())

    with pytest.raises(RuntimeError):
        ex.begin_block(2, T0)
    assert ex.block.height == 1
    ex.stop()

    again = EpochsExecutor.from_config(cfg, str(tmp_path))
    rec = again.tracker.get_record("monthly")
    assert (rec.current_epoch, rec.counting_started) == (0, False)
