import json
from datetime import datetime, timedelta, timezone

import pytest

from epochs_node.epochs_runtime.tracker import EpochTracker
from epochs_node.storage.sqlite_store import SQLiteEpochStore
from epochs_node.storage.state_store import JSONEpochStore, MemoryEpochStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def _advance(store):
    tr = EpochTracker(store)
    tr.create_record("week", 7 * DAY, 1, None, T0)
    tr.create_record("day", DAY, 1, None, T0)
    tr.create_record("later", DAY, 1, T0 + 30 * DAY, T0)
    tr.evaluate(2, T0 + timedelta(seconds=5))
    tr.evaluate(3, T0 + DAY + timedelta(seconds=5))
    return tr.list_records()


def test_json_store_survives_reopen(tmp_path):
    path = tmp_path / "epochs_state.json"
    records = _advance(JSONEpochStore(path))
    reopened = JSONEpochStore(path)
    assert reopened.list_all() == records
    assert reopened.get("later").current_epoch_start_time is None


def test_json_store_is_canonical(tmp_path):
    a, b = tmp_path / "a" / "s.json", tmp_path / "b" / "s.json"
    _advance(JSONEpochStore(a))
    _advance(JSONEpochStore(b))
    assert a.read_bytes() == b.read_bytes()
    doc = json.loads(a.read_text())
    assert doc["schema_version"] == 1
    assert doc["epochs"]["day"]["duration_seconds"] == 86400


def test_json_store_deferred_until_flush(tmp_path):
    path = tmp_path / "epochs_state.json"
    store = JSONEpochStore(path, autosave=False)
    EpochTracker(store).create_record("day", DAY, 1, None, T0)
    assert not path.exists()
    store.flush()
    assert JSONEpochStore(path).get("day") is not None


def test_json_store_falls_back_to_backup(tmp_path):
    path = tmp_path / "epochs_state.json"
    store = JSONEpochStore(path)
    tr = EpochTracker(store)
    tr.create_record("day", DAY, 1, None, T0)
    tr.create_record("week", 7 * DAY, 1, None, T0)

    path.write_text("{not json", encoding="utf-8")
    recovered = JSONEpochStore(path)
    # .bak1 holds the snapshot from before the last save
    assert [r.identifier for r in recovered.list_all()] == ["day"]


def test_sqlite_store_survives_reopen(tmp_path):
    db = str(tmp_path / "epochs.db")
    store = SQLiteEpochStore(db)
    records = _advance(store)
    store.close()

    reopened = SQLiteEpochStore(db)
    assert reopened.list_all() == records
    reopened.close()


def test_sqlite_uncommitted_writes_are_lost(tmp_path):
    db = str(tmp_path / "epochs.db")
    store = SQLiteEpochStore(db, autocommit=False)
    EpochTracker(store).create_record("day", DAY, 1, None, T0)
    store.conn.rollback()
    assert store.get("day") is None
    store.close()


@pytest.mark.parametrize("factory", ["memory", "json", "sqlite"])
def test_backends_agree(tmp_path, factory):
    if factory == "memory":
        store = MemoryEpochStore()
    elif factory == "json":
        store = JSONEpochStore(tmp_path / "s.json")
    else:
        store = SQLiteEpochStore(str(tmp_path / "s.db"))
    assert _advance(store) == _advance(MemoryEpochStore())


def test_memory_store_delete_and_len():
    store = MemoryEpochStore()
    EpochTracker(store).create_record("day", DAY, 1, None, T0)
    assert len(store) == 1
    store.delete("day")
    store.delete("day")
    assert len(store) == 0
