from datetime import datetime, timedelta, timezone

import pytest

from epochs_node.epochs_runtime.handler import (
    MsgAddEpoch,
    MsgDeleteEpoch,
    handle,
    msg_from_dict,
)
from epochs_node.epochs_runtime.types import BlockContext, InvalidDuration, NotFound, UnknownMessage

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
CTX = BlockContext(7, T0)


def test_add_epoch_defaults_to_block_context(tracker):
    res = handle(tracker, CTX, MsgAddEpoch("daily", timedelta(days=1)))
    assert res["ok"] is True
    assert res["type"] == "add_epoch"
    rec = tracker.get_record("daily")
    assert rec.start_height == 7
    assert rec.start_time == T0


def test_add_epoch_with_explicit_start(tracker):
    start = T0 + timedelta(days=3)
    handle(tracker, CTX, MsgAddEpoch("daily", timedelta(days=1), start_time=start, start_height=2))
    rec = tracker.get_record("daily")
    assert rec.start_time == start
    assert rec.start_height == 2


def test_delete_epoch(tracker):
    handle(tracker, CTX, MsgAddEpoch("daily", timedelta(days=1)))
    res = handle(tracker, CTX, MsgDeleteEpoch("daily"))
    assert res == {"ok": True, "type": "delete_epoch", "identifier": "daily"}
    with pytest.raises(NotFound):
        handle(tracker, CTX, MsgDeleteEpoch("daily"))


def test_unknown_message_type(tracker):
    with pytest.raises(UnknownMessage):
        handle(tracker, CTX, {"type": "add_epoch"})


def test_msg_from_dict():
    msg = msg_from_dict(
        {"type": "add_epoch", "identifier": "hourly", "duration_seconds": 3600, "start_time": "2024-01-01T13:00:00Z"}
    )
    assert msg == MsgAddEpoch("hourly", timedelta(hours=1), start_time=T0 + timedelta(hours=1))
    assert msg_from_dict({"type": "delete_epoch", "identifier": "hourly"}) == MsgDeleteEpoch("hourly")
    with pytest.raises(UnknownMessage):
        msg_from_dict({"type": "swap"})


@pytest.mark.parametrize("raw", [float("nan"), float("inf"), 1e300, "soon", None])
def test_msg_from_dict_rejects_unusable_duration(raw):
    with pytest.raises(InvalidDuration) as exc:
        msg_from_dict({"type": "add_epoch", "identifier": "hourly", "duration_seconds": raw})
    assert exc.value.identifier == "hourly"
