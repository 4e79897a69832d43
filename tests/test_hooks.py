from datetime import datetime, timedelta, timezone

import pytest

from epochs_node.epochs_runtime.hooks import MultiEpochHooks
from epochs_node.epochs_runtime.tracker import EpochTracker
from epochs_node.storage.state_store import MemoryEpochStore

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def test_hook_order_on_start_and_rollover(recording_hooks):
    tr = EpochTracker(MemoryEpochStore(), MultiEpochHooks(recording_hooks))
    tr.create_record("day", DAY, 1, None, T0)

    tr.evaluate(2, T0)
    tr.evaluate(3, T0 + timedelta(hours=1))
    tr.evaluate(4, T0 + DAY)

    assert recording_hooks.calls == [
        ("start", "day", 1, 2),
        ("end", "day", 1, 4),
        ("start", "day", 2, 4),
    ]


def test_multi_hooks_fan_out_in_order(recording_hooks):
    seen = []

    class Tagger:
        def after_epoch_end(self, identifier, epoch_number, ctx):
            seen.append(("tagger-end", epoch_number))

        def before_epoch_start(self, identifier, epoch_number, ctx):
            seen.append(("tagger-start", epoch_number))

    hooks = MultiEpochHooks(recording_hooks)
    hooks.register(Tagger())
    assert len(hooks) == 2

    tr = EpochTracker(MemoryEpochStore(), hooks)
    tr.create_record("day", DAY, 1, None, T0)
    tr.evaluate(2, T0)
    assert recording_hooks.calls == [("start", "day", 1, 2)]
    assert seen == [("tagger-start", 1)]


def test_failing_end_hook_leaves_record_untouched():
    class Boom:
        def after_epoch_end(self, identifier, epoch_number, ctx):
            raise RuntimeError("distribution failed")

        def before_epoch_start(self, identifier, epoch_number, ctx):
            pass

    tr = EpochTracker(MemoryEpochStore(), Boom())
    tr.create_record("day", DAY, 1, None, T0)
    tr.evaluate(2, T0)
    before = tr.get_record("day")

    with pytest.raises(RuntimeError):
        tr.evaluate(3, T0 + DAY)
    assert tr.get_record("day") == before


def test_failing_start_hook_reverts_the_whole_block():
    class FailOnWeek:
        def after_epoch_end(self, identifier, epoch_number, ctx):
            pass

        def before_epoch_start(self, identifier, epoch_number, ctx):
            if identifier == "week":
                raise RuntimeError("week consumer failed")

    tr = EpochTracker(MemoryEpochStore(), FailOnWeek())
    tr.create_record("day", DAY, 1, None, T0)
    tr.create_record("week", 7 * DAY, 1, None, T0)
    before = tr.list_records()

    with pytest.raises(RuntimeError):
        tr.evaluate(2, T0)
    # "day" sorts first and had already been advanced
    assert tr.list_records() == before
    assert tr.get_record("day").counting_started is False
