"""
epochs_node/epochs_runtime/handler.py
-------------------------------------

Message dispatch for the epochs module.

Message kinds are a closed set, so dispatch is a plain lookup table from
message type to handler function. Unknown kinds raise UnknownMessage.

    handle(tracker, ctx, MsgAddEpoch("daily", timedelta(days=1)))
    -> {"ok": True, "type": "add_epoch", "epoch": {...}}
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Union

from .codec import decode_duration, decode_time, record_to_dict
from .tracker import EpochTracker
from .types import BlockContext, UnknownMessage


@dataclass(frozen=True)
class MsgAddEpoch:
    identifier: str
    duration: timedelta
    start_time: Optional[datetime] = None
    start_height: Optional[int] = None

    type = "add_epoch"


@dataclass(frozen=True)
class MsgDeleteEpoch:
    identifier: str

    type = "delete_epoch"


Msg = Union[MsgAddEpoch, MsgDeleteEpoch]


def _handle_add_epoch(tracker: EpochTracker, ctx: BlockContext, msg: MsgAddEpoch) -> Dict[str, Any]:
    start_height = ctx.height if msg.start_height is None else int(msg.start_height)
    rec = tracker.create_record(msg.identifier, msg.duration, start_height, msg.start_time, ctx.time)
    return {"ok": True, "type": msg.type, "epoch": record_to_dict(rec)}


def _handle_delete_epoch(tracker: EpochTracker, ctx: BlockContext, msg: MsgDeleteEpoch) -> Dict[str, Any]:
    tracker.delete_record(msg.identifier)
    return {"ok": True, "type": msg.type, "identifier": msg.identifier}


HANDLERS: Dict[type, Callable[[EpochTracker, BlockContext, Any], Dict[str, Any]]] = {
    MsgAddEpoch: _handle_add_epoch,
    MsgDeleteEpoch: _handle_delete_epoch,
}


def handle(tracker: EpochTracker, ctx: BlockContext, msg: Any) -> Dict[str, Any]:
    fn = HANDLERS.get(type(msg))
    if fn is None:
        raise UnknownMessage(f"unrecognized epochs message type: {type(msg).__name__}")
    return fn(tracker, ctx, msg)


# ---------------------------------------------------------------------------
# JSON lane
# ---------------------------------------------------------------------------


def _add_epoch_from_dict(d: Dict[str, Any]) -> MsgAddEpoch:
    sh = d.get("start_height")
    return MsgAddEpoch(
        identifier=str(d.get("identifier", "")),
        duration=decode_duration(d.get("duration_seconds", 0), d.get("identifier")),
        start_time=decode_time(d.get("start_time")),
        start_height=None if sh is None else int(sh),
    )


def _delete_epoch_from_dict(d: Dict[str, Any]) -> MsgDeleteEpoch:
    return MsgDeleteEpoch(identifier=str(d.get("identifier", "")))


DECODERS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    MsgAddEpoch.type: _add_epoch_from_dict,
    MsgDeleteEpoch.type: _delete_epoch_from_dict,
}


def msg_from_dict(d: Dict[str, Any]) -> Msg:
    """Decode {"type": "add_epoch" | "delete_epoch", ...} into a message."""
    kind = str(d.get("type", ""))
    dec = DECODERS.get(kind)
    if dec is None:
        raise UnknownMessage(f"unrecognized epochs message type: {kind or '<missing>'}")
    return dec(d)
