"""
epochs_node/epochs_runtime/codec.py
-----------------------------------

Plain-dict encoding of EpochRecord for the JSON/SQLite stores and genesis
files.

Layout (one record):

    {
        "identifier": "week",
        "duration_seconds": 604800,
        "start_height": 1,
        "start_time": "2024-01-01T00:00:00+00:00",
        "current_epoch": 0,
        "current_epoch_start_height": 1,
        "current_epoch_start_time": null,
        "counting_started": false
    }

`start_time` may be null in genesis input only ("start counting at the
genesis block time"). Stored records always carry a concrete start_time.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from .types import EpochRecord, InvalidDuration, as_utc


def encode_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat()


def decode_time(raw: Any) -> Optional[datetime]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return as_utc(raw)
    text = str(raw).strip()
    # fromisoformat() only learned "Z" in 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def encode_duration(value: timedelta) -> float | int:
    # whole seconds stay ints so snapshots read naturally
    if value.microseconds == 0:
        return value.days * 86400 + value.seconds
    return value.total_seconds()


def duration_from_seconds(raw: Any, identifier: Optional[str] = None) -> timedelta:
    """
    Seconds (int/float/str) -> timedelta. NaN, infinities, values past
    timedelta.max and non-numbers raise InvalidDuration.
    """
    try:
        return timedelta(seconds=float(raw))
    except (TypeError, ValueError, OverflowError):
        raise InvalidDuration(
            f"epoch duration {raw!r} is not a valid number of seconds", identifier=identifier
        ) from None


def decode_duration(raw: Any, identifier: Optional[str] = None) -> timedelta:
    if isinstance(raw, timedelta):
        return raw
    return duration_from_seconds(raw, identifier)


def record_to_dict(rec: EpochRecord) -> Dict[str, Any]:
    return {
        "identifier": rec.identifier,
        "duration_seconds": encode_duration(rec.duration),
        "start_height": rec.start_height,
        "start_time": encode_time(rec.start_time),
        "current_epoch": rec.current_epoch,
        "current_epoch_start_height": rec.current_epoch_start_height,
        "current_epoch_start_time": encode_time(rec.current_epoch_start_time),
        "counting_started": rec.counting_started,
    }


def record_from_dict(d: Dict[str, Any]) -> EpochRecord:
    start_time = decode_time(d.get("start_time"))
    if start_time is None:
        raise ValueError(f"stored record {d.get('identifier')!r} has no start_time")
    return EpochRecord(
        identifier=str(d["identifier"]),
        duration=decode_duration(d["duration_seconds"], d.get("identifier")),
        start_height=int(d.get("start_height", 0)),
        start_time=start_time,
        current_epoch=int(d.get("current_epoch", 0)),
        current_epoch_start_height=int(d.get("current_epoch_start_height", d.get("start_height", 0))),
        current_epoch_start_time=decode_time(d.get("current_epoch_start_time")),
        counting_started=bool(d.get("counting_started", False)),
    )
