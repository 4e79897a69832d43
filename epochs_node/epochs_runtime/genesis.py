"""
epochs_node/epochs_runtime/genesis.py
-------------------------------------

Genesis import/export for the epoch tracker.

A genesis entry either declares a fresh epoch (identifier, duration and
optionally start height/time) or carries the full progress of an exported
record (current epoch, counting flag, current epoch start). Fresh entries go
through EpochTracker.create_record(); exported ones through
EpochTracker.restore_record(), so a chain can be exported and re-imported
without losing its epoch numbers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .codec import decode_duration, decode_time, encode_duration, encode_time
from .tracker import EpochTracker, validate_duration, validate_identifier
from .types import BlockContext, DuplicateIdentifier, EpochRecord, as_utc_opt

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenesisEpoch:
    identifier: str
    duration: timedelta
    start_height: Optional[int] = None
    start_time: Optional[datetime] = None
    current_epoch: int = 0
    current_epoch_start_height: Optional[int] = None
    current_epoch_start_time: Optional[datetime] = None
    counting_started: bool = False

    @property
    def is_fresh(self) -> bool:
        return not self.counting_started and self.current_epoch == 0

    @classmethod
    def from_record(cls, rec: EpochRecord) -> "GenesisEpoch":
        return cls(
            identifier=rec.identifier,
            duration=rec.duration,
            start_height=rec.start_height,
            start_time=rec.start_time,
            current_epoch=rec.current_epoch,
            current_epoch_start_height=rec.current_epoch_start_height,
            current_epoch_start_time=rec.current_epoch_start_time,
            counting_started=rec.counting_started,
        )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GenesisEpoch":
        sh = d.get("start_height")
        ceh = d.get("current_epoch_start_height")
        return cls(
            identifier=str(d.get("identifier", "")),
            duration=decode_duration(d.get("duration_seconds", 0), d.get("identifier")),
            start_height=None if sh is None else int(sh),
            start_time=decode_time(d.get("start_time")),
            current_epoch=int(d.get("current_epoch", 0)),
            current_epoch_start_height=None if ceh is None else int(ceh),
            current_epoch_start_time=decode_time(d.get("current_epoch_start_time")),
            counting_started=bool(d.get("counting_started", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "duration_seconds": encode_duration(self.duration),
            "start_height": self.start_height,
            "start_time": encode_time(self.start_time),
            "current_epoch": self.current_epoch,
            "current_epoch_start_height": self.current_epoch_start_height,
            "current_epoch_start_time": encode_time(self.current_epoch_start_time),
            "counting_started": self.counting_started,
        }


@dataclass
class GenesisState:
    epochs: List[GenesisEpoch] = field(default_factory=list)

    def validate(self) -> None:
        """Raise the first EpochError found; an empty genesis is valid."""
        seen = set()
        for e in self.epochs:
            validate_identifier(e.identifier)
            validate_duration(e.duration, e.identifier, e.start_time)
            if e.identifier in seen:
                raise DuplicateIdentifier(
                    f"duplicated epoch entry {e.identifier!r}", identifier=e.identifier
                )
            seen.add(e.identifier)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "GenesisState":
        return cls(epochs=[GenesisEpoch.from_dict(x) for x in (d.get("epochs") or [])])

    def to_dict(self) -> Dict[str, Any]:
        return {"epochs": [e.to_dict() for e in self.epochs]}


def default_genesis(params: Optional[Dict[str, Any]] = None) -> GenesisState:
    """Genesis built from consensus/params.py (day + week unless overridden)."""
    from ..consensus.params import genesis_epochs

    return GenesisState(epochs=[GenesisEpoch.from_dict(d) for d in genesis_epochs(params)])


def init_genesis(tracker: EpochTracker, state: GenesisState, ctx: BlockContext) -> List[EpochRecord]:
    state.validate()
    created: List[EpochRecord] = []
    for e in state.epochs:
        start_height = ctx.height if e.start_height is None else e.start_height
        if e.is_fresh:
            rec = tracker.create_record(
                e.identifier, e.duration, start_height, e.start_time, ctx.time
            )
        else:
            rec = tracker.restore_record(
                EpochRecord(
                    identifier=e.identifier,
                    duration=e.duration,
                    start_height=start_height,
                    start_time=as_utc_opt(e.start_time) or ctx.time,
                    current_epoch=e.current_epoch,
                    current_epoch_start_height=(
                        start_height
                        if e.current_epoch_start_height is None
                        else e.current_epoch_start_height
                    ),
                    current_epoch_start_time=as_utc_opt(e.current_epoch_start_time),
                    counting_started=e.counting_started,
                )
            )
        created.append(rec)
    log.info("Initialized %d epochs at genesis height=%s", len(created), ctx.height)
    return created


def export_genesis(tracker: EpochTracker) -> GenesisState:
    return GenesisState(epochs=[GenesisEpoch.from_record(r) for r in tracker.list_records()])
