"""
epochs_node/epochs_runtime/types.py
-----------------------------------

Core value types for the epoch tracker.

- EpochRecord:     one per identifier, the persisted state of a recurring window
- TransitionEvent: what evaluate() hands back to downstream modules
- BlockContext:    the (height, time) pair supplied by the host per block

Records are frozen dataclasses. The tracker produces new records with
dataclasses.replace() and readers only ever receive values, never a live
reference into the store.

All times are timezone-aware UTC datetimes. Naive datetimes coming in from
callers are interpreted as UTC by as_utc().
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class EpochError(Exception):
    """Base class for caller-misuse errors raised by the epochs runtime."""

    code = "epoch_error"

    def __init__(self, message: str = "", *, identifier: Optional[str] = None) -> None:
        super().__init__(message or self.code)
        self.identifier = identifier


class DuplicateIdentifier(EpochError):
    code = "duplicate_identifier"


class NotFound(EpochError):
    code = "not_found"


class InvalidDuration(EpochError):
    code = "invalid_duration"


class InvalidIdentifier(EpochError):
    code = "invalid_identifier"


class InvalidRecord(EpochError):
    code = "invalid_record"


class UnknownMessage(EpochError):
    code = "unknown_message"


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to tz-aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def as_utc_opt(value: Optional[datetime]) -> Optional[datetime]:
    return None if value is None else as_utc(value)


# ---------------------------------------------------------------------------
# Block context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BlockContext:
    height: int
    time: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "height", int(self.height))
        object.__setattr__(self, "time", as_utc(self.time))


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EpochRecord:
    """
    Persisted state of one recurring epoch.

    `current_epoch_start_time` is None until the first start fires; after
    that it only ever moves forward by whole multiples of `duration`.
    """

    identifier: str
    duration: timedelta
    start_height: int
    start_time: datetime
    current_epoch: int = 0
    current_epoch_start_height: int = 0
    current_epoch_start_time: Optional[datetime] = None
    counting_started: bool = False

    @classmethod
    def new(
        cls,
        identifier: str,
        duration: timedelta,
        start_height: int,
        start_time: datetime,
    ) -> "EpochRecord":
        return cls(
            identifier=identifier,
            duration=duration,
            start_height=int(start_height),
            start_time=as_utc(start_time),
            current_epoch=0,
            current_epoch_start_height=int(start_height),
            current_epoch_start_time=None,
            counting_started=False,
        )

    def next_boundary(self) -> Optional[datetime]:
        """
        Nominal end of the current epoch, or None before counting starts.

        Also None when the boundary lies past datetime.max: no block time can
        ever reach it, so the epoch simply never rolls over.
        """
        if not self.counting_started or self.current_epoch_start_time is None:
            return None
        try:
            return self.current_epoch_start_time + self.duration
        except OverflowError:
            return None


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TransitionKind(str, enum.Enum):
    STARTED = "started"
    ROLLED_OVER = "rolled_over"


@dataclass(frozen=True)
class TransitionEvent:
    identifier: str
    kind: TransitionKind
    new_epoch_number: int
    epoch_start_time: datetime
    height: int

    def to_dict(self) -> dict:
        return {
            "identifier": self.identifier,
            "kind": self.kind.value,
            "new_epoch_number": self.new_epoch_number,
            "epoch_start_time": self.epoch_start_time.isoformat(),
            "height": self.height,
        }
