"""
epochs_node/epochs_runtime/tracker.py
-------------------------------------

Epoch Tracker: owns the set of EpochRecords and advances them once per
block.

Transition rule (per record, per evaluate() call):

    not counting yet:
        time <  start_time  -> nothing
        time >= start_time  -> first start: epoch = 1,
                               epoch_start_time = start_time,
                               epoch_start_height unchanged
    counting:
        boundary = epoch_start_time + duration
        time <  boundary    -> nothing
        time >= boundary    -> rollover: epoch += 1,
                               epoch_start_time = boundary,
                               epoch_start_height = height

At most one boundary is crossed per call. A tracker that was not evaluated
for several periods catches up one epoch per block.

Deterministic: same stored records + same (height, time) -> same records
and same events, on every replica.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..storage.state_store import EpochStore
from .hooks import EpochHooks, NoopEpochHooks
from .types import (
    BlockContext,
    DuplicateIdentifier,
    EpochRecord,
    InvalidDuration,
    InvalidIdentifier,
    InvalidRecord,
    NotFound,
    TransitionEvent,
    TransitionKind,
    as_utc,
)

log = logging.getLogger(__name__)


def validate_identifier(identifier: str) -> str:
    if not isinstance(identifier, str) or not identifier.strip():
        raise InvalidIdentifier("epoch identifier should not be empty", identifier=identifier)
    return identifier


def validate_duration(
    duration: timedelta,
    identifier: Optional[str] = None,
    start_time: Optional[datetime] = None,
) -> timedelta:
    if not isinstance(duration, timedelta) or duration <= timedelta(0):
        raise InvalidDuration("epoch duration should be positive", identifier=identifier)
    if start_time is not None:
        # the first boundary must be a representable datetime
        try:
            start_time + duration
        except OverflowError:
            raise InvalidDuration("epoch duration out of range", identifier=identifier) from None
    return duration


def next_state(
    rec: EpochRecord, height: int, time: datetime
) -> Tuple[EpochRecord, Optional[TransitionKind]]:
    """
    Pure transition function. Returns (new_record, kind) where kind is None
    when nothing changed (and new_record is rec itself).
    """
    if not rec.counting_started:
        if time < rec.start_time:
            return rec, None
        started = replace(
            rec,
            current_epoch=1,
            counting_started=True,
            current_epoch_start_time=rec.start_time,
        )
        return started, TransitionKind.STARTED

    boundary = rec.next_boundary()
    if boundary is None or time < boundary:
        return rec, None
    rolled = replace(
        rec,
        current_epoch=rec.current_epoch + 1,
        current_epoch_start_time=boundary,
        current_epoch_start_height=int(height),
    )
    return rolled, TransitionKind.ROLLED_OVER


class EpochTracker:
    """
    Record lifecycle + per-block evaluation over an EpochStore.

    The tracker is the only writer of EpochRecords. Everything it returns is
    an immutable snapshot.
    """

    def __init__(self, store: EpochStore, hooks: Optional[EpochHooks] = None) -> None:
        self.store = store
        self.hooks: EpochHooks = hooks or NoopEpochHooks()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_record(
        self,
        identifier: str,
        duration: timedelta,
        start_height: int,
        start_time: Optional[datetime],
        block_time: datetime,
    ) -> EpochRecord:
        """
        Create a new epoch record. `start_time=None` means "start counting
        at the current block time". No transition happens here.
        """
        validate_identifier(identifier)
        ref_time = as_utc(start_time) if start_time is not None else as_utc(block_time)
        validate_duration(duration, identifier, ref_time)
        if self.store.get(identifier) is not None:
            raise DuplicateIdentifier(
                f"epoch {identifier!r} already exists", identifier=identifier
            )

        rec = EpochRecord.new(identifier, duration, start_height, ref_time)
        self.store.set(identifier, rec)
        log.info(
            "Added epoch identifier=%s duration=%s start_height=%s start_time=%s",
            identifier,
            duration,
            rec.start_height,
            rec.start_time.isoformat(),
        )
        return rec

    def restore_record(self, rec: EpochRecord) -> EpochRecord:
        """
        Insert a record carrying existing progress (genesis import of an
        exported chain). Same uniqueness/duration rules as create_record().
        """
        validate_identifier(rec.identifier)
        validate_duration(rec.duration, rec.identifier, rec.start_time)
        if self.store.get(rec.identifier) is not None:
            raise DuplicateIdentifier(
                f"epoch {rec.identifier!r} already exists", identifier=rec.identifier
            )
        if rec.counting_started:
            if rec.current_epoch < 1 or rec.current_epoch_start_time is None:
                raise InvalidRecord(
                    "counting epoch needs current_epoch >= 1 and a start time",
                    identifier=rec.identifier,
                )
        elif rec.current_epoch != 0:
            raise InvalidRecord(
                "epoch that has not started must have current_epoch == 0",
                identifier=rec.identifier,
            )

        self.store.set(rec.identifier, rec)
        log.info("Restored epoch identifier=%s epoch=%s", rec.identifier, rec.current_epoch)
        return rec

    def get_record(self, identifier: str) -> EpochRecord:
        rec = self.store.get(identifier)
        if rec is None:
            raise NotFound(f"epoch {identifier!r} not found", identifier=identifier)
        return rec

    def has_record(self, identifier: str) -> bool:
        return self.store.get(identifier) is not None

    def list_records(self) -> List[EpochRecord]:
        return list(self.store.list_all())

    def current_epoch(self, identifier: str) -> int:
        return self.get_record(identifier).current_epoch

    def delete_record(self, identifier: str) -> None:
        if self.store.get(identifier) is None:
            raise NotFound(f"epoch {identifier!r} not found", identifier=identifier)
        self.store.delete(identifier)
        log.info("Deleted epoch identifier=%s", identifier)

    # ------------------------------------------------------------------
    # Per-block evaluation
    # ------------------------------------------------------------------

    def evaluate(self, current_height: int, current_time: datetime) -> List[TransitionEvent]:
        """
        Apply the transition rule to every record, in store order.

        All or nothing: if a hook raises, every record advanced so far in this
        call is put back and the exception propagates.
        """
        ctx = BlockContext(current_height, current_time)
        events: List[TransitionEvent] = []
        advanced: List[EpochRecord] = []

        try:
            for rec in list(self.store.list_all()):
                new_rec, kind = next_state(rec, ctx.height, ctx.time)
                if kind is None:
                    continue

                if kind is TransitionKind.ROLLED_OVER:
                    self.hooks.after_epoch_end(rec.identifier, rec.current_epoch, ctx)

                self.store.set(new_rec.identifier, new_rec)
                advanced.append(rec)

                self.hooks.before_epoch_start(new_rec.identifier, new_rec.current_epoch, ctx)

                events.append(
                    TransitionEvent(
                        identifier=new_rec.identifier,
                        kind=kind,
                        new_epoch_number=new_rec.current_epoch,
                        epoch_start_time=new_rec.current_epoch_start_time,
                        height=ctx.height,
                    )
                )
        except Exception:
            for old in reversed(advanced):
                self.store.set(old.identifier, old)
            log.warning(
                "Epoch evaluation aborted at height=%s; reverted %d record(s)",
                ctx.height,
                len(advanced),
            )
            raise

        for ev in events:
            if ev.kind is TransitionKind.STARTED:
                log.info(
                    "Starting first epoch identifier=%s start_time=%s",
                    ev.identifier,
                    ev.epoch_start_time.isoformat(),
                )
            else:
                log.info(
                    "Starting new epoch identifier=%s epoch=%s height=%s",
                    ev.identifier,
                    ev.new_epoch_number,
                    ev.height,
                )

        return events
