from __future__ import annotations

"""
Epochs Executor (node orchestrator)

Wires the deterministic runtime to a store and a host:

- init_chain(height, time, genesis)  -> genesis epochs, before the first block
- begin_block(height, time)          -> EpochTracker.evaluate + block events
- deliver(msg)                       -> add/delete epoch messages
- commit()                           -> flush the store once per block

The executor holds the current block context, so message handlers and the
HTTP layer never read the wall clock. The lock only serializes HTTP callers;
the runtime itself assumes strictly sequential blocks.
"""

import logging
import os
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import get_persistence_driver
from .epochs_runtime.genesis import GenesisState, default_genesis, export_genesis, init_genesis
from .epochs_runtime.handler import handle
from .epochs_runtime.hooks import EpochHooks, MultiEpochHooks
from .epochs_runtime.tracker import EpochTracker
from .epochs_runtime.types import BlockContext, TransitionEvent, TransitionKind
from .storage.sqlite_store import SQLiteEpochStore
from .storage.state_store import EpochStore, JSONEpochStore, MemoryEpochStore

log = logging.getLogger(__name__)


class NoBlockInProgress(RuntimeError):
    pass


EVENT_EPOCH_START = "epoch_start"
EVENT_EPOCH_END = "epoch_end"


def build_store(cfg: Dict[str, Any], data_dir: str) -> EpochStore:
    """Pick the store backend from config.persistence.driver."""
    driver = get_persistence_driver(cfg)
    pcfg = cfg.get("persistence", {})
    if driver == "memory":
        return MemoryEpochStore()
    if driver == "sqlite":
        path = os.path.join(data_dir, str(pcfg.get("sqlite_path", "epochs.db")))
        return SQLiteEpochStore(path, autocommit=False)
    path = os.path.join(data_dir, str(pcfg.get("json_path", "epochs_state.json")))
    return JSONEpochStore(path, autosave=False, keep_backups=int(pcfg.get("keep_backups", 2)))


def block_events(events: List[TransitionEvent]) -> List[Dict[str, Any]]:
    """
    Flatten transitions into typed block events:

        rollover N -> N+1: epoch_end{N}, epoch_start{N+1}
        first start:       epoch_start{1}
    """
    out: List[Dict[str, Any]] = []
    for ev in events:
        if ev.kind is TransitionKind.ROLLED_OVER:
            out.append(
                {
                    "type": EVENT_EPOCH_END,
                    "identifier": ev.identifier,
                    "epoch_number": ev.new_epoch_number - 1,
                }
            )
        out.append(
            {
                "type": EVENT_EPOCH_START,
                "identifier": ev.identifier,
                "epoch_number": ev.new_epoch_number,
                "start_time": ev.epoch_start_time.isoformat(),
            }
        )
    return out


class EpochsExecutor:
    def __init__(self, store: EpochStore, hooks: Optional[List[EpochHooks]] = None) -> None:
        self.store = store
        self.hooks = MultiEpochHooks(*(hooks or []))
        self.tracker = EpochTracker(store, self.hooks)

        self.block: Optional[BlockContext] = None
        self.last_transitions: List[TransitionEvent] = []
        self.last_events: List[Dict[str, Any]] = []

        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], data_dir: str, hooks: Optional[List[EpochHooks]] = None) -> "EpochsExecutor":
        Path(data_dir).mkdir(parents=True, exist_ok=True)
        store = build_store(cfg, data_dir)
        log.info("Epoch store driver=%s data_dir=%s", get_persistence_driver(cfg), data_dir)
        return cls(store, hooks=hooks)

    # ------------------------------------------------------------------
    # Chain lifecycle
    # ------------------------------------------------------------------

    def is_initialized(self) -> bool:
        return bool(self.tracker.list_records())

    def init_chain(self, height: int, time: datetime, genesis: Optional[GenesisState] = None) -> Dict[str, Any]:
        with self._lock:
            self.block = BlockContext(height, time)
            state = genesis if genesis is not None else default_genesis()
            records = init_genesis(self.tracker, state, self.block)
            self.commit()
            return {"ok": True, "height": self.block.height, "epochs": [r.identifier for r in records]}

    def begin_block(self, height: int, time: datetime) -> List[TransitionEvent]:
        with self._lock:
            ctx = BlockContext(height, time)
            prev = self.block
            if prev is not None:
                if ctx.height <= prev.height:
                    log.warning("Block height did not increase: %s -> %s", prev.height, ctx.height)
                if ctx.time < prev.time:
                    log.warning(
                        "Block time went backwards: %s -> %s",
                        prev.time.isoformat(),
                        ctx.time.isoformat(),
                    )

            # a failed evaluation leaves the previous block in place
            transitions = self.tracker.evaluate(ctx.height, ctx.time)
            self.block = ctx
            self.last_transitions = transitions
            self.last_events = block_events(transitions)
            self.commit()
            return transitions

    def deliver(self, msg: Any) -> Dict[str, Any]:
        with self._lock:
            if self.block is None:
                raise NoBlockInProgress("no block in progress; call init_chain() or begin_block() first")
            res = handle(self.tracker, self.block, msg)
            self.commit()
            return res

    def commit(self) -> None:
        flush = getattr(self.store, "flush", None)
        if flush is not None:
            flush()

    def export_genesis(self) -> GenesisState:
        with self._lock:
            return export_genesis(self.tracker)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "ok": True,
                "height": self.block.height if self.block else None,
                "time": self.block.time.isoformat() if self.block else None,
                "epochs": len(self.tracker.list_records()),
                "last_events": list(self.last_events),
            }

    def stop(self) -> None:
        with self._lock:
            self.commit()
            close = getattr(self.store, "close", None)
            if close is not None:
                close()
