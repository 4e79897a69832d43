from __future__ import annotations

"""
Record stores for the epoch tracker.

The tracker only needs a keyed map:

    get(identifier)        -> EpochRecord | None
    set(identifier, rec)
    delete(identifier)
    list_all()             -> list[EpochRecord], identifier order

Every backend returns list_all() sorted by identifier so that the evaluation
order (and therefore the event order) does not depend on which backend a
replica runs or on insertion history.

Backends:
- MemoryEpochStore: dict, for tests and ephemeral nodes
- JSONEpochStore:   single JSON snapshot (atomic write + backups)
- SQLiteEpochStore: see storage/sqlite_store.py
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from ..epochs_runtime.codec import record_from_dict, record_to_dict
from ..epochs_runtime.types import EpochRecord
from .atomic_store import AtomicSnapshotStore

log = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class EpochStore(Protocol):
    def get(self, identifier: str) -> Optional[EpochRecord]:
        ...

    def set(self, identifier: str, rec: EpochRecord) -> None:
        ...

    def delete(self, identifier: str) -> None:
        ...

    def list_all(self) -> List[EpochRecord]:
        ...


class MemoryEpochStore:
    """In-process keyed map. Records are immutable, so no copying is needed."""

    def __init__(self) -> None:
        self._records: Dict[str, EpochRecord] = {}

    def get(self, identifier: str) -> Optional[EpochRecord]:
        return self._records.get(identifier)

    def set(self, identifier: str, rec: EpochRecord) -> None:
        self._records[identifier] = rec

    def delete(self, identifier: str) -> None:
        self._records.pop(identifier, None)

    def list_all(self) -> List[EpochRecord]:
        return [self._records[k] for k in sorted(self._records)]

    def flush(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._records)


class JSONEpochStore(MemoryEpochStore):
    """
    JSON snapshot store for the local node.

    Layout on disk:

        {"schema_version": 1, "epochs": {"<identifier>": {...record...}}}

    With autosave=True (default) every write is persisted immediately.
    The executor runs with autosave=False and calls flush() once per block,
    so a block's transitions land in a single atomic write.
    """

    def __init__(
        self,
        path: Union[str, Path] = "epochs_state.json",
        *,
        autosave: bool = True,
        keep_backups: int = 2,
    ) -> None:
        super().__init__()
        p = Path(path)
        self.snapshot = AtomicSnapshotStore(p.parent, filename=p.name, keep_backups=keep_backups)
        self.autosave = bool(autosave)
        self._dirty = False
        self._load()

    @property
    def path(self) -> Path:
        return self.snapshot.path

    def _load(self) -> None:
        state = self.snapshot.load()
        if not state:
            return
        raw: Dict[str, Any] = state.get("epochs") or {}
        for identifier, d in raw.items():
            self._records[str(identifier)] = record_from_dict(d)
        log.info("Loaded %d epoch records from %s", len(self._records), self.path)

    def to_state(self) -> Dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "epochs": {k: record_to_dict(v) for k, v in sorted(self._records.items())},
        }

    def _touch(self) -> None:
        self._dirty = True
        if self.autosave:
            self.flush()

    def set(self, identifier: str, rec: EpochRecord) -> None:
        super().set(identifier, rec)
        self._touch()

    def delete(self, identifier: str) -> None:
        super().delete(identifier)
        self._touch()

    def flush(self) -> None:
        if not self._dirty:
            return
        self.snapshot.save(self.to_state())
        self._dirty = False
