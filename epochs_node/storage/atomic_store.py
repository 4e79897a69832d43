from __future__ import annotations

"""
Atomic snapshot persistence helpers.

- Atomic write (tempfile + fsync + os.replace) with directory fsync
- Rolling backups (.bak1, .bak2, ...) to survive partial writes/corruption
- Load fallback: primary -> bak1 -> bak2 -> ...
- Write-ahead journal marker (.journal) so an interrupted save is detectable

JSON snapshots are written canonically (sorted keys, compact separators) so
two replicas holding the same records produce byte-identical files.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

log = logging.getLogger(__name__)

JsonDict = Dict[str, Any]
PathLike = Union[str, Path]


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _fsync_dir(dir_path: Path) -> None:
    # not every platform lets you open a directory
    try:
        fd = os.open(str(dir_path), os.O_DIRECTORY)
    except (AttributeError, OSError):
        return
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def canonical_json_bytes(obj: JsonDict) -> bytes:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def atomic_write_bytes(path: Path, data: bytes) -> None:
    _ensure_dir(path.parent)

    fd, tmp_name = tempfile.mkstemp(prefix=path.name + ".", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(str(tmp_path), str(path))
        _fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def read_json(path: Path) -> Optional[JsonDict]:
    """Return the decoded object, or None if missing or unreadable."""
    if not path.exists():
        return None
    try:
        raw = path.read_bytes()
        return json.loads(raw.decode("utf-8"))
    except (OSError, UnicodeDecodeError, ValueError) as e:
        log.warning("Unreadable snapshot %s: %s", path, e)
        return None


def _rotate_backups(path: Path, keep: int) -> None:
    if keep <= 0:
        return

    # move .bak(N-1) -> .bakN
    for i in range(keep, 1, -1):
        src = path.with_suffix(path.suffix + f".bak{i-1}")
        dst = path.with_suffix(path.suffix + f".bak{i}")
        if src.exists():
            os.replace(str(src), str(dst))

    # copy primary -> .bak1 (primary stays in place until the new one lands)
    if path.exists():
        bak1 = path.with_suffix(path.suffix + ".bak1")
        atomic_write_bytes(bak1, path.read_bytes())


class AtomicSnapshotStore:
    """
    Single-file JSON snapshot with backups.

        store = AtomicSnapshotStore("data", filename="epochs_state.json")
        state = store.load() or {}
        store.save(state)
    """

    def __init__(
        self,
        data_dir: PathLike = ".",
        *,
        filename: str = "epochs_state.json",
        keep_backups: int = 2,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.filename = filename
        self.keep_backups = int(keep_backups)

    @property
    def path(self) -> Path:
        return self.data_dir / self.filename

    @property
    def journal_path(self) -> Path:
        return self.path.with_suffix(self.path.suffix + ".journal")

    def exists(self) -> bool:
        return self.path.exists()

    def interrupted(self) -> bool:
        """True if the last save() did not complete."""
        return self.journal_path.exists()

    # ---------------------------
    # Load: primary -> backups
    # ---------------------------
    def load(self) -> Optional[JsonDict]:
        if self.interrupted():
            log.warning("Snapshot journal present at %s; last save was interrupted", self.journal_path)

        paths = [self.path]
        for i in range(1, max(1, self.keep_backups) + 1):
            paths.append(self.path.with_suffix(self.path.suffix + f".bak{i}"))

        for p in paths:
            obj = read_json(p)
            if isinstance(obj, dict):
                if p != self.path:
                    log.warning("Recovered snapshot from backup %s", p)
                return obj

        return None

    # ---------------------------
    # Save: journal + rotate backups + atomic write + clear journal
    # ---------------------------
    def save(self, state: JsonDict) -> None:
        _ensure_dir(self.data_dir)

        data = canonical_json_bytes(state)

        atomic_write_bytes(self.journal_path, b"1")
        _rotate_backups(self.path, keep=self.keep_backups)
        atomic_write_bytes(self.path, data)

        if self.journal_path.exists():
            self.journal_path.unlink()
