"""
epochs_node/consensus/params.py
-------------------------------

Genesis parameters for the epochs module.

This module centralizes the epochs a fresh chain starts with. The defaults
are a "day" and a "week" epoch, both counting from the genesis block time.

They can be overridden via a JSON file whose path is provided either
explicitly to `load_genesis_params(path=...)` or via the
`EPOCHS_GENESIS_PARAMS` environment variable. File layout:

    {
        "epochs": [
            {"identifier": "day", "duration_seconds": 86400,
             "start_height": null, "start_time": null}
        ]
    }

`start_time: null` means "count from the genesis block time";
`start_height: null` means "the genesis block height".
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DAY_SECONDS: int = 24 * 60 * 60
WEEK_SECONDS: int = 7 * DAY_SECONDS

DEFAULT_GENESIS: Dict[str, Any] = {
    "epochs": [
        {
            "identifier": "day",
            "duration_seconds": DAY_SECONDS,
            "start_height": None,
            "start_time": None,
        },
        {
            "identifier": "week",
            "duration_seconds": WEEK_SECONDS,
            "start_height": None,
            "start_time": None,
        },
    ],
}

GENESIS_CACHE: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_from_disk(path: str) -> Optional[Dict[str, Any]]:
    """JSON loader for genesis parameters. Missing file -> None."""
    if not path or not os.path.exists(path):
        return None
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"genesis params at {path} must be a JSON object")
    return {str(k): v for k, v in data.items()}


def load_genesis_params(path: Optional[str] = None, *, refresh: bool = False) -> Dict[str, Any]:
    """
    Load genesis parameters from JSON, merged over DEFAULT_GENESIS.

    Resolution order:
        1. Explicit `path` argument (if provided)
        2. EPOCHS_GENESIS_PARAMS env var (if set)
        3. "genesis_params.json" in CWD (if it exists)
        4. DEFAULT_GENESIS (in-memory defaults)

    A malformed genesis file is an error: replicas must not silently start
    from different epoch sets.
    """
    global GENESIS_CACHE
    if GENESIS_CACHE is not None and not refresh and path is None:
        return GENESIS_CACHE

    resolved_path: Optional[str] = path
    if not resolved_path:
        env_path = os.environ.get("EPOCHS_GENESIS_PARAMS")
        if env_path:
            resolved_path = env_path
        else:
            candidate = os.path.join(os.getcwd(), "genesis_params.json")
            if os.path.exists(candidate):
                resolved_path = candidate

    disk_params = _load_from_disk(resolved_path) if resolved_path else None

    merged: Dict[str, Any] = json.loads(json.dumps(DEFAULT_GENESIS))
    for key, value in (disk_params or {}).items():
        merged[key] = value

    if resolved_path and disk_params is not None:
        log.info("Loaded genesis params from %s", resolved_path)

    if path is None:
        GENESIS_CACHE = merged
    return merged


def genesis_epochs(params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    p = params if params is not None else load_genesis_params()
    return list(p.get("epochs") or [])
