# epochs_node/config.py
import copy
import logging
import os
from typing import Any, Dict, List

import yaml

log = logging.getLogger(__name__)

CONFIG_FILENAME = "epochs_config.yaml"

# -------- Defaults --------
_DEFAULT: Dict[str, Any] = {
    "persistence": {
        "driver": "json",  # json | sqlite | memory
        "json_path": "epochs_state.json",
        "sqlite_path": "epochs.db",
        "keep_backups": 2,
    },
    "chain": {
        "chain_id": "epochs-dev",
        "genesis_height": 1,
    },
    "logging": {"level": "INFO"},
    "server": {
        "host": "0.0.0.0",
        "port": 8000,
    },
    "cors": {
        "origins": [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    },
}

# -------- ENV overrides --------
_ENV_MAP = {
    ("persistence", "driver"): ("EPOCHS_PERSISTENCE_DRIVER", str),
    ("persistence", "json_path"): ("EPOCHS_JSON_PATH", str),
    ("persistence", "sqlite_path"): ("EPOCHS_SQLITE_PATH", str),
    ("chain", "chain_id"): ("EPOCHS_CHAIN_ID", str),
    ("chain", "genesis_height"): ("EPOCHS_GENESIS_HEIGHT", int),
    ("logging", "level"): ("EPOCHS_LOG_LEVEL", str),
    ("server", "host"): ("EPOCHS_HOST", str),
    ("server", "port"): ("EPOCHS_PORT", int),
}

_DRIVERS = ("json", "sqlite", "memory")


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError:
            raise ValueError(f"{env_name}={val!r} is not a valid {cast.__name__}") from None
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def load_config(repo_root: str) -> Dict[str, Any]:
    """
    Loads the YAML config from repo_root/epochs_config.yaml merged over the
    defaults, then applies ENV overrides.

    A YAML file that exists but cannot be parsed falls back to defaults with
    a warning; an unknown persistence driver is an error.
    """
    path = os.path.join(repo_root, CONFIG_FILENAME)
    cfg = copy.deepcopy(_DEFAULT)

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            cfg = _deep_merge(cfg, data)
        except yaml.YAMLError as e:
            log.warning("Ignoring unparsable %s: %s", path, e)

    cfg = _apply_env_overrides(cfg)

    origins = cfg.get("cors", {}).get("origins")
    if isinstance(origins, str):
        cfg["cors"]["origins"] = [origins]

    driver = get_persistence_driver(cfg)
    if driver not in _DRIVERS:
        raise ValueError(f"unknown persistence driver {driver!r}; expected one of {_DRIVERS}")

    return cfg


# -------- Small helpers used by the app --------
def get_persistence_driver(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("persistence", {}).get("driver", "json")).lower()


def get_log_level(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("logging", {}).get("level", "INFO")).upper()


def get_bind_host(cfg: Dict[str, Any]) -> str:
    return str(cfg.get("server", {}).get("host", "0.0.0.0"))


def get_bind_port(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("server", {}).get("port", 8000))


def get_cors_origins(cfg: Dict[str, Any]) -> List[str]:
    return list(cfg.get("cors", {}).get("origins", []))


def get_genesis_height(cfg: Dict[str, Any]) -> int:
    return int(cfg.get("chain", {}).get("genesis_height", 1))
