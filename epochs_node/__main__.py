# epochs_node/__main__.py
"""
Entry point for running the Epochs Node as a module:
    python -m epochs_node [--host 0.0.0.0] [--port 8000] [--data-dir data]
                          [--driver json|sqlite|memory]
    python -m epochs_node --genesis-out genesis.json

Env toggles:
  EPOCHS_AUTO_GENESIS=1       -> run default genesis when the store is empty
  EPOCHS_ALLOW_HTTP_BLOCKS=1  -> mount POST /chain/blocks
  EPOCHS_GENESIS_PARAMS=path  -> JSON override for the genesis epochs
"""

from __future__ import annotations

import argparse
import json
import os
import sys

from .config import get_bind_host, get_bind_port, load_config
from .settings import settings


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="epochs-node",
        description="Run the Epochs Node (epoch tracker + HTTP API)",
    )
    p.add_argument("--host", default=None, help="Bind address (default: from config)")
    p.add_argument("--port", type=int, default=None, help="HTTP port (default: from config)")
    p.add_argument(
        "--data-dir",
        default=os.environ.get("EPOCHS_DATA_DIR", settings.DATA_DIR),
        help="Directory holding the epoch store",
    )
    p.add_argument(
        "--driver",
        choices=["json", "sqlite", "memory"],
        default=None,
        help="Persistence driver (default: from config)",
    )
    p.add_argument(
        "--genesis-out",
        default=None,
        help="Write the default genesis document to this path and exit",
    )
    return p.parse_args(argv)


def _write_genesis(path: str) -> int:
    from .epochs_runtime.genesis import default_genesis

    doc = default_genesis().to_dict()
    with open(path, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2, sort_keys=True)
    print(f"Wrote genesis with {len(doc['epochs'])} epochs to {path}")
    return 0


def main(argv=None):
    args = parse_args(argv)

    if args.genesis_out:
        return _write_genesis(args.genesis_out)

    cfg = load_config(settings.REPO_ROOT)
    if args.driver:
        cfg["persistence"]["driver"] = args.driver
    settings.DATA_DIR = args.data_dir

    import uvicorn

    from .epochs_api import create_app

    app = create_app(cfg=cfg)
    host = args.host or get_bind_host(cfg)
    port = args.port or get_bind_port(cfg)

    print(f"Epochs Node on http://{host}:{port}  (driver={cfg['persistence']['driver']})", file=sys.stderr)
    try:
        uvicorn.run(app, host=host, port=port, log_level="info")
    finally:
        app.state.executor.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
