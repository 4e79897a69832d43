from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chain, epochs
from .config import get_cors_origins, get_genesis_height, get_log_level, load_config
from .executor import EpochsExecutor
from .settings import settings

log = logging.getLogger(__name__)


def _configure_logging(cfg: Dict[str, Any]) -> None:
    level = getattr(logging, get_log_level(cfg), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")


def create_app(
    executor: Optional[EpochsExecutor] = None,
    cfg: Optional[Dict[str, Any]] = None,
) -> FastAPI:
    cfg = cfg if cfg is not None else load_config(settings.REPO_ROOT)
    _configure_logging(cfg)

    if executor is None:
        data_dir = os.path.join(settings.REPO_ROOT, settings.DATA_DIR)
        executor = EpochsExecutor.from_config(cfg, data_dir)
        if settings.AUTO_GENESIS and not executor.is_initialized():
            # Local dev node: genesis time is the process start. Real hosts
            # call init_chain() with their own genesis block time.
            genesis_time = datetime.now(timezone.utc)
            res = executor.init_chain(get_genesis_height(cfg), genesis_time)
            log.info("Auto-genesis at height=%s epochs=%s", res["height"], res["epochs"])

    app = FastAPI(title="Epochs Node API", version="0.1.0")
    app.state.executor = executor

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(epochs.router)
    app.include_router(chain.router)
    if settings.ALLOW_HTTP_BLOCKS:
        app.include_router(chain.blocks_router)

    @app.get("/health")
    def health():
        return {"ok": True, "height": executor.block.height if executor.block else None}

    return app
