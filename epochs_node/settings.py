from __future__ import annotations

import os


class Settings:
    # Where the node keeps its config file and state
    REPO_ROOT: str = os.getenv("EPOCHS_REPO_ROOT", os.getcwd())
    DATA_DIR: str = os.getenv("EPOCHS_DATA_DIR", "data")

    # Run genesis automatically when the store is empty
    AUTO_GENESIS: bool = os.getenv("EPOCHS_AUTO_GENESIS", "1") == "1"

    # Expose POST /chain/blocks (hosts that drive blocks over HTTP)
    ALLOW_HTTP_BLOCKS: bool = os.getenv("EPOCHS_ALLOW_HTTP_BLOCKS", "1") == "1"


settings = Settings()
