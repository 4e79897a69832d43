from __future__ import annotations

"""
Shared helpers for the epochs API routers.

The executor lives on app.state (set by epochs_api.create_app) so tests can
build an app around their own executor and store.
"""

from fastapi import HTTPException, Request

from ..epochs_runtime.types import DuplicateIdentifier, EpochError, NotFound
from ..executor import EpochsExecutor


def get_executor(request: Request) -> EpochsExecutor:
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise HTTPException(status_code=503, detail="executor_unavailable")
    return ex


def http_error(e: EpochError) -> HTTPException:
    """NotFound -> 404, DuplicateIdentifier -> 409, anything else -> 400."""
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=e.code)
    if isinstance(e, DuplicateIdentifier):
        return HTTPException(status_code=409, detail=e.code)
    return HTTPException(status_code=400, detail=e.code)
