"""
API: /epochs

    GET    /epochs                         -> all epoch records (identifier order)
    GET    /epochs/{identifier}            -> one record
    GET    /epochs/{identifier}/current    -> current epoch number
    POST   /epochs                         -> add an epoch (in the current block)
    DELETE /epochs/{identifier}            -> delete an epoch

Thin layer: every write goes through EpochsExecutor.deliver() so it uses the
host block context, never the server clock.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..epochs_runtime.codec import duration_from_seconds
from ..epochs_runtime.handler import MsgAddEpoch, MsgDeleteEpoch
from ..epochs_runtime.types import EpochError, EpochRecord
from ..executor import EpochsExecutor, NoBlockInProgress
from .deps import get_executor, http_error

log = logging.getLogger(__name__)

router = APIRouter(prefix="/epochs", tags=["epochs"])


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class EpochModel(BaseModel):
    identifier: str
    duration_seconds: float = Field(..., description="Fixed span between boundaries.")
    start_height: int
    start_time: datetime = Field(..., description="Reference instant counting starts from.")
    current_epoch: int
    current_epoch_start_height: int
    current_epoch_start_time: Optional[datetime] = Field(
        None, description="Start of the current epoch; null until the first start."
    )
    counting_started: bool

    @classmethod
    def from_record(cls, rec: EpochRecord) -> "EpochModel":
        return cls(
            identifier=rec.identifier,
            duration_seconds=rec.duration.total_seconds(),
            start_height=rec.start_height,
            start_time=rec.start_time,
            current_epoch=rec.current_epoch,
            current_epoch_start_height=rec.current_epoch_start_height,
            current_epoch_start_time=rec.current_epoch_start_time,
            counting_started=rec.counting_started,
        )


class EpochListResponse(BaseModel):
    ok: bool = True
    epochs: List[EpochModel]


class EpochResponse(BaseModel):
    ok: bool = True
    epoch: EpochModel


class CurrentEpochResponse(BaseModel):
    ok: bool = True
    identifier: str
    current_epoch: int


class AddEpochRequest(BaseModel):
    identifier: str
    duration_seconds: float
    start_time: Optional[datetime] = Field(
        None, description="Omit to start counting at the current block time."
    )
    start_height: Optional[int] = Field(
        None, description="Omit to use the current block height."
    )


class DeleteEpochResponse(BaseModel):
    ok: bool = True
    identifier: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=EpochListResponse)
def list_epochs(ex: EpochsExecutor = Depends(get_executor)):
    recs = ex.tracker.list_records()
    return EpochListResponse(epochs=[EpochModel.from_record(r) for r in recs])


@router.get("/{identifier}", response_model=EpochResponse)
def get_epoch(identifier: str, ex: EpochsExecutor = Depends(get_executor)):
    try:
        rec = ex.tracker.get_record(identifier)
    except EpochError as e:
        raise http_error(e)
    return EpochResponse(epoch=EpochModel.from_record(rec))


@router.get("/{identifier}/current", response_model=CurrentEpochResponse)
def current_epoch(identifier: str, ex: EpochsExecutor = Depends(get_executor)):
    try:
        n = ex.tracker.current_epoch(identifier)
    except EpochError as e:
        raise http_error(e)
    return CurrentEpochResponse(identifier=identifier, current_epoch=n)


@router.post("", response_model=EpochResponse, status_code=201)
def add_epoch(req: AddEpochRequest, ex: EpochsExecutor = Depends(get_executor)):
    try:
        msg = MsgAddEpoch(
            identifier=req.identifier,
            duration=duration_from_seconds(req.duration_seconds, req.identifier),
            start_time=req.start_time,
            start_height=req.start_height,
        )
        ex.deliver(msg)
    except EpochError as e:
        raise http_error(e)
    except NoBlockInProgress:
        raise HTTPException(status_code=409, detail="no_block_in_progress")
    log.info("Epoch added via API: %s", req.identifier)
    return EpochResponse(epoch=EpochModel.from_record(ex.tracker.get_record(req.identifier)))


@router.delete("/{identifier}", response_model=DeleteEpochResponse)
def delete_epoch(identifier: str, ex: EpochsExecutor = Depends(get_executor)):
    try:
        ex.deliver(MsgDeleteEpoch(identifier=identifier))
    except EpochError as e:
        raise http_error(e)
    except NoBlockInProgress:
        raise HTTPException(status_code=409, detail="no_block_in_progress")
    log.info("Epoch deleted via API: %s", identifier)
    return DeleteEpochResponse(identifier=identifier)
