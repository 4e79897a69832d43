"""
API: /chain

    GET  /chain/status    -> current block context, epoch count, last block events
    POST /chain/blocks    -> host hands in the next (height, time); runs begin_block
    GET  /chain/genesis   -> export current records as a genesis document

POST /chain/blocks is only mounted when settings.ALLOW_HTTP_BLOCKS is on.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..executor import EpochsExecutor, block_events
from .deps import get_executor

logger = logging.getLogger("chain")

router = APIRouter(prefix="/chain", tags=["chain"])
blocks_router = APIRouter(prefix="/chain", tags=["chain"])


class BlockRequest(BaseModel):
    height: int = Field(..., description="Block height; expected to strictly increase.")
    time: datetime = Field(..., description="Block time; expected not to go backwards.")


class TransitionModel(BaseModel):
    identifier: str
    kind: str
    new_epoch_number: int
    epoch_start_time: datetime
    height: int


class BlockResponse(BaseModel):
    ok: bool = True
    height: int
    transitions: List[TransitionModel]
    events: List[Dict[str, Any]]


@router.get("/status")
def chain_status(ex: EpochsExecutor = Depends(get_executor)) -> Dict[str, Any]:
    return ex.status()


@router.get("/genesis")
def chain_genesis(ex: EpochsExecutor = Depends(get_executor)) -> Dict[str, Any]:
    return ex.export_genesis().to_dict()


@blocks_router.post("/blocks", response_model=BlockResponse)
def begin_block(req: BlockRequest, ex: EpochsExecutor = Depends(get_executor)):
    transitions = ex.begin_block(req.height, req.time)
    if transitions:
        logger.info("Block height=%s produced %d epoch transitions", req.height, len(transitions))
    return BlockResponse(
        height=req.height,
        transitions=[TransitionModel(**t.to_dict()) for t in transitions],
        events=block_events(transitions),
    )
