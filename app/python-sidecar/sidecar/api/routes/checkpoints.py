"""
Checkpoint catalog API routes.

Edits never reach a running patrol: sessions work on a snapshot taken at start.
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from patrolwatch.core import Checkpoint, NotFound

from ..engine import get_engine

router = APIRouter()
logger = logging.getLogger(__name__)


class CheckpointResponse(BaseModel):
    id: str
    name: str
    description: str
    latitude: float
    longitude: float
    radius_meters: Optional[float] = None
    time_minutes: Optional[float] = None


class CreateCheckpointRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius_meters: Optional[float] = Field(default=None, gt=0)
    time_minutes: Optional[float] = Field(default=None, gt=0)


class UpdateCheckpointRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    radius_meters: Optional[float] = Field(default=None, gt=0)
    time_minutes: Optional[float] = Field(default=None, gt=0)


def _response(checkpoint: Checkpoint) -> CheckpointResponse:
    return CheckpointResponse(**checkpoint.to_dict())


@router.get("")
def list_checkpoints() -> list[CheckpointResponse]:
    return [_response(item) for item in get_engine().catalog.load()]


@router.post("", status_code=201)
def create_checkpoint(request: CreateCheckpointRequest) -> CheckpointResponse:
    checkpoint = get_engine().catalog.add(
        name=request.name,
        latitude=request.latitude,
        longitude=request.longitude,
        description=request.description,
        radius_meters=request.radius_meters,
        time_minutes=request.time_minutes,
    )
    logger.info("Checkpoint %s added", checkpoint.name)
    return _response(checkpoint)


@router.patch("/{checkpoint_id}")
def update_checkpoint(checkpoint_id: str, request: UpdateCheckpointRequest) -> CheckpointResponse:
    changes = request.model_dump(exclude_unset=True, exclude_none=True)
    try:
        checkpoint = get_engine().catalog.update(checkpoint_id, **changes)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _response(checkpoint)


@router.delete("/{checkpoint_id}", status_code=204)
def delete_checkpoint(checkpoint_id: str) -> None:
    try:
        get_engine().catalog.remove(checkpoint_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
