"""Broker registry feed routes."""

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from databreaker.api.deps import StorageDep
from databreaker.errors import RegistryError
from databreaker.services.registry_sync import registry_info, update_registry

router = APIRouter()


class RegistryUpdateResponse(BaseModel):
    updated: int


class RegistryInfoResponse(BaseModel):
    last_fetched_at: datetime | None
    broker_count: int


@router.post("/update", response_model=RegistryUpdateResponse)
async def update(storage: StorageDep):
    """Fetch the latest broker registry and upsert its brokers."""
    try:
        count = await update_registry(storage)
    except RegistryError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return RegistryUpdateResponse(updated=count)


@router.get("/info", response_model=RegistryInfoResponse)
async def info(storage: StorageDep):
    return RegistryInfoResponse(**await registry_info(storage))
