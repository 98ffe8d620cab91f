"""Data broker routes."""

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict

from databreaker.api.deps import RegistryDep, StorageDep
from databreaker.errors import BrokerNotFound

router = APIRouter()


# Schemas
class BrokerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    website: str | None
    description: str | None
    category: str | None
    connector: str | None
    country: str | None
    data_countries: str | None
    registry_updated_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ConnectorResponse(BaseModel):
    id: str
    name: str
    can_scan: bool
    can_delete: bool
    can_check_status: bool
    home_country: str | None
    data_countries: list[str]


@router.get("/", response_model=list[BrokerResponse])
async def list_brokers(
    storage: StorageDep,
    category: str | None = None,
    country: str | None = None,
    data_country: str | None = None,
):
    """List known brokers, optionally filtered by category or country."""
    return await storage.list_brokers(category=category, country=country, data_country=data_country)


@router.get("/connectors", response_model=list[ConnectorResponse])
async def list_connectors(registry: RegistryDep):
    """List the connectors that are live in this process and what they can do."""
    result = []
    for connector in registry.all():
        caps = connector.capabilities()
        result.append(ConnectorResponse(
            id=connector.id,
            name=connector.name,
            can_scan=caps.can_scan,
            can_delete=caps.can_delete,
            can_check_status=caps.can_check_status,
            home_country=connector.home_country(),
            data_countries=sorted(connector.data_countries()),
        ))
    return result


@router.get("/{broker_id}", response_model=BrokerResponse)
async def get_broker(broker_id: str, storage: StorageDep):
    """Get one broker."""
    try:
        return await storage.require_broker(broker_id)
    except BrokerNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
