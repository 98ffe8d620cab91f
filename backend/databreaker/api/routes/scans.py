"""Scan routes."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from connectors import PersonQuery
from databreaker.api.deps import RegistryDep, StorageDep
from databreaker.services.scanner import ScanOrchestrator

router = APIRouter()


# Schemas
class PersonQueryIn(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    def to_query(self) -> PersonQuery:
        return PersonQuery(**self.model_dump(include=set(PersonQueryIn.model_fields)))


class ScanRequest(PersonQueryIn):
    broker_ids: list[str] | None = None  # allow-list; all connectors when empty
    country_filter: str | None = None  # overrides the query country for connector selection


class ScanResponse(BaseModel):
    records_found: int
    new_records: int
    scanned: list[str]
    skipped: list[str]
    per_connector: dict[str, int]
    errors: dict[str, str]
    no_candidates: bool


class RecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    broker_id: str
    kind: str
    value: str
    profile_url: str | None
    found_at: datetime


@router.post("/", response_model=ScanResponse)
async def run_scan(request: ScanRequest, storage: StorageDep, registry: RegistryDep):
    """Scan every applicable connector for a person and store what is found."""
    orchestrator = ScanOrchestrator(storage, registry)
    summary = await orchestrator.scan(
        request.to_query(),
        broker_ids=request.broker_ids,
        country=request.country_filter,
    )
    return ScanResponse(
        records_found=summary.records_found,
        new_records=summary.new_records,
        scanned=summary.scanned,
        skipped=summary.skipped,
        per_connector=summary.per_connector,
        errors=summary.errors,
        no_candidates=summary.no_candidates,
    )


@router.get("/records", response_model=list[RecordResponse])
async def list_records(storage: StorageDep, broker_id: str | None = None):
    """List stored personal records, newest first."""
    return await storage.list_personal_records(broker_id)
