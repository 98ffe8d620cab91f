"""Deletion request routes."""

from datetime import datetime

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, model_validator

from databreaker.api.deps import RegistryDep, StorageDep
from databreaker.api.routes.scans import PersonQueryIn
from databreaker.errors import NoRecordsToDelete, RecordNotFound
from databreaker.services.deletion import DeletionOrchestrator, RecordSelector
from databreaker.services.reconciler import StatusReconciler

router = APIRouter()


# Schemas
class DeleteRequest(PersonQueryIn):
    """Query fields plus exactly one selector."""
    all: bool = False
    broker_id: str | None = None
    record_id: str | None = None

    @model_validator(mode="after")
    def one_selector(self):
        chosen = sum([self.all, self.broker_id is not None, self.record_id is not None])
        if chosen != 1:
            raise ValueError("Specify exactly one of all, broker_id or record_id")
        return self

    def selector(self) -> RecordSelector:
        if self.record_id is not None:
            return RecordSelector.single(self.record_id)
        if self.broker_id is not None:
            return RecordSelector.for_broker(self.broker_id)
        return RecordSelector.all()


class DeleteResponse(BaseModel):
    submitted: int
    failed: int
    external_refs: dict[str, str]
    errors: dict[str, str]


class DeletionRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    broker_id: str
    personal_record_id: str | None
    status: str
    submitted_at: datetime | None
    completed_at: str | None
    error_message: str | None
    external_ref: str | None
    created_at: datetime
    updated_at: datetime


class StatusResponse(BaseModel):
    checked: int
    updated: int
    requests: list[DeletionRequestResponse]


@router.post("/delete", response_model=DeleteResponse)
async def request_deletion(request: DeleteRequest, storage: StorageDep, registry: RegistryDep):
    """Send deletion requests for stored records, one per broker."""
    orchestrator = DeletionOrchestrator(storage, registry)
    try:
        summary = await orchestrator.delete(request.to_query(), request.selector())
    except RecordNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NoRecordsToDelete as e:
        raise HTTPException(status_code=409, detail=str(e))

    return DeleteResponse(
        submitted=summary.submitted,
        failed=summary.failed,
        external_refs=summary.external_refs,
        errors=summary.errors,
    )


@router.get("/status", response_model=StatusResponse)
async def deletion_status(
    storage: StorageDep,
    registry: RegistryDep,
    broker_id: str | None = None,
    status: str | None = None,
):
    """Re-check in-flight requests with their brokers, then list requests."""
    reconciler = StatusReconciler(storage, registry)
    summary = await reconciler.reconcile(broker_id=broker_id, status=status)
    return StatusResponse(
        checked=summary.checked,
        updated=summary.updated,
        requests=[DeletionRequestResponse.model_validate(r) for r in summary.requests],
    )
