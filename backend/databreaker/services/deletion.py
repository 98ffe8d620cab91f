"""Deletion orchestrator - sends one deletion request per broker for a set of stored records."""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from connectors import ConnectorRegistry, DeletionStatus, DeletionSubmission, FoundRecord, PersonQuery
from databreaker.config import settings
from databreaker.db.database import utcnow
from databreaker.db.storage import Storage
from databreaker.errors import NoRecordsToDelete, RecordNotFound
from databreaker.models import DeletionRequest, PersonalRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordSelector:
    """Which stored records a deletion pass targets."""
    broker_id: Optional[str] = None
    record_id: Optional[str] = None

    @classmethod
    def all(cls) -> "RecordSelector":
        return cls()

    @classmethod
    def for_broker(cls, broker_id: str) -> "RecordSelector":
        return cls(broker_id=broker_id)

    @classmethod
    def single(cls, record_id: str) -> "RecordSelector":
        return cls(record_id=record_id)


@dataclass
class DeletionSummary:
    """What one deletion pass did."""
    submitted: int = 0
    failed: int = 0
    external_refs: dict[str, str] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


def to_found_record(record: PersonalRecord) -> FoundRecord:
    return FoundRecord(kind=record.kind, value=record.value, profile_url=record.profile_url)


class DeletionOrchestrator:
    """Requests deletion of stored records, grouped by broker."""

    def __init__(
        self,
        storage: Storage,
        registry: ConnectorRegistry,
        timeout: Optional[float] = None,
        concurrent_limit: Optional[int] = None,
    ):
        self.storage = storage
        self.registry = registry
        self.timeout = timeout if timeout is not None else settings.connector_timeout_seconds
        self.concurrent_limit = concurrent_limit or settings.scan_concurrency

    async def resolve(self, selector: RecordSelector) -> list[PersonalRecord]:
        """Turn a selector into the concrete record set.

        Raises:
            RecordNotFound: the selected record id is unknown
            NoRecordsToDelete: the selection is empty
        """
        if selector.record_id is not None:
            record = await self.storage.get_personal_record(selector.record_id)
            if record is None:
                raise RecordNotFound(selector.record_id)
            return [record]

        records = await self.storage.list_personal_records(selector.broker_id)
        if not records:
            raise NoRecordsToDelete(selector.broker_id)
        return records

    async def _submit(self, broker_id: str, query: PersonQuery, records: list[PersonalRecord]):
        """Call the broker's connector once. Returns (submission, error)."""
        connector = self.registry.get_optional(broker_id)
        if connector is None:
            return None, f"No connector for broker '{broker_id}'"

        if not connector.capabilities().can_delete:
            return None, f"Connector '{connector.name}' does not support deletion"

        try:
            submission = await asyncio.wait_for(
                connector.request_deletion(query, [to_found_record(r) for r in records]),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return None, f"Timed out after {self.timeout:g}s"
        except Exception as e:
            return None, str(e) or e.__class__.__name__

        return submission, None

    async def delete(self, query: PersonQuery, selector: RecordSelector) -> DeletionSummary:
        """
        Request deletion of the selected records.

        Each broker gets exactly one request covering all its selected
        records. A broker without a deletion-capable connector, or whose
        submission fails, counts all its records as failed and gets no
        deletion request rows.
        """
        records = await self.resolve(selector)

        by_broker: dict[str, list[PersonalRecord]] = defaultdict(list)
        for record in records:
            by_broker[record.broker_id].append(record)

        semaphore = asyncio.Semaphore(self.concurrent_limit)

        async def submit_with_limit(broker_id):
            async with semaphore:
                return await self._submit(broker_id, query, by_broker[broker_id])

        broker_ids = list(by_broker)
        outcomes = await asyncio.gather(*(submit_with_limit(bid) for bid in broker_ids))

        summary = DeletionSummary()
        for broker_id, (submission, error) in zip(broker_ids, outcomes):
            broker_records = by_broker[broker_id]

            if error is not None:
                logger.warning(
                    "Deletion for %s failed: %s", broker_id, error,
                    extra={"connector": broker_id, "status": "failed"},
                )
                summary.errors[broker_id] = error
                summary.failed += len(broker_records)
                continue

            await self._record_submission(broker_id, broker_records, submission)
            summary.external_refs[broker_id] = submission.external_ref
            summary.submitted += len(broker_records)
            logger.info(
                "Deletion submitted to %s (ref: %s)", broker_id, submission.external_ref,
                extra={"connector": broker_id, "status": DeletionStatus.SUBMITTED.value},
            )

        logger.info("Deletion requests: %d submitted, %d failed", summary.submitted, summary.failed)
        return summary

    async def _record_submission(
        self,
        broker_id: str,
        records: list[PersonalRecord],
        submission: DeletionSubmission,
    ) -> None:
        now = utcnow()
        await self.storage.insert_deletion_requests([
            DeletionRequest(
                id=str(uuid.uuid4()),
                broker_id=broker_id,
                personal_record_id=record.id,
                status=DeletionStatus.SUBMITTED.value,
                submitted_at=now,
                external_ref=submission.external_ref,
                created_at=now,
                updated_at=now,
            )
            for record in records
        ])
