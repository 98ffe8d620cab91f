"""
Storage - the persistence boundary shared by every orchestration pass.

All reads and writes go through one asyncio lock, one session per logical
unit. Upserts select and then update or insert inside that critical
section, so concurrent writers for the same key cannot duplicate a row.
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from connectors.base import FoundRecord
from databreaker.db.database import async_session, utcnow
from databreaker.errors import BrokerNotFound, StorageFailure
from databreaker.models import Broker, DeletionRequest, PersonalRecord, RegistryMeta

logger = logging.getLogger(__name__)

BROKER_FIELDS = frozenset({
    "name",
    "website",
    "description",
    "category",
    "connector",
    "country",
    "data_countries",
    "registry_updated_at",
})


class Storage:
    """Async repository for brokers, personal records, deletion requests and metadata."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory or async_session
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _unit(self) -> AsyncIterator[AsyncSession]:
        """One exclusive read/write unit, committed on success."""
        async with self._lock:
            async with self._session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error("Storage operation failed: %s", e)
                    raise StorageFailure(str(e)) from e

    # --- Brokers ---

    async def upsert_broker(self, broker_id: str, **fields) -> Broker:
        """Insert or update a broker.

        Fields passed as None are treated as unknown: they never clear a
        value already stored.
        """
        unknown = set(fields) - BROKER_FIELDS
        if unknown:
            raise ValueError(f"Unknown broker field(s): {', '.join(sorted(unknown))}")

        values = {k: v for k, v in fields.items() if v is not None}
        now = utcnow()

        async with self._unit() as session:
            broker = await session.get(Broker, broker_id)
            if broker is None:
                values.setdefault("name", broker_id)
                broker = Broker(id=broker_id, created_at=now, updated_at=now, **values)
                session.add(broker)
            else:
                for key, value in values.items():
                    setattr(broker, key, value)
                broker.updated_at = now
        return broker

    async def ensure_broker(
        self,
        broker_id: str,
        name: str,
        country: Optional[str] = None,
        data_countries: Iterable[str] = (),
    ) -> tuple[Broker, bool]:
        """Create minimal broker metadata when missing. Returns (broker, created)."""
        async with self._unit() as session:
            broker = await session.get(Broker, broker_id)
            if broker is not None:
                return broker, False

            now = utcnow()
            broker = Broker(
                id=broker_id,
                name=name,
                connector=broker_id,
                country=country,
                data_countries=",".join(sorted(data_countries)) or None,
                created_at=now,
                updated_at=now,
            )
            session.add(broker)
        return broker, True

    async def get_broker(self, broker_id: str) -> Optional[Broker]:
        async with self._unit() as session:
            return await session.get(Broker, broker_id)

    async def require_broker(self, broker_id: str) -> Broker:
        broker = await self.get_broker(broker_id)
        if broker is None:
            raise BrokerNotFound(broker_id)
        return broker

    async def list_brokers(
        self,
        category: Optional[str] = None,
        country: Optional[str] = None,
        data_country: Optional[str] = None,
    ) -> list[Broker]:
        stmt = select(Broker).order_by(Broker.name)
        if category:
            stmt = stmt.where(Broker.category == category)
        if country:
            stmt = stmt.where(Broker.country == country.upper())

        async with self._unit() as session:
            result = await session.execute(stmt)
            brokers = list(result.scalars().all())

        if data_country:
            code = data_country.upper()
            brokers = [b for b in brokers if code in b.data_country_codes]
        return brokers

    # --- Personal records ---

    async def upsert_personal_record(
        self,
        broker_id: str,
        record: FoundRecord,
        found_at: Optional[datetime] = None,
    ) -> tuple[PersonalRecord, bool]:
        """Insert or refresh a record keyed by (broker, kind, value). Returns (record, created)."""
        found_at = found_at or utcnow()
        raw_json = json.dumps(record.metadata, sort_keys=True) if record.metadata is not None else None

        async with self._unit() as session:
            result = await session.execute(
                select(PersonalRecord).where(
                    PersonalRecord.broker_id == broker_id,
                    PersonalRecord.kind == record.kind,
                    PersonalRecord.value == record.value,
                )
            )
            existing = result.scalar_one_or_none()

            if existing is not None:
                existing.profile_url = record.profile_url
                existing.raw_json = raw_json
                existing.found_at = found_at
                return existing, False

            created = PersonalRecord(
                id=str(uuid.uuid4()),
                broker_id=broker_id,
                kind=record.kind,
                value=record.value,
                profile_url=record.profile_url,
                raw_json=raw_json,
                found_at=found_at,
            )
            session.add(created)
        return created, True

    async def get_personal_record(self, record_id: str) -> Optional[PersonalRecord]:
        async with self._unit() as session:
            return await session.get(PersonalRecord, record_id)

    async def list_personal_records(self, broker_id: Optional[str] = None) -> list[PersonalRecord]:
        stmt = select(PersonalRecord).order_by(PersonalRecord.found_at.desc(), PersonalRecord.id)
        if broker_id is not None:
            stmt = stmt.where(PersonalRecord.broker_id == broker_id)

        async with self._unit() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # --- Deletion requests ---

    async def insert_deletion_requests(self, requests: list[DeletionRequest]) -> None:
        async with self._unit() as session:
            session.add_all(requests)

    async def update_deletion_request(
        self,
        request_id: str,
        status: str,
        completed_at: Optional[str],
        error_message: Optional[str],
        updated_at: Optional[datetime] = None,
    ) -> DeletionRequest:
        async with self._unit() as session:
            request = await session.get(DeletionRequest, request_id)
            if request is None:
                raise StorageFailure(f"Deletion request '{request_id}' disappeared")
            request.status = status
            request.completed_at = completed_at
            request.error_message = error_message
            request.updated_at = updated_at or utcnow()
        return request

    async def get_deletion_request(self, request_id: str) -> Optional[DeletionRequest]:
        async with self._unit() as session:
            return await session.get(DeletionRequest, request_id)

    async def list_deletion_requests(self, broker_id: Optional[str] = None) -> list[DeletionRequest]:
        stmt = select(DeletionRequest).order_by(DeletionRequest.created_at.desc(), DeletionRequest.id)
        if broker_id is not None:
            stmt = stmt.where(DeletionRequest.broker_id == broker_id)

        async with self._unit() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    # --- Registry meta ---

    async def set_meta(self, key: str, value: str) -> None:
        async with self._unit() as session:
            row = await session.get(RegistryMeta, key)
            if row is None:
                session.add(RegistryMeta(key=key, value=value))
            else:
                row.value = value

    async def get_meta(self, key: str) -> Optional[str]:
        async with self._unit() as session:
            row = await session.get(RegistryMeta, key)
            return row.value if row else None
