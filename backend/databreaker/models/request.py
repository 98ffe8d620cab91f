"""Deletion request model - tracks removal requests sent to brokers."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from connectors.base import DeletionStatus
from databreaker.db.database import Base, utcnow


class DeletionRequest(Base):
    """One deletion attempt against one broker, optionally for one record."""

    __tablename__ = "deletion_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    broker_id: Mapped[str] = mapped_column(String(100), ForeignKey("brokers.id"), nullable=False, index=True)
    personal_record_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("personal_records.id"), nullable=True)

    # Status: pending, submitted, in_progress, completed, failed, rejected, unknown
    status: Mapped[str] = mapped_column(String(20), default=DeletionStatus.PENDING.value, index=True)

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[str | None] = mapped_column(String(64), nullable=True)  # as reported by the broker
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Broker-issued reference used to re-query the status
    external_ref: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    broker: Mapped["Broker"] = relationship(back_populates="deletion_requests")
    record: Mapped[Optional["PersonalRecord"]] = relationship(back_populates="deletion_requests")

    @property
    def status_enum(self) -> DeletionStatus:
        return DeletionStatus.normalize(self.status)


from databreaker.models.broker import Broker
from databreaker.models.record import PersonalRecord
