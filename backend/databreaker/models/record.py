"""Personal record model - a fact about the user found on a broker."""

import uuid
from datetime import datetime
from sqlalchemy import String, DateTime, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from databreaker.db.database import Base, utcnow


class PersonalRecord(Base):
    """Deduplicated record of user data found on a data broker."""

    __tablename__ = "personal_records"
    __table_args__ = (
        UniqueConstraint("broker_id", "kind", "value", name="uq_personal_records_broker_kind_value"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    broker_id: Mapped[str] = mapped_column(String(100), ForeignKey("brokers.id"), nullable=False, index=True)

    # kind: name, age, address, email, phone, relatives
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    profile_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    raw_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Bumped every time the same fact is found again
    found_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    broker: Mapped["Broker"] = relationship(back_populates="records")
    deletion_requests: Mapped[list["DeletionRequest"]] = relationship(back_populates="record")


from databreaker.models.broker import Broker
from databreaker.models.request import DeletionRequest
