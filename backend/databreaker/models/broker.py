"""Data broker model."""

from datetime import datetime
from sqlalchemy import String, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from databreaker.db.database import Base, utcnow


class Broker(Base):
    """Data broker metadata, synced from the registry feed or created on first scan."""

    __tablename__ = "brokers"

    # Same value as the connector identifier
    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    website: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)  # people-search, background-check, marketing
    connector: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # ISO 3166-1 alpha-2 codes
    country: Mapped[str | None] = mapped_column(String(2), nullable=True)
    data_countries: Mapped[str | None] = mapped_column(String(500), nullable=True)  # comma-joined, e.g. "US,GB"

    # Timestamps
    registry_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    # Relationships
    records: Mapped[list["PersonalRecord"]] = relationship(back_populates="broker")
    deletion_requests: Mapped[list["DeletionRequest"]] = relationship(back_populates="broker")

    @property
    def data_country_codes(self) -> list[str]:
        if not self.data_countries:
            return []
        return [code.strip().upper() for code in self.data_countries.split(",") if code.strip()]


from databreaker.models.record import PersonalRecord
from databreaker.models.request import DeletionRequest
