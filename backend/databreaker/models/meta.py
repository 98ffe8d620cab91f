"""Flat key/value bookkeeping, e.g. when the broker registry was last synced."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from databreaker.db.database import Base


class RegistryMeta(Base):

    __tablename__ = "registry_meta"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
