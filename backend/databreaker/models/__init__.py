"""Database models."""

from databreaker.models.broker import Broker
from databreaker.models.record import PersonalRecord
from databreaker.models.request import DeletionRequest
from databreaker.models.meta import RegistryMeta

__all__ = [
    "Broker",
    "PersonalRecord",
    "DeletionRequest",
    "RegistryMeta",
]
