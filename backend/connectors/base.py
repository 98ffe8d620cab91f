"""Base class for data broker connectors."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from connectors.errors import ConnectorUnsupportedCapability


class DeletionStatus(str, Enum):
    """Lifecycle of a deletion request."""
    PENDING = "pending"
    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"
    UNKNOWN = "unknown"

    @classmethod
    def normalize(cls, raw: Optional[str]) -> "DeletionStatus":
        """Map a broker-reported status string onto the closed set.

        Matching ignores case and treats "-" and spaces like "_", so
        "In Progress" and "in-progress" both become IN_PROGRESS. Anything
        else is UNKNOWN.
        """
        if isinstance(raw, cls):
            return raw
        key = (raw or "").strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


# Only these are re-polled by the status reconciler
IN_FLIGHT_STATUSES = frozenset({DeletionStatus.SUBMITTED, DeletionStatus.IN_PROGRESS})


@dataclass(frozen=True)
class PersonQuery:
    """Identity attributes used to search for a person."""
    first_name: str = ""
    last_name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class FoundRecord:
    """A single fact about the person discovered on a broker."""
    kind: str  # name, age, address, email, phone, relatives
    value: str
    profile_url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


@dataclass
class DeletionSubmission:
    """Outcome of a successful deletion request."""
    external_ref: str
    message: Optional[str] = None


@dataclass
class DeletionStatusCheck:
    """Broker-reported state of a deletion request."""
    status: DeletionStatus
    completed_at: Optional[str] = None
    message: Optional[str] = None

    def __post_init__(self):
        self.status = DeletionStatus.normalize(self.status)


@dataclass(frozen=True)
class ConnectorCapabilities:
    """What a connector can do."""
    can_scan: bool = False
    can_delete: bool = False
    can_check_status: bool = False


class BaseConnector(ABC):
    """Base class for data broker connectors.

    Subclasses must provide ``id``, ``name``, ``capabilities`` and ``scan``.
    Deletion and status checks refuse by default, so a scan-only connector
    only has to report the matching capabilities.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        """Stable connector identifier, also used as the broker id."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable broker name."""
        pass

    @abstractmethod
    def capabilities(self) -> ConnectorCapabilities:
        """Return the operations this connector supports."""
        pass

    def home_country(self) -> Optional[str]:
        """ISO 3166-1 alpha-2 code of the broker's home country, if known."""
        return None

    def data_countries(self) -> frozenset[str]:
        """Countries whose residents' data the broker processes.

        An empty set means unrestricted.
        """
        return frozenset()

    def serves_country(self, country: str) -> bool:
        countries = {c.upper() for c in self.data_countries()}
        return not countries or country.strip().upper() in countries

    @abstractmethod
    async def scan(self, query: PersonQuery) -> list[FoundRecord]:
        """
        Search this broker for the person.

        Returns an empty list when nothing matches.

        Raises:
            MissingQueryField: a field this broker needs is absent
            ConnectorError: network or parsing failure
        """
        pass

    async def request_deletion(
        self,
        query: PersonQuery,
        records: list[FoundRecord],
    ) -> DeletionSubmission:
        """Submit a deletion request covering ``records``."""
        raise ConnectorUnsupportedCapability(self.id, "deletion")

    async def check_deletion_status(self, external_ref: str) -> DeletionStatusCheck:
        """Ask the broker how a previously submitted request is doing."""
        raise ConnectorUnsupportedCapability(self.id, "status checks")

    async def aclose(self) -> None:
        """Release transport resources."""
        return None
