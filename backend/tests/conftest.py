"""Shared test fixtures."""

from typing import Optional

import pytest

from connectors import (
    BaseConnector,
    ConnectorCapabilities,
    ConnectorRegistry,
    DeletionStatusCheck,
    DeletionSubmission,
    FoundRecord,
    PersonQuery,
)
from databreaker.db.database import create_engine, create_session_factory, init_db
from databreaker.db.storage import Storage


class FakeConnector(BaseConnector):
    """Configurable in-memory connector that records how it was called."""

    def __init__(
        self,
        connector_id: str = "fake",
        can_scan: bool = True,
        can_delete: bool = True,
        can_check_status: bool = True,
        countries: frozenset[str] = frozenset(),
        records: Optional[list[FoundRecord]] = None,
        scan_error: Optional[Exception] = None,
        delete_error: Optional[Exception] = None,
        status: str = "in_progress",
        status_error: Optional[Exception] = None,
    ):
        self._id = connector_id
        self._caps = ConnectorCapabilities(can_scan, can_delete, can_check_status)
        self._countries = countries
        self.records = records if records is not None else [FoundRecord(kind="name", value="Jane Doe")]
        self.scan_error = scan_error
        self.delete_error = delete_error
        self.status = status
        self.status_error = status_error
        self.scan_calls = 0
        self.delete_calls: list[list[FoundRecord]] = []
        self.status_calls: list[str] = []
        self.closed = False

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._id.title()

    def capabilities(self) -> ConnectorCapabilities:
        return self._caps

    def data_countries(self) -> frozenset[str]:
        return self._countries

    async def scan(self, query: PersonQuery) -> list[FoundRecord]:
        self.scan_calls += 1
        if self.scan_error:
            raise self.scan_error
        return list(self.records)

    async def request_deletion(self, query, records) -> DeletionSubmission:
        self.delete_calls.append(records)
        if self.delete_error:
            raise self.delete_error
        return DeletionSubmission(external_ref=f"{self._id.upper()}-REF-{len(self.delete_calls)}")

    async def check_deletion_status(self, external_ref: str) -> DeletionStatusCheck:
        self.status_calls.append(external_ref)
        if self.status_error:
            raise self.status_error
        return DeletionStatusCheck(status=self.status)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
async def storage(tmp_path):
    """Storage over a fresh SQLite file database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield Storage(create_session_factory(engine))
    await engine.dispose()


@pytest.fixture
def query():
    return PersonQuery(first_name="Jane", last_name="Doe", email="jane@example.com", state="NY")


@pytest.fixture
def make_connector():
    """Factory for FakeConnector instances."""
    return FakeConnector


@pytest.fixture
def registry():
    return ConnectorRegistry()
