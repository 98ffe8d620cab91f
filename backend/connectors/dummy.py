"""Dummy broker connector returning fake data, for trying the pipeline end to end."""

import uuid

from connectors.base import (
    BaseConnector,
    ConnectorCapabilities,
    DeletionStatus,
    DeletionStatusCheck,
    DeletionSubmission,
    FoundRecord,
    PersonQuery,
)

PROFILE_URL = "https://dummy-broker.example.com/profile/12345"


class DummyConnector(BaseConnector):
    """Connector that supports every operation and never touches the network."""

    @property
    def id(self) -> str:
        return "dummy-broker"

    @property
    def name(self) -> str:
        return "Dummy Broker"

    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(can_scan=True, can_delete=True, can_check_status=True)

    async def scan(self, query: PersonQuery) -> list[FoundRecord]:
        records = [
            FoundRecord(kind="name", value=query.full_name, profile_url=PROFILE_URL),
            FoundRecord(
                kind="address",
                value=f"123 Main St, {query.city or 'Anytown'}, {query.state or 'CA'}",
                profile_url=PROFILE_URL,
            ),
        ]

        if query.email:
            records.append(FoundRecord(kind="email", value=query.email))

        if query.phone:
            records.append(FoundRecord(kind="phone", value=query.phone))

        return records

    async def request_deletion(
        self,
        query: PersonQuery,
        records: list[FoundRecord],
    ) -> DeletionSubmission:
        return DeletionSubmission(
            external_ref=f"DUMMY-{uuid.uuid4()}",
            message="Deletion request submitted to Dummy Broker",
        )

    async def check_deletion_status(self, external_ref: str) -> DeletionStatusCheck:
        return DeletionStatusCheck(
            status=DeletionStatus.IN_PROGRESS,
            message=f"Request {external_ref} is being processed",
        )
