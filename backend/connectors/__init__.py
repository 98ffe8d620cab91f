"""Data broker connectors."""

from functools import partial
from typing import Optional

from connectors.base import (
    BaseConnector,
    ConnectorCapabilities,
    DeletionStatus,
    DeletionStatusCheck,
    DeletionSubmission,
    FoundRecord,
    IN_FLIGHT_STATUSES,
    PersonQuery,
)
from connectors.beenverified import BeenVerifiedConnector
from connectors.dummy import DummyConnector
from connectors.email_optout import EMAIL_OPT_OUT_BROKERS, EmailOptOutConnector
from connectors.errors import (
    ConnectorDataFailure,
    ConnectorError,
    ConnectorTransportFailure,
    ConnectorUnsupportedCapability,
    DuplicateConnectorError,
    MissingQueryField,
)
from connectors.registry import ConnectorFactory, ConnectorRegistry, build_connector_registry


def default_factories(
    timeout: float = 30.0,
    user_agent: Optional[str] = None,
    resend_api_key: Optional[str] = None,
    from_email: str = "noreply@example.com",
) -> list[ConnectorFactory]:
    """Every compiled-in connector. Add new connectors here."""
    beenverified_kwargs = {"timeout": timeout}
    if user_agent:
        beenverified_kwargs["user_agent"] = user_agent

    factories: list[ConnectorFactory] = [
        DummyConnector,
        partial(BeenVerifiedConnector, **beenverified_kwargs),
    ]
    factories.extend(
        partial(EmailOptOutConnector, config, resend_api_key, from_email)
        for config in EMAIL_OPT_OUT_BROKERS
    )
    return factories


__all__ = [
    "BaseConnector",
    "ConnectorCapabilities",
    "DeletionStatus",
    "DeletionStatusCheck",
    "DeletionSubmission",
    "FoundRecord",
    "IN_FLIGHT_STATUSES",
    "PersonQuery",
    "BeenVerifiedConnector",
    "DummyConnector",
    "EmailOptOutConnector",
    "ConnectorError",
    "ConnectorDataFailure",
    "ConnectorTransportFailure",
    "ConnectorUnsupportedCapability",
    "DuplicateConnectorError",
    "MissingQueryField",
    "ConnectorFactory",
    "ConnectorRegistry",
    "build_connector_registry",
    "default_factories",
]
