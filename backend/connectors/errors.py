"""Errors raised by broker connectors."""


class ConnectorError(Exception):
    """Base class for every failure a connector reports."""


class ConnectorUnsupportedCapability(ConnectorError):
    """Operation attempted against a connector that does not support it."""

    def __init__(self, connector_id: str, capability: str, reason: str | None = None):
        self.connector_id = connector_id
        self.capability = capability
        message = f"{connector_id} does not support {capability}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConnectorTransportFailure(ConnectorError):
    """Network error, timeout or unexpected HTTP status."""


class ConnectorDataFailure(ConnectorError):
    """Broker answered, but the payload could not be used."""


class MissingQueryField(ConnectorError):
    """The query lacks a field this connector needs."""

    def __init__(self, connector_id: str, field: str, hint: str | None = None):
        self.connector_id = connector_id
        self.field = field
        message = f"{connector_id} requires the {field} field"
        if hint:
            message += f" ({hint})"
        super().__init__(message)


class DuplicateConnectorError(ConnectorError, ValueError):
    """A connector with the same identifier is already registered."""

    def __init__(self, connector_id: str):
        self.connector_id = connector_id
        super().__init__(f"Connector already registered: {connector_id}")
