"""
Connector registry - maps connector identifiers to live connector instances.

Built once at startup. Capabilities always come from the instances held
here, never from stored broker metadata.
"""

import logging
from typing import Callable, Iterable, Optional

from connectors.base import BaseConnector
from connectors.errors import DuplicateConnectorError

logger = logging.getLogger(__name__)

ConnectorFactory = Callable[[], BaseConnector]


class ConnectorRegistry:
    """Registry of broker connectors keyed by identifier.

    Example:
        registry = ConnectorRegistry()
        registry.register(DummyConnector())

        dummy = registry.get("dummy-broker")
        records = await dummy.scan(query)
    """

    def __init__(self, connectors: Iterable[BaseConnector] = ()) -> None:
        self._connectors: dict[str, BaseConnector] = {}
        for connector in connectors:
            self.register(connector)

    def register(self, connector: BaseConnector) -> None:
        """Register a connector.

        Raises:
            DuplicateConnectorError: a connector with the same id is already registered
        """
        if connector.id in self._connectors:
            raise DuplicateConnectorError(connector.id)
        self._connectors[connector.id] = connector

    def get(self, connector_id: str) -> BaseConnector:
        """Get connector by id.

        Raises:
            KeyError: if the connector is not registered
        """
        if connector_id not in self._connectors:
            raise KeyError(f"Unknown connector: {connector_id}")
        return self._connectors[connector_id]

    def get_optional(self, connector_id: str) -> Optional[BaseConnector]:
        return self._connectors.get(connector_id)

    def all(self) -> list[BaseConnector]:
        return list(self._connectors.values())

    def ids(self) -> list[str]:
        return list(self._connectors.keys())

    def select(self, connector_ids: Optional[Iterable[str]] = None) -> list[BaseConnector]:
        """Connectors whose id is in ``connector_ids``; all of them when it is empty."""
        wanted = set(connector_ids or ())
        if not wanted:
            return self.all()
        return [c for cid, c in self._connectors.items() if cid in wanted]

    async def aclose_all(self) -> None:
        """Close every connector's transport."""
        for connector in self._connectors.values():
            try:
                await connector.aclose()
            except Exception as e:
                logger.warning("Failed to close connector %s: %s", connector.id, e)

    def __contains__(self, connector_id: object) -> bool:
        return connector_id in self._connectors

    def __len__(self) -> int:
        return len(self._connectors)


def build_connector_registry(factories: Iterable[ConnectorFactory]) -> ConnectorRegistry:
    """Instantiate every connector factory and index the results by id.

    A factory that raises is logged and left out, so lookups for its id
    simply miss. When two connectors share an id the first one registered
    is kept and the later one is dropped with an error log.
    """
    registry = ConnectorRegistry()

    for factory in factories:
        try:
            connector = factory()
        except Exception as e:
            logger.warning("Failed to initialize connector %s: %s", _factory_name(factory), e)
            continue

        try:
            registry.register(connector)
        except DuplicateConnectorError as e:
            logger.error("%s; keeping the first registration", e)

    logger.info("Connector registry built: %s", ", ".join(registry.ids()) or "(empty)")
    return registry


def _factory_name(factory: ConnectorFactory) -> str:
    func = getattr(factory, "func", factory)  # unwrap functools.partial
    return getattr(func, "__name__", repr(func))
