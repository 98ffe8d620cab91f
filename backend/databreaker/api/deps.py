"""Shared FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from connectors import ConnectorRegistry, build_connector_registry, default_factories
from databreaker.config import settings
from databreaker.db.storage import Storage


@lru_cache()
def get_storage() -> Storage:
    """Process-wide storage; one instance so every pass shares its lock."""
    return Storage()


@lru_cache()
def get_connector_registry() -> ConnectorRegistry:
    """Process-wide connector registry, built once."""
    return build_connector_registry(
        default_factories(
            timeout=settings.connector_timeout_seconds,
            user_agent=settings.user_agent,
            resend_api_key=settings.resend_api_key,
            from_email=settings.from_email,
        )
    )


StorageDep = Annotated[Storage, Depends(get_storage)]
RegistryDep = Annotated[ConnectorRegistry, Depends(get_connector_registry)]
