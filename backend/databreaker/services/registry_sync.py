"""
Registry feed sync.

The registry is a JSON array of broker entries published on GitHub. Each
entry is validated, then upserted into the brokers table. Fields missing
from an entry leave whatever is already stored untouched.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from databreaker.config import settings
from databreaker.db.database import utcnow
from databreaker.db.storage import Storage
from databreaker.errors import RegistryError

logger = logging.getLogger(__name__)

LAST_FETCHED_KEY = "last_fetched_at"


class RegistryBroker(BaseModel):
    """One broker entry in the registry feed."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    website: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    connector: Optional[str] = None
    country: Optional[str] = None
    data_countries: Optional[str] = None

    @field_validator("country")
    @classmethod
    def upper_country(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().upper() if value else None

    @field_validator("data_countries", mode="before")
    @classmethod
    def join_countries(cls, value):
        # Feed may carry ["US", "CA"] or "US,CA"
        if value is None:
            return None
        if isinstance(value, str):
            value = value.split(",")
        codes = [str(code).strip().upper() for code in value if str(code).strip()]
        return ",".join(codes) or None


async def fetch_registry(
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[RegistryBroker]:
    """Download and validate the registry feed."""
    url = url or settings.registry_url

    try:
        async with httpx.AsyncClient(
            timeout=settings.connector_timeout_seconds,
            headers={"User-Agent": "data-breaker"},
            follow_redirects=True,
            transport=transport,
        ) as client:
            response = await client.get(url)
    except httpx.HTTPError as e:
        raise RegistryError(f"Failed to fetch registry: {e}") from e

    if not response.is_success:
        raise RegistryError(f"Failed to fetch registry: HTTP {response.status_code}")

    try:
        entries = response.json()
    except ValueError as e:
        raise RegistryError(f"Registry is not valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise RegistryError("Registry must be a JSON array of brokers")

    try:
        return [RegistryBroker.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise RegistryError(f"Malformed registry entry: {e}") from e


async def update_registry(
    storage: Storage,
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> int:
    """Fetch the registry and upsert every broker. Returns how many were synced."""
    brokers = await fetch_registry(url, transport=transport)
    now = utcnow()

    for entry in brokers:
        fields = entry.model_dump(exclude={"id"})
        await storage.upsert_broker(entry.id, registry_updated_at=now, **fields)

    await storage.set_meta(LAST_FETCHED_KEY, now.isoformat())
    logger.info("Updated %d broker(s) from registry", len(brokers))
    return len(brokers)


async def registry_info(storage: Storage) -> dict:
    last_fetched = await storage.get_meta(LAST_FETCHED_KEY)
    brokers = await storage.list_brokers()
    return {
        "last_fetched_at": datetime.fromisoformat(last_fetched) if last_fetched else None,
        "broker_count": len(brokers),
    }
