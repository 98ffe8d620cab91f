"""BeenVerified data broker connector (scan only)."""

import logging
from typing import Optional

import httpx
from pydantic import BaseModel, ValidationError

from connectors.base import BaseConnector, ConnectorCapabilities, FoundRecord, PersonQuery
from connectors.errors import (
    ConnectorDataFailure,
    ConnectorTransportFailure,
    ConnectorUnsupportedCapability,
    MissingQueryField,
)

logger = logging.getLogger(__name__)

JSON_SEARCH_URL = "https://www.beenverified.com/svc/optout/search/optouts"
HTML_SEARCH_URL = "https://www.beenverified.com/app/optout/search"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class BvRecord(BaseModel):
    """One person entry from the opt-out search API. Every field is optional."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = None
    city: Optional[str] = None
    state: Optional[str] = None
    addresses: Optional[list[str]] = None
    relatives: Optional[list[str]] = None
    profile_url: Optional[str] = None


class BvSearchResponse(BaseModel):
    records: Optional[list[BvRecord]] = None
    # Some API revisions use "results" instead of "records"
    results: Optional[list[BvRecord]] = None

    def people(self) -> list[BvRecord]:
        return self.records or self.results or []


def bv_record_to_found_records(rec: BvRecord) -> list[FoundRecord]:
    """Split one BeenVerified person entry into individual facts."""
    out: list[FoundRecord] = []
    profile = rec.profile_url

    name = " ".join(part for part in (rec.first_name, rec.last_name) if part)
    if name:
        out.append(FoundRecord(kind="name", value=name, profile_url=profile))

    if rec.age is not None:
        out.append(FoundRecord(kind="age", value=str(rec.age), profile_url=profile))

    addresses = rec.addresses or []
    for addr in addresses:
        out.append(FoundRecord(kind="address", value=addr, profile_url=profile))

    # Fall back to city/state when there are no structured addresses
    if not addresses and rec.city and rec.state:
        out.append(FoundRecord(kind="address", value=f"{rec.city}, {rec.state}", profile_url=profile))

    if rec.relatives:
        out.append(FoundRecord(kind="relatives", value=", ".join(rec.relatives), profile_url=profile))

    return out


def parse_search_response(body: str) -> list[FoundRecord]:
    """Parse the JSON search payload into found records."""
    try:
        parsed = BvSearchResponse.model_validate_json(body)
    except ValidationError as e:
        raise ConnectorDataFailure(f"Unparseable BeenVerified response: {e.error_count()} error(s)") from e

    records: list[FoundRecord] = []
    for person in parsed.people():
        records.extend(bv_record_to_found_records(person))
    return records


class BeenVerifiedConnector(BaseConnector):
    """
    BeenVerified opt-out search connector.

    Finds records through the public opt-out search endpoints. Deletion is
    not supported: the opt-out form needs CAPTCHA interaction that cannot be
    automated without browser automation.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
            transport=transport,
        )

    @property
    def id(self) -> str:
        return "beenverified"

    @property
    def name(self) -> str:
        return "BeenVerified"

    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(can_scan=True, can_delete=False, can_check_status=False)

    def home_country(self) -> Optional[str]:
        return "US"

    def data_countries(self) -> frozenset[str]:
        return frozenset({"US"})

    async def scan(self, query: PersonQuery) -> list[FoundRecord]:
        state = (query.state or "").strip()
        if not state:
            raise MissingQueryField(self.id, "state", "a US state abbreviation such as NY")

        params = {
            "firstName": query.first_name,
            "lastName": query.last_name,
            "state": state,
        }
        transport_errors: list[str] = []

        # Attempt 1: JSON API endpoint
        try:
            response = await self._client.get(
                JSON_SEARCH_URL,
                params=params,
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            transport_errors.append(f"JSON search: {e!r}")
            logger.debug("JSON API request failed: %r, trying HTML fallback", e)
        else:
            if response.is_success:
                try:
                    records = parse_search_response(response.text)
                except ConnectorDataFailure as e:
                    logger.debug("%s, trying HTML fallback", e)
                else:
                    if records:
                        return records
                    logger.debug("JSON API returned no records, trying HTML fallback")
            else:
                transport_errors.append(f"JSON search: HTTP {response.status_code}")
                logger.debug("JSON API returned HTTP %s, trying HTML fallback", response.status_code)

        # Attempt 2: HTML page. Structured HTML parsing is not implemented.
        try:
            response = await self._client.get(HTML_SEARCH_URL, params=params)
        except httpx.HTTPError as e:
            transport_errors.append(f"HTML search: {e!r}")
        else:
            if response.is_success:
                logger.warning(
                    "BeenVerified HTML fallback returned a page but HTML parsing is not implemented"
                )
                return []
            transport_errors.append(f"HTML search: HTTP {response.status_code}")

        if len(transport_errors) == 2:
            raise ConnectorTransportFailure("; ".join(transport_errors))
        return []

    async def request_deletion(self, query, records):
        raise ConnectorUnsupportedCapability(
            self.id,
            "deletion",
            "the opt-out form requires CAPTCHA interaction that cannot be automated",
        )

    async def check_deletion_status(self, external_ref):
        raise ConnectorUnsupportedCapability(
            self.id,
            "status checks",
            "deletion must be supported first",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
