"""Deletion-by-email connectors: send a CCPA/GDPR removal request to a broker's privacy mailbox."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import resend

from connectors.base import (
    BaseConnector,
    ConnectorCapabilities,
    DeletionSubmission,
    FoundRecord,
    PersonQuery,
)
from connectors.errors import (
    ConnectorError,
    ConnectorTransportFailure,
    ConnectorUnsupportedCapability,
    MissingQueryField,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailOptOutConfig:
    """Privacy mailbox of a broker that accepts removal requests by email."""
    id: str
    name: str
    email: str
    subject: str
    data_countries: frozenset[str] = frozenset({"US"})


EMAIL_OPT_OUT_BROKERS = [
    EmailOptOutConfig(
        id="radaris",
        name="Radaris",
        email="privacy@radaris.com",
        subject="CCPA/GDPR Data Deletion Request",
    ),
    EmailOptOutConfig(
        id="peoplefinder",
        name="PeopleFinder",
        email="privacy@peoplefinder.com",
        subject="Opt-Out Request",
    ),
    EmailOptOutConfig(
        id="truthfinder",
        name="TruthFinder",
        email="privacy@truthfinder.com",
        subject="Opt-Out Request",
    ),
]


def generate_opt_out_email(
    broker_name: str,
    query: PersonQuery,
    records: list[FoundRecord],
) -> str:
    """Build the plain-text removal request listing every record found."""

    full_name = query.full_name

    identifying = [
        f"- First Name: {query.first_name}",
        f"- Last Name: {query.last_name}",
        f"- Email: {query.email}",
    ]
    if query.phone:
        identifying.append(f"- Phone Number: {query.phone}")
    if query.city or query.state:
        identifying.append(f"- Location: {', '.join(p for p in (query.city, query.state) if p)}")

    found_lines = []
    profile_urls = []
    for record in records:
        found_lines.append(f"- {record.kind}: {record.value}")
        if record.profile_url and record.profile_url not in profile_urls:
            profile_urls.append(record.profile_url)

    found_text = ""
    if found_lines:
        found_text = "\n\nRECORDS FOUND ON YOUR SITE:\n\n" + "\n".join(found_lines)

    profile_text = ""
    if profile_urls:
        profile_text = "\n\nProfile URL(s):\n" + "\n".join(f"- {url}" for url in profile_urls)

    return f"""To Whom It May Concern,

I am writing to request the removal of my personal information from your database and website ({broker_name}), pursuant to my rights under the California Consumer Privacy Act (CCPA), the General Data Protection Regulation (GDPR), and other applicable privacy laws.

PERSONAL INFORMATION TO REMOVE:

{chr(10).join(identifying)}{found_text}{profile_text}

Please search for and remove ALL records matching any combination of the above information, and refrain from selling or sharing my personal information with third parties.

Please confirm completion of this request by email within 45 days.

Sincerely,
{full_name}
{query.email}
"""


class EmailOptOutConnector(BaseConnector):
    """Deletion-only connector that emails the broker's privacy mailbox via Resend.

    There is no way to query the broker afterwards, so status checks are
    unsupported and requests stay ``submitted`` until updated by hand.
    """

    def __init__(self, config: EmailOptOutConfig, api_key: Optional[str], from_email: str):
        if not api_key:
            raise ConnectorError(f"{config.id}: email service not configured (RESEND_API_KEY is empty)")
        self.config = config
        self.from_email = from_email
        resend.api_key = api_key

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    def capabilities(self) -> ConnectorCapabilities:
        return ConnectorCapabilities(can_scan=False, can_delete=True, can_check_status=False)

    def home_country(self) -> Optional[str]:
        return "US"

    def data_countries(self) -> frozenset[str]:
        return self.config.data_countries

    async def scan(self, query: PersonQuery) -> list[FoundRecord]:
        # These sites can only be searched with a browser
        raise ConnectorUnsupportedCapability(self.id, "scanning")

    async def request_deletion(
        self,
        query: PersonQuery,
        records: list[FoundRecord],
    ) -> DeletionSubmission:
        if not query.email:
            raise MissingQueryField(self.id, "email", "replies to the removal request go there")

        body = generate_opt_out_email(self.config.name, query, records)
        params = {
            "from": f"Data Breaker <{self.from_email}>",
            "to": [self.config.email],
            "reply_to": query.email,
            "subject": f"{self.config.subject} - {query.full_name}",
            "text": body,
        }

        try:
            result = await asyncio.to_thread(resend.Emails.send, params)
        except Exception as e:
            raise ConnectorTransportFailure(f"Failed to send opt-out email to {self.config.email}: {e}") from e

        email_id = result.get("id") if isinstance(result, dict) else getattr(result, "id", None)
        logger.info("Opt-out email sent to %s (%s)", self.config.name, self.config.email)

        return DeletionSubmission(
            external_ref=f"EMAIL-{email_id or 'unknown'}",
            message=f"Opt-out email sent to {self.config.name} ({self.config.email})",
        )
