"""Status reconciler - polls in-flight deletion requests and records status changes."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from connectors import ConnectorRegistry, DeletionStatus, DeletionStatusCheck, IN_FLIGHT_STATUSES
from databreaker.config import settings
from databreaker.db.storage import Storage
from databreaker.models import DeletionRequest

logger = logging.getLogger(__name__)


@dataclass
class ReconcileSummary:
    """Requests after reconciliation, filtered by status when asked."""
    requests: list[DeletionRequest] = field(default_factory=list)
    checked: int = 0
    updated: int = 0


class StatusReconciler:
    """Re-polls connectors for submitted/in-progress requests.

    Terminal requests (completed, failed, rejected) are never polled. A
    request is only written when the broker reports a different status, so
    running a pass twice without remote changes writes nothing.
    """

    def __init__(
        self,
        storage: Storage,
        registry: ConnectorRegistry,
        timeout: Optional[float] = None,
        concurrent_limit: Optional[int] = None,
    ):
        self.storage = storage
        self.registry = registry
        self.timeout = timeout if timeout is not None else settings.connector_timeout_seconds
        self.concurrent_limit = concurrent_limit or settings.scan_concurrency

    def is_eligible(self, request: DeletionRequest) -> bool:
        if request.status_enum not in IN_FLIGHT_STATUSES or not request.external_ref:
            return False
        connector = self.registry.get_optional(request.broker_id)
        return connector is not None and connector.capabilities().can_check_status

    async def _check(self, request: DeletionRequest) -> Optional[DeletionStatusCheck]:
        connector = self.registry.get(request.broker_id)
        try:
            check = await asyncio.wait_for(
                connector.check_deletion_status(request.external_ref),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Could not check status for %s: timed out after %gs", request.id, self.timeout)
            return None
        except Exception as e:
            logger.warning("Could not check status for %s: %s", request.id, e)
            return None

        if check.status is DeletionStatus.UNKNOWN:
            logger.warning(
                "Broker %s reported an unrecognised status for %s; keeping %s",
                request.broker_id, request.id, request.status,
            )
            return None
        return check

    async def reconcile(
        self,
        broker_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> ReconcileSummary:
        """
        Refresh in-flight requests, then return them.

        ``status`` filters on the stored status after reconciliation.
        Check failures are logged and never change the stored status.
        """
        requests = await self.storage.list_deletion_requests(broker_id)
        eligible = [r for r in requests if self.is_eligible(r)]
        semaphore = asyncio.Semaphore(self.concurrent_limit)

        async def check_with_limit(request):
            async with semaphore:
                return await self._check(request)

        checks = await asyncio.gather(*(check_with_limit(r) for r in eligible))

        summary = ReconcileSummary(checked=len(eligible))
        refreshed: dict[str, DeletionRequest] = {}

        for request, check in zip(eligible, checks):
            if check is None or check.status.value == request.status:
                continue

            updated = await self.storage.update_deletion_request(
                request.id,
                status=check.status.value,
                completed_at=check.completed_at,
                error_message=check.message,
            )
            refreshed[request.id] = updated
            summary.updated += 1
            logger.info(
                "Updated status for %s -> %s", request.id, check.status.value,
                extra={"connector": request.broker_id, "status": check.status.value},
            )

        requests = [refreshed.get(r.id, r) for r in requests]
        if status:
            wanted = DeletionStatus.normalize(status).value
            requests = [r for r in requests if r.status == wanted]

        summary.requests = requests
        return summary
