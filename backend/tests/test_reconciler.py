"""Tests for the status reconciler."""

import asyncio
import uuid

import pytest

from connectors import ConnectorRegistry
from databreaker.models import DeletionRequest
from databreaker.services.reconciler import StatusReconciler


async def add_request(storage, broker_id="alpha", status="submitted", external_ref="REF-1"):
    await storage.ensure_broker(broker_id, broker_id.title())
    request = DeletionRequest(
        id=str(uuid.uuid4()),
        broker_id=broker_id,
        status=status,
        external_ref=external_ref,
    )
    await storage.insert_deletion_requests([request])
    return await storage.get_deletion_request(request.id)


class TestReconcile:
    """Reconciliation passes."""

    @pytest.mark.asyncio
    async def test_status_change_is_persisted(self, storage, make_connector):
        alpha = make_connector("alpha", status="completed")
        request = await add_request(storage)

        summary = await StatusReconciler(storage, ConnectorRegistry([alpha])).reconcile()

        assert summary.checked == 1
        assert summary.updated == 1
        assert alpha.status_calls == ["REF-1"]

        stored = await storage.get_deletion_request(request.id)
        assert stored.status == "completed"
        assert stored.updated_at > request.updated_at

    @pytest.mark.asyncio
    async def test_unchanged_status_writes_nothing(self, storage, make_connector):
        alpha = make_connector("alpha", status="submitted")
        request = await add_request(storage)

        summary = await StatusReconciler(storage, ConnectorRegistry([alpha])).reconcile()

        assert summary.checked == 1
        assert summary.updated == 0
        stored = await storage.get_deletion_request(request.id)
        assert stored.updated_at == request.updated_at

    @pytest.mark.asyncio
    async def test_second_pass_without_remote_change_is_idempotent(self, storage, make_connector):
        alpha = make_connector("alpha", status="in_progress")
        request = await add_request(storage)
        reconciler = StatusReconciler(storage, ConnectorRegistry([alpha]))

        await reconciler.reconcile()
        after_first = await storage.get_deletion_request(request.id)
        second = await reconciler.reconcile()
        after_second = await storage.get_deletion_request(request.id)

        assert second.updated == 0
        assert after_second.updated_at == after_first.updated_at

    @pytest.mark.asyncio
    async def test_unregistered_connector_leaves_status(self, storage):
        request = await add_request(storage, broker_id="gone")

        summary = await StatusReconciler(storage, ConnectorRegistry()).reconcile()

        assert summary.checked == 0
        assert (await storage.get_deletion_request(request.id)).status == "submitted"
        assert [r.id for r in summary.requests] == [request.id]

    @pytest.mark.asyncio
    async def test_failing_check_leaves_status(self, storage, make_connector):
        alpha = make_connector("alpha", status_error=RuntimeError("portal down"))
        request = await add_request(storage)

        summary = await StatusReconciler(storage, ConnectorRegistry([alpha])).reconcile()

        assert summary.checked == 1
        assert summary.updated == 0
        assert (await storage.get_deletion_request(request.id)).status == "submitted"

    @pytest.mark.asyncio
    async def test_unknown_status_never_overwrites(self, storage, make_connector):
        alpha = make_connector("alpha", status="processing-maybe")
        request = await add_request(storage, status="in_progress")

        summary = await StatusReconciler(storage, ConnectorRegistry([alpha])).reconcile()

        assert summary.updated == 0
        assert (await storage.get_deletion_request(request.id)).status == "in_progress"

    @pytest.mark.asyncio
    async def test_terminal_and_refless_requests_are_not_polled(self, storage, make_connector):
        alpha = make_connector("alpha", status="failed")
        await add_request(storage, status="completed")
        await add_request(storage, status="pending")
        await add_request(storage, status="submitted", external_ref=None)

        summary = await StatusReconciler(storage, ConnectorRegistry([alpha])).reconcile()

        assert summary.checked == 0
        assert alpha.status_calls == []

    @pytest.mark.asyncio
    async def test_connector_without_status_checks_is_skipped(self, storage, make_connector):
        mail = make_connector("alpha", can_check_status=False)
        await add_request(storage)

        summary = await StatusReconciler(storage, ConnectorRegistry([mail])).reconcile()

        assert summary.checked == 0
        assert mail.status_calls == []

    @pytest.mark.asyncio
    async def test_filters_apply_after_reconciliation(self, storage, make_connector):
        alpha = make_connector("alpha", status="completed")
        beta = make_connector("beta", status="in_progress")
        done = await add_request(storage, broker_id="alpha")
        await add_request(storage, broker_id="beta")
        reconciler = StatusReconciler(storage, ConnectorRegistry([alpha, beta]))

        completed = await reconciler.reconcile(status="completed")
        beta_only = await reconciler.reconcile(broker_id="beta")

        assert [r.id for r in completed.requests] == [done.id]
        assert [r.broker_id for r in beta_only.requests] == ["beta"]
        assert beta_only.requests[0].status == "in_progress"

    @pytest.mark.asyncio
    async def test_concurrent_limit_bounds_status_checks(self, storage, make_connector):
        in_flight = {"now": 0, "peak": 0}

        class SlowConnector(make_connector):
            async def check_deletion_status(self, external_ref):
                in_flight["now"] += 1
                in_flight["peak"] = max(in_flight["peak"], in_flight["now"])
                await asyncio.sleep(0.01)
                in_flight["now"] -= 1
                return await super().check_deletion_status(external_ref)

        alpha = SlowConnector("alpha", status="completed")
        for n in range(3):
            await add_request(storage, external_ref=f"REF-{n}")
        reconciler = StatusReconciler(storage, ConnectorRegistry([alpha]), concurrent_limit=1)

        summary = await reconciler.reconcile()

        assert summary.updated == 3
        assert in_flight["peak"] == 1
