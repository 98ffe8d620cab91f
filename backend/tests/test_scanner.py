"""Tests for the scan orchestrator."""

import asyncio

import pytest

from connectors import (
    BeenVerifiedConnector,
    ConnectorRegistry,
    DummyConnector,
    FoundRecord,
    PersonQuery,
)
from databreaker.errors import StorageFailure
from databreaker.services.scanner import ScanOrchestrator


class TestSelection:
    """Allow-list and country filtering."""

    def test_allow_list(self, make_connector):
        registry = ConnectorRegistry([make_connector("a"), make_connector("b")])
        orchestrator = ScanOrchestrator(None, registry)

        assert [c.id for c in orchestrator.select_connectors(["b"])] == ["b"]

    def test_country_filter_keeps_unrestricted(self, make_connector):
        registry = ConnectorRegistry([
            make_connector("us-only", countries=frozenset({"US"})),
            make_connector("anywhere"),
        ])
        orchestrator = ScanOrchestrator(None, registry)

        assert [c.id for c in orchestrator.select_connectors(country="DE")] == ["anywhere"]
        assert len(orchestrator.select_connectors(country="us")) == 2


class TestScan:
    """Scan passes."""

    @pytest.mark.asyncio
    async def test_scan_stores_records(self, storage, query):
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([DummyConnector()]))

        summary = await orchestrator.scan(query)

        assert summary.scanned == ["dummy-broker"]
        assert summary.records_found == 3  # name, address, email
        assert summary.new_records == 3
        assert summary.per_connector == {"dummy-broker": 3}
        assert not summary.errors

        broker = await storage.get_broker("dummy-broker")
        assert broker.name == "Dummy Broker"
        assert len(await storage.list_personal_records("dummy-broker")) == 3

    @pytest.mark.asyncio
    async def test_repeated_scan_is_idempotent(self, storage, query):
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([DummyConnector()]))

        await orchestrator.scan(query)
        second = await orchestrator.scan(query)

        assert second.records_found == 3
        assert second.new_records == 0
        assert len(await storage.list_personal_records()) == 3

    @pytest.mark.asyncio
    async def test_allow_list_and_missing_state(self, storage):
        """Only the allowed connector runs; its missing-field error names the field."""
        dummy = DummyConnector()
        beenverified = BeenVerifiedConnector()
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([dummy, beenverified]))

        summary = await orchestrator.scan(PersonQuery(first_name="Jane", last_name="Doe"), broker_ids=["beenverified"])
        await beenverified.aclose()

        assert summary.scanned == ["beenverified"]
        assert summary.records_found == 0
        assert "state" in summary.errors["beenverified"]
        assert await storage.get_broker("dummy-broker") is None

    @pytest.mark.asyncio
    async def test_country_filter_excludes_us_only_connector(self, storage, make_connector, query):
        us_only = make_connector("us-only", countries=frozenset({"US"}))
        anywhere = make_connector("anywhere")
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([us_only, anywhere]))

        summary = await orchestrator.scan(query, country="DE")

        assert summary.scanned == ["anywhere"]
        assert us_only.scan_calls == 0
        assert anywhere.scan_calls == 1

    @pytest.mark.asyncio
    async def test_query_country_used_when_no_override(self, storage, make_connector):
        us_only = make_connector("us-only", countries=frozenset({"US"}))
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([us_only]))

        summary = await orchestrator.scan(PersonQuery(first_name="Jane", country="DE"))

        assert summary.no_candidates
        assert us_only.scan_calls == 0

    @pytest.mark.asyncio
    async def test_no_candidates_is_distinct_from_no_results(self, storage, make_connector, query):
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([make_connector("a", records=[])]))

        none_selected = await orchestrator.scan(query, broker_ids=["missing"])
        nothing_found = await orchestrator.scan(query)

        assert none_selected.no_candidates
        assert not nothing_found.no_candidates
        assert nothing_found.records_found == 0

    @pytest.mark.asyncio
    async def test_connector_without_scan_is_skipped(self, storage, make_connector, query):
        no_scan = make_connector("mail-only", can_scan=False)
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([no_scan]))

        summary = await orchestrator.scan(query)

        assert summary.skipped == ["mail-only"]
        assert summary.scanned == []
        assert no_scan.scan_calls == 0

    @pytest.mark.asyncio
    async def test_one_failure_does_not_stop_others(self, storage, make_connector, query):
        broken = make_connector("broken", scan_error=RuntimeError("boom"))
        working = make_connector("working", records=[FoundRecord(kind="age", value="42")])
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([broken, working]))

        summary = await orchestrator.scan(query)

        assert summary.errors == {"broken": "boom"}
        assert summary.failed == 1
        assert summary.per_connector == {"working": 1}
        assert len(await storage.list_personal_records("working")) == 1

    @pytest.mark.asyncio
    async def test_slow_connector_times_out(self, storage, make_connector, query):
        slow = make_connector("slow")

        async def never_finishes(q):
            await asyncio.sleep(10)
            return []

        slow.scan = never_finishes
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([slow]), timeout=0.05)

        summary = await orchestrator.scan(query)

        assert "Timed out" in summary.errors["slow"]

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, storage, make_connector, query, monkeypatch):
        orchestrator = ScanOrchestrator(storage, ConnectorRegistry([make_connector("alpha")]))

        async def failing_upsert(broker_id, record, found_at=None):
            raise StorageFailure("database is locked")

        monkeypatch.setattr(storage, "upsert_personal_record", failing_upsert)

        with pytest.raises(StorageFailure, match="locked"):
            await orchestrator.scan(query)
