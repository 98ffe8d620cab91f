"""Scan orchestrator - fans a person query out to every applicable connector."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Iterable, Optional

from connectors import BaseConnector, ConnectorRegistry, FoundRecord, PersonQuery
from databreaker.config import settings
from databreaker.db.storage import Storage

logger = logging.getLogger(__name__)


@dataclass
class ConnectorScanResult:
    """Result of scanning a single connector."""
    connector_id: str
    records: list[FoundRecord] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: int = 0


@dataclass
class ScanSummary:
    """What one scan pass did."""
    records_found: int = 0  # returned by connectors this pass, not the stored total
    new_records: int = 0
    scanned: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    per_connector: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)
    no_candidates: bool = False

    @property
    def failed(self) -> int:
        return len(self.errors)


class ScanOrchestrator:
    """Selects connectors for a query, runs them concurrently and stores what they find."""

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

    def select_connectors(
        self,
        broker_ids: Optional[Iterable[str]] = None,
        country: Optional[str] = None,
    ) -> list[BaseConnector]:
        """Apply the allow-list, then the country filter."""
        candidates = self.registry.select(broker_ids)

        country = (country or "").strip()
        if country:
            candidates = [c for c in candidates if c.serves_country(country)]

        return candidates

    async def scan_connector(self, connector: BaseConnector, query: PersonQuery) -> ConnectorScanResult:
        """Run one connector's scan under the pass timeout. Never raises."""
        started = time.monotonic()
        try:
            records = await asyncio.wait_for(connector.scan(query), timeout=self.timeout)
            error = None
        except asyncio.TimeoutError:
            records, error = [], f"Timed out after {self.timeout:g}s"
        except Exception as e:
            records, error = [], str(e) or e.__class__.__name__

        duration_ms = int((time.monotonic() - started) * 1000)
        if error:
            logger.error(
                "Error scanning %s: %s", connector.id, error,
                extra={"connector": connector.id, "status": "error", "duration_ms": duration_ms},
            )
        else:
            logger.info(
                "Scanned %s: %d record(s)", connector.id, len(records),
                extra={"connector": connector.id, "status": "ok", "duration_ms": duration_ms},
            )

        return ConnectorScanResult(
            connector_id=connector.id,
            records=list(records or []),
            error=error,
            duration_ms=duration_ms,
        )

    async def scan(
        self,
        query: PersonQuery,
        broker_ids: Optional[Iterable[str]] = None,
        country: Optional[str] = None,
    ) -> ScanSummary:
        """
        Scan every applicable connector for ``query``.

        ``country`` defaults to the query's own country. One connector
        failing never stops the others; storage failures propagate.
        """
        summary = ScanSummary()
        candidates = self.select_connectors(broker_ids, country or query.country)

        if not candidates:
            logger.info("No matching connectors. Available: %s", ", ".join(self.registry.ids()))
            summary.no_candidates = True
            return summary

        runnable = []
        for connector in candidates:
            if not connector.capabilities().can_scan:
                logger.info("Skipping %s (no scan capability)", connector.id, extra={"connector": connector.id})
                summary.skipped.append(connector.id)
                continue

            # Records reference their broker, so the row must exist first
            _, created = await self.storage.ensure_broker(
                connector.id,
                connector.name,
                country=connector.home_country(),
                data_countries=connector.data_countries(),
            )
            if created:
                logger.info("Created broker %s", connector.id, extra={"connector": connector.id})
            runnable.append(connector)

        semaphore = asyncio.Semaphore(self.concurrent_limit)

        async def scan_with_limit(connector):
            async with semaphore:
                return await self.scan_connector(connector, query)

        results = await asyncio.gather(*(scan_with_limit(c) for c in runnable))

        for result in results:
            summary.scanned.append(result.connector_id)
            if result.error is not None:
                summary.errors[result.connector_id] = result.error
                continue

            for record in result.records:
                _, created = await self.storage.upsert_personal_record(result.connector_id, record)
                if created:
                    summary.new_records += 1

            summary.per_connector[result.connector_id] = len(result.records)
            summary.records_found += len(result.records)

        logger.info(
            "Scan finished: %d record(s) found (%d new), %d connector error(s)",
            summary.records_found, summary.new_records, summary.failed,
        )
        return summary
