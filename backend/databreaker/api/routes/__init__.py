"""API routes."""

from databreaker.api.routes import brokers, scans, requests, registry, reports

__all__ = ["brokers", "scans", "requests", "registry", "reports"]
