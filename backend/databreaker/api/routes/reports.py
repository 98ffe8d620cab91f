"""Report routes."""

from typing import Literal

from fastapi import APIRouter, Response

from databreaker.api.deps import StorageDep
from databreaker.services.report import RENDERERS, build_report

router = APIRouter()

MEDIA_TYPES = {
    "json": "application/json",
    "html": "text/html",
    "text": "text/plain",
}


@router.get("/")
async def get_report(storage: StorageDep, format: Literal["json", "html", "text"] = "json"):
    """Snapshot of brokers, found records and deletion requests."""
    report = await build_report(storage)
    return Response(content=RENDERERS[format](report), media_type=MEDIA_TYPES[format])
