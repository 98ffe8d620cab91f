"""Reports - a snapshot of brokers, found records and deletion requests."""

from datetime import datetime
from html import escape
from typing import Optional

from pydantic import BaseModel, ConfigDict

from connectors import DeletionStatus
from databreaker.db.database import utcnow
from databreaker.db.storage import Storage


class ReportBroker(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    website: Optional[str] = None
    category: Optional[str] = None
    country: Optional[str] = None
    data_countries: Optional[str] = None


class ReportRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    broker_id: str
    kind: str
    value: str
    profile_url: Optional[str] = None
    found_at: datetime


class ReportRequest(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    broker_id: str
    personal_record_id: Optional[str] = None
    status: str
    submitted_at: Optional[datetime] = None
    completed_at: Optional[str] = None
    external_ref: Optional[str] = None
    error_message: Optional[str] = None


class ReportSummary(BaseModel):
    total_brokers: int = 0
    total_records: int = 0
    total_deletions: int = 0
    deletions_pending: int = 0
    deletions_submitted: int = 0
    deletions_in_progress: int = 0
    deletions_completed: int = 0
    deletions_failed: int = 0  # failed + rejected


class Report(BaseModel):
    generated_at: datetime
    brokers: list[ReportBroker]
    records: list[ReportRecord]
    deletion_requests: list[ReportRequest]
    summary: ReportSummary


async def build_report(storage: Storage) -> Report:
    brokers = await storage.list_brokers()
    records = await storage.list_personal_records()
    requests = await storage.list_deletion_requests()

    def count(*statuses: DeletionStatus) -> int:
        wanted = {s.value for s in statuses}
        return sum(1 for r in requests if r.status in wanted)

    summary = ReportSummary(
        total_brokers=len(brokers),
        total_records=len(records),
        total_deletions=len(requests),
        deletions_pending=count(DeletionStatus.PENDING),
        deletions_submitted=count(DeletionStatus.SUBMITTED),
        deletions_in_progress=count(DeletionStatus.IN_PROGRESS),
        deletions_completed=count(DeletionStatus.COMPLETED),
        deletions_failed=count(DeletionStatus.FAILED, DeletionStatus.REJECTED),
    )

    return Report(
        generated_at=utcnow(),
        brokers=[ReportBroker.model_validate(b) for b in brokers],
        records=[ReportRecord.model_validate(r) for r in records],
        deletion_requests=[ReportRequest.model_validate(r) for r in requests],
        summary=summary,
    )


def render_json(report: Report) -> str:
    return report.model_dump_json(indent=2)


def render_text(report: Report) -> str:
    s = report.summary
    lines = [
        f"=== Data Breaker Report ({report.generated_at.isoformat()}) ===",
        "",
        "--- Summary ---",
        f"Brokers tracked:      {s.total_brokers}",
        f"Records found:        {s.total_records}",
        f"Deletion requests:    {s.total_deletions}",
        f"  Pending:            {s.deletions_pending}",
        f"  Submitted:          {s.deletions_submitted}",
        f"  In progress:        {s.deletions_in_progress}",
        f"  Completed:          {s.deletions_completed}",
        f"  Failed/Rejected:    {s.deletions_failed}",
    ]

    if report.records:
        lines += ["", "--- Personal Records Found ---"]
        lines.append(f"{'Broker':<20} {'Type':<10} {'Value':<40} Found At")
        for r in report.records:
            lines.append(f"{r.broker_id:<20} {r.kind:<10} {r.value:<40} {r.found_at.isoformat()}")

    if report.deletion_requests:
        lines += ["", "--- Deletion Requests ---"]
        lines.append(f"{'ID':<10} {'Broker':<20} {'Status':<12} {'Submitted':<20} External Ref")
        for req in report.deletion_requests:
            submitted = req.submitted_at.isoformat(timespec="seconds") if req.submitted_at else "-"
            lines.append(
                f"{req.id[:8]:<10} {req.broker_id:<20} {req.status:<12} {submitted:<20} {req.external_ref or '-'}"
            )

    return "\n".join(lines) + "\n"


HTML_STYLE = """\
  body { font-family: system-ui, sans-serif; max-width: 960px; margin: 2rem auto; padding: 0 1rem; color: #1a1a1a; }
  h1 { border-bottom: 2px solid #333; padding-bottom: 0.5rem; }
  table { border-collapse: collapse; width: 100%; margin: 1rem 0; }
  th, td { border: 1px solid #ddd; padding: 0.5rem; text-align: left; }
  th { background: #f5f5f5; font-weight: 600; }
  .summary { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 1rem; }
  .stat { background: #f5f5f5; padding: 1rem; border-radius: 4px; }
  .stat .value { font-size: 1.5rem; font-weight: 700; }
  .stat .label { color: #666; font-size: 0.875rem; }
"""


def _html_table(headers: list[str], rows: list[list[str]]) -> str:
    head = "".join(f"<th>{escape(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in row) + "</tr>\n"
        for row in rows
    )
    return f"<table>\n<thead><tr>{head}</tr></thead>\n<tbody>\n{body}</tbody></table>\n"


def render_html(report: Report) -> str:
    """Standalone HTML page. Every stored value is escaped."""
    s = report.summary
    stats = [
        ("Brokers Tracked", s.total_brokers),
        ("Records Found", s.total_records),
        ("Deletions Submitted", s.deletions_submitted),
        ("Deletions In Progress", s.deletions_in_progress),
        ("Deletions Completed", s.deletions_completed),
        ("Deletions Failed", s.deletions_failed),
    ]

    parts = [
        "<!DOCTYPE html>\n<html lang=\"en\">\n<head>\n<meta charset=\"UTF-8\">\n",
        "<title>Data Breaker Report</title>\n",
        f"<style>\n{HTML_STYLE}</style>\n</head>\n<body>\n",
        f"<h1>Data Breaker Report</h1>\n<p>Generated: {escape(report.generated_at.isoformat())}</p>\n",
        "<div class=\"summary\">\n",
    ]
    for label, value in stats:
        parts.append(
            f"<div class=\"stat\"><div class=\"value\">{value}</div>"
            f"<div class=\"label\">{escape(label)}</div></div>\n"
        )
    parts.append("</div>\n")

    if report.records:
        parts.append("<h2>Personal Records Found</h2>\n")
        parts.append(_html_table(
            ["Broker", "Type", "Value", "Found At"],
            [[r.broker_id, r.kind, r.value, r.found_at.isoformat()] for r in report.records],
        ))

    if report.deletion_requests:
        parts.append("<h2>Deletion Requests</h2>\n")
        parts.append(_html_table(
            ["ID", "Broker", "Status", "Submitted", "External Ref"],
            [
                [
                    req.id[:8],
                    req.broker_id,
                    req.status,
                    req.submitted_at.isoformat(timespec="seconds") if req.submitted_at else "-",
                    req.external_ref or "-",
                ]
                for req in report.deletion_requests
            ],
        ))

    parts.append("</body>\n</html>\n")
    return "".join(parts)


RENDERERS = {
    "json": render_json,
    "html": render_html,
    "text": render_text,
}
