"""Run and event log records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

RUNNING = "running"
WAITING = "waiting"
COMPLETED = "completed"
FAILED = "failed"
PAUSED = "paused"

RUN_STATUSES = (RUNNING, WAITING, COMPLETED, FAILED, PAUSED)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp as returned by PostgREST."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class WorkflowRun:
    """One lead's traversal of one workflow."""
    id: str
    workflow_id: str
    lead_id: str
    owner_id: Optional[str] = None
    org_id: Optional[str] = None
    current_node_id: Optional[str] = None
    status: str = RUNNING
    waiting_until: Optional[datetime] = None
    waiting_for_event: Optional[str] = None
    context: dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 0
    lease_until: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "WorkflowRun":
        return cls(
            id=row["id"],
            workflow_id=row["workflow_id"],
            lead_id=row["lead_id"],
            owner_id=row.get("owner_id"),
            org_id=row.get("org_id"),
            current_node_id=row.get("current_node_id"),
            status=row.get("status") or RUNNING,
            waiting_until=parse_timestamp(row.get("waiting_until")),
            waiting_for_event=row.get("waiting_for_event"),
            context=dict(row.get("context_json") or {}),
            started_at=parse_timestamp(row.get("started_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
            version=row.get("version") or 0,
            lease_until=parse_timestamp(row.get("lease_until")),
        )


def is_due(run: WorkflowRun, now: datetime) -> bool:
    """Whether a tick should pick the run up.

    Runs waiting on an event are always due: ingestion may have recorded the
    fact in `context` without touching `status`. A run leased by another
    invocation is never due until the lease runs out.
    """
    if run.lease_until is not None and run.lease_until > now:
        return False
    if run.status == RUNNING:
        return True
    if run.status != WAITING:
        return False
    if run.waiting_until is not None and run.waiting_until <= now:
        return True
    return run.waiting_for_event is not None


@dataclass
class EventLogEntry:
    """Append-only record of one node execution attempt."""
    workflow_run_id: str
    workflow_id: str
    lead_id: str
    node_id: str
    node_type: str
    action: str
    status: str = "success"
    details: dict[str, Any] = field(default_factory=dict)
    owner_id: Optional[str] = None
    org_id: Optional[str] = None

    def to_row(self) -> dict:
        return {
            "workflow_run_id": self.workflow_run_id,
            "workflow_id": self.workflow_id,
            "lead_id": self.lead_id,
            "owner_id": self.owner_id,
            "org_id": self.org_id,
            "node_id": self.node_id,
            "node_type": self.node_type,
            "action": self.action,
            "status": self.status,
            "details": self.details,
        }
