"""Workflow event log."""

from typing import Optional

import structlog

from cadence.workflows.models import EventLogEntry, WorkflowRun

log = structlog.get_logger()


class EventLog:
    """Append-only audit trail of node executions."""

    def __init__(self, store):
        self.store = store

    def append(
        self,
        run: WorkflowRun,
        node_id: str,
        node_type: str,
        action: str,
        status: str = "success",
        details: Optional[dict] = None,
    ) -> EventLogEntry:
        entry = EventLogEntry(
            workflow_run_id=run.id,
            workflow_id=run.workflow_id,
            lead_id=run.lead_id,
            owner_id=run.owner_id,
            org_id=run.org_id,
            node_id=node_id,
            node_type=node_type,
            action=action,
            status=status,
            details=details or {},
        )
        self.store.append_event(entry)
        log.debug("workflow_event_logged", run_id=run.id, node_id=node_id, action=action, status=status)
        return entry
