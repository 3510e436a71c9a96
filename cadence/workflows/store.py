"""Run state store: loads and persists workflow runs."""

from datetime import datetime, timedelta
from typing import Optional

import structlog
from pydantic import ValidationError

from cadence.workflows.errors import InvalidGraphError, StaleRunError, WorkflowError
from cadence.workflows.graph import Workflow
from cadence.workflows.models import (
    RUN_STATUSES,
    RUNNING,
    WAITING,
    EventLogEntry,
    WorkflowRun,
    format_timestamp,
    is_due,
)

log = structlog.get_logger()

INGEST_ATTEMPTS = 3


class RunStore:
    """Engine-facing view of the workflow tables.

    Every state write is a compare-and-swap on the `version` and `status` the
    caller read, and bumps `version`, so two overlapping writers cannot both act
    on the same snapshot of a run. `updated_at` only records the last node
    transition. `context` is always merged into the latest stored map, never
    replaced.
    """

    def __init__(self, client):
        self.client = client

    def get_due_runs(self, now: datetime, limit: int) -> list[WorkflowRun]:
        rows = self.client.get_due_runs(format_timestamp(now), limit)
        runs = [WorkflowRun.from_row(row) for row in rows]
        return [run for run in runs if is_due(run, now)]

    def get_run(self, run_id: str) -> Optional[WorkflowRun]:
        row = self.client.get_run(run_id)
        return WorkflowRun.from_row(row) if row else None

    def get_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Load a workflow definition.

        Raises InvalidGraphError when the stored graph does not parse.
        """
        row = self.client.get_workflow(workflow_id)
        if not row:
            return None
        try:
            return Workflow.model_validate(row)
        except ValidationError as e:
            log.warning("workflow_graph_invalid", workflow_id=workflow_id, error=str(e))
            detail = "; ".join(err["msg"] for err in e.errors())
            raise InvalidGraphError(workflow_id, detail) from e

    def get_lead(self, lead_id: str) -> Optional[dict]:
        return self.client.get_lead(lead_id)

    def get_linkedin_account_id(self, owner_id: str) -> Optional[str]:
        return self.client.get_linkedin_account_id(owner_id)

    def claim(self, run: WorkflowRun, now: datetime, lease_seconds: float) -> WorkflowRun:
        """Lease the run so no other invocation acts on it until it is written again."""
        lease_until = now + timedelta(seconds=lease_seconds)
        return self._write(run, {"lease_until": format_timestamp(lease_until)}, None)

    def transition(
        self,
        run: WorkflowRun,
        changes: dict,
        now: datetime,
        context: Optional[dict] = None,
    ) -> WorkflowRun:
        """Persist a state transition, stamping a new `updated_at`."""
        data = {**changes, "updated_at": format_timestamp(now)}
        return self._write(run, data, context)

    def suspend(
        self,
        run: WorkflowRun,
        changes: dict,
        context: Optional[dict] = None,
    ) -> WorkflowRun:
        """Persist a wait without moving the transition time."""
        return self._write(run, dict(changes), context)

    def _write(self, run: WorkflowRun, data: dict, context: Optional[dict]) -> WorkflowRun:
        if context:
            latest = self.client.get_run(run.id)
            if latest is None:
                raise StaleRunError(run.id)
            data["context_json"] = {**(latest.get("context_json") or {}), **context}

        # Any write other than a claim releases the lease
        data.setdefault("lease_until", None)
        data["version"] = run.version + 1

        row = self.client.update_run(run.id, data, run.version, run.status)
        if row is None:
            raise StaleRunError(run.id)
        return WorkflowRun.from_row(row)

    def append_event(self, entry: EventLogEntry) -> None:
        self.client.insert_event(entry.to_row())

    def enroll(
        self,
        workflow: Workflow,
        lead_ids: list[str],
        now: datetime,
        owner_id: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> list[WorkflowRun]:
        """Start a run at the workflow's trigger node for each lead."""
        trigger = workflow.graph.trigger_node()
        if trigger is None:
            raise WorkflowError(f"Workflow {workflow.id} has no trigger node")

        stamp = format_timestamp(now)
        rows = [
            {
                "workflow_id": workflow.id,
                "lead_id": lead_id,
                "owner_id": owner_id or workflow.owner_id,
                "org_id": org_id,
                "current_node_id": trigger.id,
                "status": RUNNING,
                "waiting_until": None,
                "waiting_for_event": None,
                "lease_until": None,
                "context_json": {},
                "started_at": stamp,
                "updated_at": stamp,
            }
            for lead_id in lead_ids
        ]
        created = self.client.upsert_runs(rows)
        log.info("leads_enrolled", workflow_id=workflow.id, count=len(created))
        return [WorkflowRun.from_row(row) for row in created]

    def record_event(
        self,
        lead_id: str,
        event: str,
        facts: Optional[dict] = None,
        resume: bool = True,
    ) -> list[WorkflowRun]:
        """Record an external event on every run of the lead waiting for it.

        The facts land in `context`; with `resume` the run is flipped back to
        running so the next tick re-evaluates its condition straight away.
        """
        facts = {event: True, **(facts or {})}
        updated = []

        for row in self.client.get_waiting_runs_for_lead(lead_id, event):
            run = WorkflowRun.from_row(row)
            for attempt in range(INGEST_ATTEMPTS):
                changes = {"status": RUNNING} if resume else {}
                try:
                    updated.append(self.suspend(run, changes, context=facts))
                    break
                except StaleRunError:
                    run = self.get_run(run.id)
                    if run is None or run.status != WAITING or run.waiting_for_event != event:
                        break
            else:
                log.warning("event_ingest_conflict", run_id=run.id, event_name=event)

        log.info("event_recorded", lead_id=lead_id, event_name=event, runs=len(updated))
        return updated

    def count_by_status(self) -> dict[str, int]:
        return self.client.count_runs_by_status(RUN_STATUSES)
