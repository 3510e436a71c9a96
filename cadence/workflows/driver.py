"""Advancement driver: processes due workflow runs one tick at a time.

The driver keeps no timers and no in-memory state between invocations.
Delays and timeouts are stored on the run (`waiting_until`, `updated_at`) and
re-evaluated from scratch by whichever invocation picks the run up next.
A run is leased (`lease_until`) while one of its actions dispatches, so an
overlapping invocation leaves it alone.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

import structlog

from cadence.workflows.context import EngineContext
from cadence.workflows.errors import InvalidGraphError, StaleRunError
from cadence.workflows.executors import ADVANCE, FAIL, NodeOutcome, execute_node
from cadence.workflows.graph import DELAY_NODE_TYPE, Node, Workflow, next_node_id, node_category
from cadence.workflows.models import (
    COMPLETED,
    FAILED,
    RUNNING,
    WAITING,
    WorkflowRun,
    format_timestamp,
    is_due,
)

log = structlog.get_logger()

CLEAR_WAIT = {"waiting_until": None, "waiting_for_event": None}


@dataclass
class StepResult:
    run_id: str
    success: bool
    action: str
    node_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class TickSummary:
    processed: int = 0
    results: list[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success and r.action != "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.action == "skipped")

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "actions": len(self.results),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [asdict(r) for r in self.results],
        }


class AdvancementDriver:
    """Advances each due run until it blocks, terminates or hits the step ceiling."""

    def __init__(self, ctx: EngineContext):
        self.ctx = ctx
        self.store = ctx.store

    async def process_due_runs(self) -> TickSummary:
        """Process one bounded batch of due runs.

        Only a failure to load the batch propagates; anything that goes wrong
        inside a single run is logged and recorded in the summary.
        """
        runs = self.store.get_due_runs(self.ctx.clock(), self.ctx.config.batch_size)
        summary = TickSummary(processed=len(runs))

        if not runs:
            log.info("no_workflow_runs_due")
            return summary

        log.info("processing_workflow_runs", count=len(runs))

        for i, run in enumerate(runs):
            try:
                summary.results.extend(await self.process_run(run.id))
            except Exception as e:
                log.error("workflow_run_error", run_id=run.id, error=str(e))
                summary.results.append(
                    StepResult(run.id, False, "error", run.current_node_id, str(e))
                )

            if i < len(runs) - 1 and self.ctx.config.run_delay_seconds > 0:
                await self.ctx.sleep(self.ctx.config.run_delay_seconds)

        log.info(
            "workflow_runs_processed",
            processed=summary.processed,
            succeeded=summary.succeeded,
            failed=summary.failed,
        )
        return summary

    async def process_run(self, run_id: str) -> list[StepResult]:
        results: list[StepResult] = []

        # Re-read so a run cancelled or advanced by someone else is not acted on
        run = self.store.get_run(run_id)
        now = self.ctx.clock()
        if run is None or not is_due(run, now):
            log.info("workflow_run_not_due", run_id=run_id)
            return results

        try:
            if run.status == WAITING and run.waiting_until is not None and run.waiting_until <= now:
                run, result = self._resume_after_wait(run, now)
                if result is not None:
                    results.append(result)
                if run is None:
                    return results

            for _ in range(self.ctx.config.max_steps_per_run):
                result = await self._step(run)
                results.append(result)
                if result.action != "advanced":
                    break
                run = self.store.get_run(run_id)
                if run is None or run.status != RUNNING:
                    break

        except StaleRunError:
            log.info("workflow_run_changed_concurrently", run_id=run_id)
            results.append(StepResult(run_id, True, "skipped", error="Run changed concurrently"))

        return results

    def _load(self, run: WorkflowRun, now: datetime) -> tuple[Optional[Workflow], Optional[StepResult]]:
        """Fetch the run's workflow, or the result to report when it cannot advance.

        An inactive or missing workflow is a soft skip. A graph that cannot be
        parsed fails the run so the problem is visible to the workflow owner.
        """
        try:
            workflow = self.store.get_workflow(run.workflow_id)
        except InvalidGraphError as e:
            self._fail(run, run.current_node_id or "", "unknown", str(e), now, log_event=True)
            return None, StepResult(run.id, False, "failed", run.current_node_id, str(e))

        if workflow is None or not workflow.is_active:
            log.info("workflow_run_skipped", run_id=run.id, workflow_id=run.workflow_id, reason="workflow not active")
            return None, StepResult(run.id, True, "skipped", run.current_node_id, "Workflow not active")
        return workflow, None

    def _resume_after_wait(
        self, run: WorkflowRun, now: datetime
    ) -> tuple[Optional[WorkflowRun], Optional[StepResult]]:
        """Move a run whose delay has elapsed past its delay node.

        Other timed waits (elapsed-time conditions) are left for the node's
        executor to re-evaluate.
        """
        workflow, result = self._load(run, now)
        if workflow is None:
            return None, result

        node = workflow.graph.get_node(run.current_node_id)
        if node is None or node.type != DELAY_NODE_TYPE:
            return run, None

        next_id = next_node_id(workflow.graph, node.id)
        if next_id is None:
            return None, self._complete(run, node, now)

        log.info("workflow_delay_elapsed", run_id=run.id, node_id=node.id, next_node_id=next_id)
        run = self.store.transition(
            run, {"current_node_id": next_id, "status": RUNNING, **CLEAR_WAIT}, now
        )
        return run, None

    async def _step(self, run: WorkflowRun) -> StepResult:
        now = self.ctx.clock()

        workflow, result = self._load(run, now)
        if workflow is None:
            return result

        lead = self.store.get_lead(run.lead_id)
        if lead is None:
            log.info("workflow_run_skipped", run_id=run.id, lead_id=run.lead_id, reason="lead not found")
            return StepResult(run.id, True, "skipped", run.current_node_id, "Lead not found")

        node = workflow.graph.get_node(run.current_node_id)
        if node is None:
            error = f"Current node {run.current_node_id} not found in workflow graph"
            self._fail(run, run.current_node_id or "", "unknown", error, now, log_event=True)
            return StepResult(run.id, False, "failed", run.current_node_id, error)

        if node_category(node.type) == "action":
            # Lease the run so an overlapping tick cannot dispatch it twice
            run = self.store.claim(run, now, self.ctx.config.lease_seconds)

        outcome = await execute_node(self.ctx, run, node, lead, now)
        return self._apply(run, workflow, node, outcome, now)

    def _apply(
        self,
        run: WorkflowRun,
        workflow: Workflow,
        node: Node,
        outcome: NodeOutcome,
        now: datetime,
    ) -> StepResult:
        if outcome.kind == FAIL:
            self._fail(run, node.id, node.type, outcome.error, now, log_event=outcome.event is not None)
            return StepResult(run.id, False, outcome.action or "failed", node.id, outcome.error)

        if outcome.kind == ADVANCE:
            next_id = next_node_id(workflow.graph, node.id, outcome.branch)
            if next_id is None:
                self._log_outcome(run, node, outcome)
                return self._complete(run, node, now)

            self.store.transition(
                run, {"current_node_id": next_id, "status": RUNNING, **CLEAR_WAIT}, now
            )
            self._log_outcome(run, node, outcome)
            log.info("workflow_run_advanced", run_id=run.id, node_id=node.id, next_node_id=next_id)
            return StepResult(run.id, True, "advanced", node.id)

        # Suspend: only write when the wait actually changes
        changes = {
            "status": WAITING,
            "waiting_until": format_timestamp(outcome.waiting_until),
            "waiting_for_event": outcome.waiting_for_event,
        }
        if (
            run.status != WAITING
            or run.waiting_until != outcome.waiting_until
            or run.waiting_for_event != outcome.waiting_for_event
        ):
            self.store.suspend(run, changes)
        self._log_outcome(run, node, outcome)
        log.info("workflow_run_waiting", run_id=run.id, node_id=node.id, waiting_for_event=outcome.waiting_for_event)
        return StepResult(run.id, True, outcome.action or "waiting", node.id)

    def _log_outcome(self, run: WorkflowRun, node: Node, outcome: NodeOutcome) -> None:
        if outcome.event is not None:
            self.ctx.event_log.append(
                run, node.id, node.type, outcome.event.action, outcome.event.status, outcome.event.details
            )

    def _complete(self, run: WorkflowRun, node: Node, now: datetime) -> StepResult:
        self.store.transition(
            run, {"current_node_id": None, "status": COMPLETED, **CLEAR_WAIT}, now
        )
        self.ctx.event_log.append(run, node.id, node.type, "workflow_completed")
        log.info("workflow_run_completed", run_id=run.id, workflow_id=run.workflow_id)
        return StepResult(run.id, True, "completed", node.id)

    def _fail(
        self,
        run: WorkflowRun,
        node_id: str,
        node_type: str,
        error: Optional[str],
        now: datetime,
        log_event: bool,
    ) -> None:
        self.store.transition(
            run, {"status": FAILED, **CLEAR_WAIT}, now, context={"last_error": error}
        )
        if log_event:
            self.ctx.event_log.append(run, node_id, node_type, "run_failed", "failed", {"error": error})
        log.error("workflow_run_failed", run_id=run.id, node_id=node_id, error=error)


async def process_due_runs(ctx: EngineContext) -> TickSummary:
    """Entry point for one tick."""
    return await AdvancementDriver(ctx).process_due_runs()
