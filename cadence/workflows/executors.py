"""Node executors: one per node category.

Executors decide what should happen to a run and return a `NodeOutcome`;
the driver persists it. Only action executors write to the event log
themselves, because their side effect has already happened by the time the
outcome is known.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import structlog

from cadence.workflows.conditions import CONDITION_EVENTS, WAIT, evaluate_condition
from cadence.workflows.context import EngineContext
from cadence.workflows.dispatcher import AuthContext
from cadence.workflows.errors import WorkflowError
from cadence.workflows.graph import Node, node_category
from cadence.workflows.models import WorkflowRun
from cadence.workflows.nodes import NodeConfig, parse_config
from cadence.workflows.timing import to_timedelta, transition_time

log = structlog.get_logger()

ADVANCE = "advance"
SUSPEND = "suspend"
FAIL = "fail"


@dataclass
class NodeEvent:
    action: str
    status: str = "success"
    details: dict = field(default_factory=dict)


@dataclass
class NodeOutcome:
    kind: str
    action: Optional[str] = None
    branch: Optional[str] = None
    waiting_until: Optional[datetime] = None
    waiting_for_event: Optional[str] = None
    error: Optional[str] = None
    event: Optional[NodeEvent] = None


def fail(error: str, action: str = "failed") -> NodeOutcome:
    return NodeOutcome(
        kind=FAIL,
        action=action,
        error=error,
        event=NodeEvent("run_failed", "failed", {"error": error}),
    )


async def execute_trigger(ctx, run, node, config, lead, now) -> NodeOutcome:
    return NodeOutcome(kind=ADVANCE)


async def execute_action(
    ctx: EngineContext,
    run: WorkflowRun,
    node: Node,
    config: NodeConfig,
    lead: dict,
    now: datetime,
) -> NodeOutcome:
    auth = AuthContext(token=ctx.auth_token, owner_id=run.owner_id, org_id=run.org_id)
    result = await ctx.dispatcher.dispatch(node.type, config, run.lead_id, auth)

    details = {"error": result.error} if result.error else {}
    ctx.event_log.append(
        run,
        node.id,
        node.type,
        "execute",
        "success" if result.success else "failed",
        details,
    )

    if not result.success:
        log.warning("workflow_action_failed", run_id=run.id, node_id=node.id, error=result.error)
        return NodeOutcome(kind=FAIL, action="action_failed", error=result.error)

    log.info("workflow_action_executed", run_id=run.id, node_id=node.id, node_type=node.type)
    return NodeOutcome(kind=ADVANCE)


async def execute_condition(
    ctx: EngineContext,
    run: WorkflowRun,
    node: Node,
    config: NodeConfig,
    lead: dict,
    now: datetime,
) -> NodeOutcome:
    result = await evaluate_condition(
        node.type,
        config,
        run,
        lead,
        now,
        poller=ctx.poller,
        default_timeout_days=ctx.config.default_timeout_days,
    )

    if result == WAIT:
        waiting_until = None
        if node.type == "condition_time_elapsed":
            # Due again exactly when the duration has passed
            waiting_until = transition_time(run, now) + to_timedelta(config.duration, config.unit)
        return NodeOutcome(
            kind=SUSPEND,
            action="waiting",
            waiting_until=waiting_until,
            waiting_for_event=CONDITION_EVENTS.get(node.type),
        )

    return NodeOutcome(
        kind=ADVANCE,
        branch=result,
        event=NodeEvent(f"condition_{result}", "success", {"result": result}),
    )


async def execute_delay(
    ctx: EngineContext,
    run: WorkflowRun,
    node: Node,
    config: NodeConfig,
    lead: dict,
    now: datetime,
) -> NodeOutcome:
    waiting_until = now + to_timedelta(config.duration, config.unit)
    return NodeOutcome(
        kind=SUSPEND,
        action="delay_started",
        waiting_until=waiting_until,
        event=NodeEvent(
            "delay_start",
            details={
                "wait_until": waiting_until.isoformat(),
                "duration": config.duration,
                "unit": config.unit,
            },
        ),
    )


EXECUTORS = {
    "trigger": execute_trigger,
    "action": execute_action,
    "condition": execute_condition,
    "delay": execute_delay,
}


async def execute_node(
    ctx: EngineContext,
    run: WorkflowRun,
    node: Node,
    lead: dict,
    now: datetime,
) -> NodeOutcome:
    """Run the executor matching the node's type prefix."""
    category = node_category(node.type)
    if category is None:
        return fail(f"Unrecognized node type: {node.type}")

    try:
        config = parse_config(node)
        return await EXECUTORS[category](ctx, run, node, config, lead, now)
    except WorkflowError as e:
        return fail(str(e))
