"""Condition node evaluation.

Every condition resolves to `yes`, `no` or `wait`. Facts recorded in the run's
context by event ingestion always take precedence over live polling, and all
timeouts are measured from the run's last state transition.
"""

from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

import structlog

from cadence.workflows.errors import WorkflowError
from cadence.workflows.models import WorkflowRun
from cadence.workflows.nodes import (
    ConnectionAcceptedConfig,
    LeadAttributeConfig,
    MessageReceivedConfig,
    NodeConfig,
    TimeElapsedConfig,
)
from cadence.workflows.timing import elapsed_since_transition, to_timedelta

log = structlog.get_logger()

YES = "yes"
NO = "no"
WAIT = "wait"

# Event a run waits for while each condition is unresolved
CONDITION_EVENTS = {
    "condition_connection_accepted": "connection_accepted",
    "condition_message_received": "message_received",
}

# Live status check: True when connected, False/None when not (or unknown)
ConnectionPoller = Callable[[WorkflowRun, dict], Awaitable[Optional[bool]]]

OPERATORS: dict[str, Callable[[str, str], bool]] = {
    "equals": lambda actual, expected: actual == expected,
    "contains": lambda actual, expected: expected in actual,
    "starts_with": lambda actual, expected: actual.startswith(expected),
    "ends_with": lambda actual, expected: actual.endswith(expected),
    "is_empty": lambda actual, expected: actual == "",
    "is_not_empty": lambda actual, expected: actual != "",
}


def _timeout_or_wait(run: WorkflowRun, now: datetime, timeout_days: float) -> str:
    if elapsed_since_transition(run, now) >= timedelta(days=timeout_days):
        return NO
    return WAIT


async def connection_accepted(
    config: ConnectionAcceptedConfig,
    run: WorkflowRun,
    lead: dict,
    now: datetime,
    poller: Optional[ConnectionPoller],
    default_timeout_days: float,
) -> str:
    if run.context.get("connection_accepted"):
        return YES

    if poller is not None:
        try:
            if await poller(run, lead):
                return YES
        except Exception as e:
            log.warning("connection_poll_failed", run_id=run.id, lead_id=run.lead_id, error=str(e))

    return _timeout_or_wait(run, now, config.timeout_days or default_timeout_days)


def message_received(
    config: MessageReceivedConfig,
    run: WorkflowRun,
    now: datetime,
    default_timeout_days: float,
) -> str:
    if run.context.get("message_received"):
        keyword = config.keyword_filter.lower()
        if not keyword:
            return YES
        body = str(run.context.get("message_body") or "").lower()
        return YES if keyword in body else NO

    return _timeout_or_wait(run, now, config.timeout_days or default_timeout_days)


def lead_attribute(config: LeadAttributeConfig, lead: dict) -> str:
    compare = OPERATORS[config.operator]
    raw = lead.get(config.field)
    actual = "" if raw is None else str(raw).lower()
    return YES if compare(actual, config.value.lower()) else NO


def time_elapsed(config: TimeElapsedConfig, run: WorkflowRun, now: datetime) -> str:
    """Never resolves to `no`: the run simply waits until enough time has passed."""
    if elapsed_since_transition(run, now) >= to_timedelta(config.duration, config.unit):
        return YES
    return WAIT


async def evaluate_condition(
    node_type: str,
    config: NodeConfig,
    run: WorkflowRun,
    lead: dict,
    now: datetime,
    poller: Optional[ConnectionPoller] = None,
    default_timeout_days: float = 7,
) -> str:
    if node_type == "condition_connection_accepted":
        return await connection_accepted(config, run, lead, now, poller, default_timeout_days)
    if node_type == "condition_message_received":
        return message_received(config, run, now, default_timeout_days)
    if node_type == "condition_lead_attribute":
        return lead_attribute(config, lead)
    if node_type == "condition_time_elapsed":
        return time_elapsed(config, run, now)
    raise WorkflowError(f"Unsupported condition type: {node_type}")
