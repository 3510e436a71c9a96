"""Workflow engine: graph model, run store, executors, dispatcher, driver."""

from cadence.workflows.context import EngineContext
from cadence.workflows.dispatcher import (
    ActionDispatcher,
    ActionResult,
    AuthContext,
    build_default_dispatcher,
)
from cadence.workflows.driver import AdvancementDriver, TickSummary, process_due_runs
from cadence.workflows.errors import NodeConfigError, StaleRunError, WorkflowError
from cadence.workflows.graph import Edge, Node, Workflow, WorkflowGraph, next_node_id
from cadence.workflows.models import EventLogEntry, WorkflowRun, is_due
from cadence.workflows.store import RunStore
