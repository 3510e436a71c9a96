"""Workflow engine exceptions."""


class WorkflowError(Exception):
    """Base class for workflow engine errors."""


class StaleRunError(WorkflowError):
    """The run changed in the store after it was read."""

    def __init__(self, run_id: str):
        super().__init__(f"Run {run_id} was modified concurrently")
        self.run_id = run_id


class NodeConfigError(WorkflowError):
    """A node's data payload failed validation."""

    def __init__(self, node_id: str, node_type: str, detail: str):
        super().__init__(f"Invalid configuration for node {node_id} ({node_type}): {detail}")
        self.node_id = node_id
        self.node_type = node_type


class InvalidGraphError(WorkflowError):
    """A stored workflow graph could not be parsed."""

    def __init__(self, workflow_id: str, detail: str):
        super().__init__(f"Workflow {workflow_id} has an invalid graph: {detail}")
        self.workflow_id = workflow_id
