"""Workflow graph model: nodes, edges and edge lookup."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

NodeCategory = Literal["trigger", "action", "condition", "delay"]

DELAY_NODE_TYPE = "delay_wait"


def node_category(node_type: str) -> Optional[NodeCategory]:
    """Map a node type onto its executor category by prefix."""
    if node_type.startswith("trigger_"):
        return "trigger"
    if node_type.startswith("action_"):
        return "action"
    if node_type.startswith("condition_"):
        return "condition"
    if node_type == DELAY_NODE_TYPE:
        return "delay"
    return None


class Node(BaseModel):
    """A unit of work or decision. `data` is validated by the executor that consumes it."""

    model_config = ConfigDict(extra="ignore")

    id: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)


class Edge(BaseModel):
    """Directed connection; `branch` is stored as the editor's `sourceHandle`."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    source: str
    target: str
    branch: Optional[str] = Field(default=None, alias="sourceHandle")


class WorkflowGraph(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "WorkflowGraph":
        # Edges to missing nodes are allowed; a run that reaches one fails there
        ids = [node.id for node in self.nodes]
        if len(ids) != len(set(ids)):
            raise ValueError("Duplicate node ids in workflow graph")
        return self

    def get_node(self, node_id: Optional[str]) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def trigger_node(self) -> Optional[Node]:
        for node in self.nodes:
            if node_category(node.type) == "trigger":
                return node
        return None


def next_node_id(
    graph: WorkflowGraph,
    node_id: str,
    branch: Optional[str] = None,
) -> Optional[str]:
    """Find the node that follows `node_id`.

    With a branch, the first edge labeled with that branch wins; when no edge
    carries the label, the first unlabeled edge is followed. Without a branch,
    the first outgoing edge is followed. Returns None when the node is terminal.
    The returned id is not checked against the graph's nodes.
    """
    outgoing = [edge for edge in graph.edges if edge.source == node_id]

    if branch is None:
        return outgoing[0].target if outgoing else None

    for edge in outgoing:
        if edge.branch == branch:
            return edge.target
    for edge in outgoing:
        if not edge.branch:
            return edge.target
    return None


class Workflow(BaseModel):
    """Workflow definition row."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    owner_id: Optional[str] = None
    name: str = "Untitled Workflow"
    status: str = "draft"
    graph: WorkflowGraph = Field(default_factory=WorkflowGraph, alias="graph_json")

    @property
    def is_active(self) -> bool:
        return self.status == "active"
