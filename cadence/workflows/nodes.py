"""Per-type node configuration, validated when a node is executed."""

from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cadence.workflows.errors import NodeConfigError
from cadence.workflows.graph import Node

TimeUnit = Literal["minutes", "hours", "days"]
TIME_UNITS = get_args(TimeUnit)
Operator = Literal["equals", "contains", "starts_with", "ends_with", "is_empty", "is_not_empty"]
ReactionType = Literal["LIKE", "CELEBRATE", "LOVE", "INSIGHTFUL", "CURIOUS"]


class NodeConfig(BaseModel):
    """Fields shared by every node type. Unknown keys are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    label: Optional[str] = None


class MessageActionConfig(NodeConfig):
    message_template: str = Field(default="", alias="messageTemplate")


class ConnectActionConfig(NodeConfig):
    note_text: Optional[str] = Field(default=None, alias="noteText")


class LikeActionConfig(NodeConfig):
    reaction_type: ReactionType = Field(default="LIKE", alias="reactionType")

    @field_validator("reaction_type", mode="before")
    @classmethod
    def _default_reaction(cls, value):
        return value or "LIKE"


class CommentActionConfig(NodeConfig):
    comment_text: str = Field(default="", alias="commentText")


class TaskActionConfig(NodeConfig):
    task_description: str = Field(default="", alias="taskDescription")


class TimeoutConfig(NodeConfig):
    # Unset or zero falls back to the engine's default timeout
    timeout_days: Optional[float] = Field(default=None, alias="timeoutDays", ge=0)


class ConnectionAcceptedConfig(TimeoutConfig):
    pass


class MessageReceivedConfig(TimeoutConfig):
    keyword_filter: str = Field(default="", alias="keywordFilter")

    @field_validator("keyword_filter", mode="before")
    @classmethod
    def _empty_filter(cls, value):
        return value or ""


class LeadAttributeConfig(NodeConfig):
    field: str = "title"
    operator: Operator = "contains"
    value: str = ""

    @field_validator("operator", mode="before")
    @classmethod
    def _default_operator(cls, value):
        return value or "contains"

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, value):
        return "" if value is None else str(value)


class DurationConfig(NodeConfig):
    duration: float = Field(default=1, gt=0)
    unit: TimeUnit = "days"

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value):
        if value in (None, "", 0):
            return 1
        return value

    @field_validator("unit", mode="before")
    @classmethod
    def _default_unit(cls, value):
        # Unknown or missing units count as days
        return value if value in TIME_UNITS else "days"


class TimeElapsedConfig(DurationConfig):
    pass


class DelayConfig(DurationConfig):
    pass


NODE_CONFIGS: dict[str, type[NodeConfig]] = {
    "action_linkedin_message": MessageActionConfig,
    "action_linkedin_connect": ConnectActionConfig,
    "action_linkedin_like": LikeActionConfig,
    "action_linkedin_comment": CommentActionConfig,
    "action_task": TaskActionConfig,
    "condition_connection_accepted": ConnectionAcceptedConfig,
    "condition_message_received": MessageReceivedConfig,
    "condition_lead_attribute": LeadAttributeConfig,
    "condition_time_elapsed": TimeElapsedConfig,
    "delay_wait": DelayConfig,
}


def parse_config(node: Node) -> NodeConfig:
    """Validate a node's data against the shape its type expects."""
    model = NODE_CONFIGS.get(node.type, NodeConfig)
    try:
        return model.model_validate(node.data)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'data'}: {err['msg']}" for err in e.errors()
        )
        raise NodeConfigError(node.id, node.type, errors) from e
