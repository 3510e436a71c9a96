"""Action dispatch: maps action nodes onto channel adapters."""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from cadence.clients.functions import FunctionsClient
from cadence.workflows.nodes import (
    CommentActionConfig,
    ConnectActionConfig,
    LikeActionConfig,
    MessageActionConfig,
    NodeConfig,
)

log = structlog.get_logger()

# Action types that only remind a human; they always succeed
MANUAL_ACTION_TYPES = frozenset({"action_task"})


@dataclass
class ActionResult:
    success: bool
    error: Optional[str] = None


@dataclass
class AuthContext:
    """Credentials forwarded to channel adapters."""
    token: Optional[str] = None
    owner_id: Optional[str] = None
    org_id: Optional[str] = None


ChannelAdapter = Callable[[str, NodeConfig, AuthContext], Awaitable[ActionResult]]


class ActionDispatcher:
    """Resolves an action type to exactly one adapter. No retries, no backoff."""

    def __init__(self, adapters: dict[str, ChannelAdapter]):
        self.adapters = adapters

    async def dispatch(
        self,
        node_type: str,
        config: NodeConfig,
        lead_id: str,
        auth: AuthContext,
    ) -> ActionResult:
        adapter = self.adapters.get(node_type)
        if adapter is None:
            if node_type in MANUAL_ACTION_TYPES:
                return ActionResult(success=True)
            return ActionResult(success=False, error=f"Unsupported action type: {node_type}")

        try:
            result = await adapter(lead_id, config, auth)
        except Exception as e:
            log.error("action_adapter_error", node_type=node_type, lead_id=lead_id, error=str(e))
            return ActionResult(success=False, error=str(e) or type(e).__name__)

        if not result.success and not result.error:
            result.error = f"{node_type} failed"
        return result


def _message_body(config: MessageActionConfig) -> dict:
    return {"message": config.message_template}


def _connect_body(config: ConnectActionConfig) -> dict:
    return {"message": config.note_text} if config.note_text else {}


def _like_body(config: LikeActionConfig) -> dict:
    return {"reactionType": config.reaction_type}


def _comment_body(config: CommentActionConfig) -> dict:
    return {"comment": config.comment_text}


ACTION_FUNCTIONS: dict[str, tuple[str, Callable[..., dict]]] = {
    "action_linkedin_message": ("linkedin-send-message", _message_body),
    "action_linkedin_connect": ("linkedin-send-connection", _connect_body),
    "action_linkedin_like": ("linkedin-like-post", _like_body),
    "action_linkedin_comment": ("linkedin-comment", _comment_body),
}


class FunctionAdapter:
    """Channel adapter backed by one platform function."""

    def __init__(self, client: FunctionsClient, function_name: str, build_body: Callable[..., dict]):
        self.client = client
        self.function_name = function_name
        self.build_body = build_body

    async def __call__(self, lead_id: str, config: NodeConfig, auth: AuthContext) -> ActionResult:
        body = {
            "leadId": lead_id,
            "ownerId": auth.owner_id,
            "orgId": auth.org_id,
            **self.build_body(config),
        }
        response = await self.client.invoke(self.function_name, body, auth.token)
        return ActionResult(success=response["success"], error=response.get("error"))


def build_default_dispatcher(client: Optional[FunctionsClient] = None) -> ActionDispatcher:
    client = client or FunctionsClient()
    adapters = {
        node_type: FunctionAdapter(client, function_name, build_body)
        for node_type, (function_name, build_body) in ACTION_FUNCTIONS.items()
    }
    return ActionDispatcher(adapters)
