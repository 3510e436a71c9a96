"""Request-scoped state for one driver invocation."""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from cadence.core.config import EngineConfig
from cadence.workflows.conditions import ConnectionPoller
from cadence.workflows.dispatcher import ActionDispatcher
from cadence.workflows.events import EventLog
from cadence.workflows.store import RunStore
from cadence.workflows.timing import utcnow


@dataclass
class EngineContext:
    store: RunStore
    dispatcher: ActionDispatcher
    config: EngineConfig = field(default_factory=EngineConfig)
    auth_token: Optional[str] = None
    poller: Optional[ConnectionPoller] = None
    clock: Callable[[], datetime] = utcnow
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self):
        self.event_log = EventLog(self.store)
