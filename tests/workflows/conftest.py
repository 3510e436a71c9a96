"""Fixtures for workflow engine tests."""

import pytest

from fakes import RecordingAdapter
from cadence.core.config import EngineConfig
from cadence.workflows.context import EngineContext
from cadence.workflows.dispatcher import ActionDispatcher


@pytest.fixture
def connect_adapter():
    return RecordingAdapter()


@pytest.fixture
def make_context(store, clock, connect_adapter):
    """Build an EngineContext with a recording connect adapter and no pacing."""

    def _make(adapters=None, poller=None, **engine):
        if adapters is None:
            adapters = {"action_linkedin_connect": connect_adapter}
        config = EngineConfig(run_delay_seconds=0, **engine)
        return EngineContext(
            store=store,
            dispatcher=ActionDispatcher(adapters),
            config=config,
            auth_token="Bearer test-token",
            poller=poller,
            clock=clock,
        )

    return _make
