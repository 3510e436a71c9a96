# tests/clients/test_unipile.py
"""Tests for the Unipile client and connection poller."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from cadence.workflows.models import WorkflowRun


def make_run(owner_id="owner-1"):
    return WorkflowRun(id="run-1", workflow_id="wf-1", lead_id="lead-1", owner_id=owner_id)


def test_client_requires_credentials():
    with patch.dict("os.environ", {}, clear=True):
        from cadence.clients.unipile import UnipileClient
        with pytest.raises(ValueError, match="UNIPILE_DSN"):
            UnipileClient()


@pytest.mark.asyncio
async def test_get_profile_sends_account_and_key():
    with patch("cadence.clients.unipile.httpx.AsyncClient") as mock_client_class:
        mock_client = AsyncMock()
        mock_response = MagicMock()
        mock_response.raise_for_status = MagicMock()
        mock_response.json.return_value = {"is_connected": True}
        mock_client.get = AsyncMock(return_value=mock_response)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=None)
        mock_client_class.return_value = mock_client

        from cadence.clients.unipile import UnipileClient
        client = UnipileClient(dsn="api1.unipile.com:13111", access_token="secret")

        profile = await client.get_profile("acc-1", "https://linkedin.com/in/dana")

        assert profile == {"is_connected": True}
        call_args = mock_client.get.call_args
        assert call_args[0][0] == (
            "https://api1.unipile.com:13111/api/v1/users/https%3A%2F%2Flinkedin.com%2Fin%2Fdana"
        )
        assert call_args[1]["params"] == {"account_id": "acc-1"}
        assert call_args[1]["headers"] == {"X-API-KEY": "secret"}


@pytest.mark.parametrize(
    "profile,expected",
    [
        ({"is_connected": True}, True),
        ({"relationship": "CONNECTED"}, True),
        ({"is_connected": False}, False),
        ({}, False),
        (None, False),
    ],
)
def test_is_connected(profile, expected):
    from cadence.clients.unipile import is_connected

    assert is_connected(profile) is expected


@pytest.mark.asyncio
async def test_poller_checks_profile():
    from cadence.clients.unipile import LinkedInConnectionPoller

    store = MagicMock()
    store.get_linkedin_account_id.return_value = "acc-1"
    client = MagicMock()
    client.get_profile = AsyncMock(return_value={"relationship": "CONNECTED"})
    poller = LinkedInConnectionPoller(store, client)

    assert await poller(make_run(), {"linkedin_url": "https://linkedin.com/in/dana"}) is True
    store.get_linkedin_account_id.assert_called_once_with("owner-1")
    client.get_profile.assert_awaited_once_with("acc-1", "https://linkedin.com/in/dana")


@pytest.mark.asyncio
async def test_poller_unknown_without_linkedin_url():
    from cadence.clients.unipile import LinkedInConnectionPoller

    client = MagicMock()
    client.get_profile = AsyncMock()
    poller = LinkedInConnectionPoller(MagicMock(), client)

    assert await poller(make_run(), {"linkedin_url": None}) is None
    client.get_profile.assert_not_awaited()


@pytest.mark.asyncio
async def test_poller_unknown_without_account():
    from cadence.clients.unipile import LinkedInConnectionPoller

    store = MagicMock()
    store.get_linkedin_account_id.return_value = None
    client = MagicMock()
    client.get_profile = AsyncMock()
    poller = LinkedInConnectionPoller(store, client)

    assert await poller(make_run(), {"linkedin_url": "https://linkedin.com/in/dana"}) is None
    client.get_profile.assert_not_awaited()
