# tests/clients/test_functions.py
"""Tests for the platform functions client."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch


def mock_http(status_code=200, payload=None, json_error=False):
    mock_client = AsyncMock()
    mock_response = MagicMock()
    mock_response.status_code = status_code
    mock_response.is_success = 200 <= status_code < 300
    if json_error:
        mock_response.json.side_effect = ValueError("not json")
    else:
        mock_response.json.return_value = payload if payload is not None else {}
    mock_client.post = AsyncMock(return_value=mock_response)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=None)
    return mock_client


@pytest.mark.asyncio
async def test_invoke_posts_to_function_endpoint():
    """invoke should POST the body with the caller's authorization."""
    with patch("cadence.clients.functions.httpx.AsyncClient") as mock_client_class:
        mock_client = mock_http(payload={"success": True, "messageId": "m-1"})
        mock_client_class.return_value = mock_client

        from cadence.clients.functions import FunctionsClient
        client = FunctionsClient(base_url="https://test.supabase.co/")

        result = await client.invoke("linkedin-send-message", {"leadId": "lead-1"}, "Bearer abc")

        assert result == {"success": True}
        call_args = mock_client.post.call_args
        assert call_args[0][0] == "https://test.supabase.co/functions/v1/linkedin-send-message"
        assert call_args[1]["json"] == {"leadId": "lead-1"}
        assert call_args[1]["headers"]["Authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_invoke_returns_error_from_failed_response():
    with patch("cadence.clients.functions.httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = mock_http(429, {"error": "rate limited"})

        from cadence.clients.functions import FunctionsClient
        client = FunctionsClient(base_url="https://test.supabase.co")

        result = await client.invoke("linkedin-send-connection", {}, None)

        assert result == {"success": False, "error": "rate limited"}


@pytest.mark.asyncio
async def test_invoke_reports_status_when_body_not_json():
    with patch("cadence.clients.functions.httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = mock_http(502, json_error=True)

        from cadence.clients.functions import FunctionsClient
        client = FunctionsClient(base_url="https://test.supabase.co")

        result = await client.invoke("linkedin-comment", {}, None)

        assert result == {"success": False, "error": "HTTP 502"}


@pytest.mark.asyncio
async def test_invoke_honours_success_false_in_body():
    with patch("cadence.clients.functions.httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = mock_http(200, {"success": False, "error": "Lead has no LinkedIn URL"})

        from cadence.clients.functions import FunctionsClient
        client = FunctionsClient(base_url="https://test.supabase.co")

        result = await client.invoke("linkedin-like-post", {}, None)

        assert result == {"success": False, "error": "Lead has no LinkedIn URL"}


@pytest.mark.asyncio
async def test_invoke_requires_base_url():
    with patch.dict("os.environ", {}, clear=True):
        from cadence.clients.functions import FunctionsClient
        client = FunctionsClient()

        with pytest.raises(ValueError, match="SUPABASE_URL"):
            await client.invoke("linkedin-comment", {}, None)
