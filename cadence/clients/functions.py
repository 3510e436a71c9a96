"""HTTP client for the platform's per-channel functions."""

import os
from typing import Optional

import httpx
import structlog

log = structlog.get_logger()


class FunctionsClient:
    """Invokes `/functions/v1/<name>` endpoints with the caller's authorization."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 60.0):
        self.base_url = (base_url or os.getenv("SUPABASE_URL", "")).rstrip("/")
        self.timeout = timeout

    async def invoke(self, name: str, body: dict, auth_token: Optional[str]) -> dict:
        """POST to a function.

        Returns dict with `success` and, on failure, `error`. Transport errors
        propagate to the caller.
        """
        if not self.base_url:
            raise ValueError("SUPABASE_URL environment variable is required")

        headers = {"Content-Type": "application/json"}
        if auth_token:
            headers["Authorization"] = auth_token

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.base_url}/functions/v1/{name}",
                headers=headers,
                json=body,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if not response.is_success:
            error = data.get("error") or f"HTTP {response.status_code}"
            log.warning("function_call_failed", function=name, status=response.status_code, error=error)
            return {"success": False, "error": error}

        if data.get("success") is False:
            return {"success": False, "error": data.get("error") or f"{name} reported failure"}

        log.info("function_called", function=name)
        return {"success": True}
