"""Unipile (LinkedIn proxy) client used for live connection checks."""

import os
from typing import Optional
from urllib.parse import quote

import httpx
import structlog

log = structlog.get_logger()


class UnipileClient:
    """Minimal Unipile API client."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
    ):
        dsn = dsn or os.getenv("UNIPILE_DSN")
        access_token = access_token or os.getenv("UNIPILE_ACCESS_TOKEN")

        if not dsn or not access_token:
            raise ValueError("UNIPILE_DSN and UNIPILE_ACCESS_TOKEN environment variables are required")

        self.base_url = f"https://{dsn}"
        self.access_token = access_token
        self.timeout = timeout

    async def get_profile(self, account_id: str, identifier: str) -> dict:
        """Look up a LinkedIn profile by public identifier or URL."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/api/v1/users/{quote(identifier, safe='')}",
                params={"account_id": account_id},
                headers={"X-API-KEY": self.access_token},
            )
            response.raise_for_status()
            return response.json()


def is_connected(profile: Optional[dict]) -> bool:
    if not profile:
        return False
    return bool(profile.get("is_connected")) or profile.get("relationship") == "CONNECTED"


class LinkedInConnectionPoller:
    """Checks whether a lead has accepted the owner's connection request."""

    def __init__(self, store, client: UnipileClient):
        self.store = store
        self.client = client

    async def __call__(self, run, lead: dict) -> Optional[bool]:
        linkedin_url = lead.get("linkedin_url")
        if not run.owner_id or not linkedin_url:
            return None

        account_id = self.store.get_linkedin_account_id(run.owner_id)
        if not account_id:
            log.info("linkedin_account_missing", owner_id=run.owner_id)
            return None

        profile = await self.client.get_profile(account_id, linkedin_url)
        connected = is_connected(profile)
        log.info("connection_polled", run_id=run.id, lead_id=run.lead_id, connected=connected)
        return connected
