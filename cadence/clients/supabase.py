# cadence/clients/supabase.py
"""Supabase client for workflow tables."""

import os
from typing import Optional

from supabase import create_client, Client
import structlog

log = structlog.get_logger()

RUNS_TABLE = "workflow_runs"
WORKFLOWS_TABLE = "workflows"
EVENT_LOG_TABLE = "workflow_event_log"
LEADS_TABLE = "leads"


class SupabaseClient:
    """Client for Supabase database operations."""

    def __init__(self):
        """Initialize Supabase client from environment variables."""
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")

        if not url:
            raise ValueError("SUPABASE_URL environment variable is required")
        if not key:
            raise ValueError("SUPABASE_KEY environment variable is required")

        self.client: Client = create_client(url, key)

    def get_due_runs(self, now: str, limit: int) -> list[dict]:
        """Get runs that are running, past their wait, or waiting on an event."""
        result = (
            self.client.table(RUNS_TABLE)
            .select("*")
            .or_(
                "status.eq.running,"
                f"and(status.eq.waiting,waiting_until.lte.{now}),"
                "and(status.eq.waiting,waiting_for_event.not.is.null)"
            )
            .order("updated_at")
            .limit(limit)
            .execute()
        )
        return result.data or []

    def get_run(self, run_id: str) -> Optional[dict]:
        result = (
            self.client.table(RUNS_TABLE)
            .select("*")
            .eq("id", run_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def update_run(
        self,
        run_id: str,
        data: dict,
        expected_version: int,
        expected_status: str,
    ) -> Optional[dict]:
        """Update a run only if `version` and `status` still match what the caller read.

        Returns the updated row, or None if the run changed underneath us.
        """
        result = (
            self.client.table(RUNS_TABLE)
            .update(data)
            .eq("id", run_id)
            .eq("version", expected_version)
            .eq("status", expected_status)
            .execute()
        )
        return result.data[0] if result.data else None

    def get_workflow(self, workflow_id: str) -> Optional[dict]:
        result = (
            self.client.table(WORKFLOWS_TABLE)
            .select("id, owner_id, name, status, graph_json")
            .eq("id", workflow_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def get_lead(self, lead_id: str) -> Optional[dict]:
        result = (
            self.client.table(LEADS_TABLE)
            .select("*")
            .eq("id", lead_id)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    def insert_event(self, row: dict) -> None:
        """Append an entry to the workflow event log."""
        self.client.table(EVENT_LOG_TABLE).insert(row).execute()

    def upsert_runs(self, rows: list[dict]) -> list[dict]:
        """Create runs, one per (workflow, lead)."""
        if not rows:
            return []
        result = (
            self.client.table(RUNS_TABLE)
            .upsert(rows, on_conflict="workflow_id,lead_id")
            .execute()
        )
        log.info("workflow_runs_upserted", count=len(rows))
        return result.data or []

    def get_waiting_runs_for_lead(self, lead_id: str, event: str) -> list[dict]:
        result = (
            self.client.table(RUNS_TABLE)
            .select("*")
            .eq("lead_id", lead_id)
            .eq("status", "waiting")
            .eq("waiting_for_event", event)
            .execute()
        )
        return result.data or []

    def count_runs_by_status(self, statuses: tuple[str, ...]) -> dict[str, int]:
        counts = {}
        for status in statuses:
            result = (
                self.client.table(RUNS_TABLE)
                .select("id", count="exact")
                .eq("status", status)
                .execute()
            )
            counts[status] = result.count or 0
        return counts

    def get_linkedin_account_id(self, owner_id: str) -> Optional[str]:
        """Get the owner's active LinkedIn proxy account id."""
        result = (
            self.client.table("unipile_accounts")
            .select("account_id")
            .eq("user_id", owner_id)
            .eq("provider", "LINKEDIN")
            .eq("status", "active")
            .limit(1)
            .execute()
        )
        if result.data and result.data[0].get("account_id"):
            return result.data[0]["account_id"]

        # Fallback: older accounts were stored on the profile
        result = (
            self.client.table("profiles")
            .select("unipile_account_id")
            .eq("user_id", owner_id)
            .limit(1)
            .execute()
        )
        if result.data:
            return result.data[0].get("unipile_account_id")
        return None
