"""Fixtures shared across the test suite."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from fakes import Clock, FakeSupabaseClient
from cadence.workflows.models import format_timestamp
from cadence.workflows.store import RunStore


@pytest.fixture
def clock():
    return Clock(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_db():
    return FakeSupabaseClient()


@pytest.fixture
def store(fake_db):
    return RunStore(fake_db)


@pytest.fixture
def seed(fake_db, clock):
    """Insert a workflow, a lead and a run positioned at `current_node_id`."""

    def _seed(
        nodes,
        edges,
        current_node_id,
        status="running",
        updated_at=None,
        context=None,
        workflow_status="active",
        lead=None,
        waiting_until=None,
        waiting_for_event=None,
        workflow_id=None,
    ):
        workflow_id = workflow_id or str(uuid4())
        if workflow_id not in fake_db.workflows:
            fake_db.workflows[workflow_id] = {
                "id": workflow_id,
                "owner_id": "owner-1",
                "name": "LinkedIn cadence",
                "status": workflow_status,
                "graph_json": {"nodes": nodes, "edges": edges},
            }

        lead_id = str(uuid4())
        if lead is not False:
            fake_db.leads[lead_id] = {
                "id": lead_id,
                "first_name": "Dana",
                "title": "VP of Sales",
                "company": "Acme Corp",
                "linkedin_url": "https://linkedin.com/in/dana",
                **(lead or {}),
            }

        run_id = str(uuid4())
        fake_db.runs[run_id] = {
            "id": run_id,
            "workflow_id": workflow_id,
            "lead_id": lead_id,
            "owner_id": "owner-1",
            "org_id": "org-1",
            "current_node_id": current_node_id,
            "status": status,
            "waiting_until": format_timestamp(waiting_until),
            "waiting_for_event": waiting_for_event,
            "context_json": context or {},
            "started_at": format_timestamp(clock.now),
            "updated_at": format_timestamp(updated_at or clock.now),
            "version": 0,
            "lease_until": None,
        }
        return run_id

    return _seed
