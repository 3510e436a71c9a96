"""Time helpers shared by condition and delay nodes."""

from datetime import datetime, timedelta, timezone

from cadence.workflows.models import WorkflowRun

UNIT_SECONDS = {
    "minutes": 60,
    "hours": 60 * 60,
    "days": 24 * 60 * 60,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_timedelta(duration: float, unit: str) -> timedelta:
    """Convert a configured magnitude and unit into a timedelta."""
    return timedelta(seconds=duration * UNIT_SECONDS[unit])


def transition_time(run: WorkflowRun, now: datetime) -> datetime:
    # A run that was never stamped is treated as having just transitioned.
    return run.updated_at or now


def elapsed_since_transition(run: WorkflowRun, now: datetime) -> timedelta:
    """Time spent at the current node, measured from the last state transition."""
    return now - transition_time(run, now)
