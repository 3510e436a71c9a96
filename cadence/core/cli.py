"""Command-line interface for the workflow engine."""

import asyncio
import json
from pathlib import Path
from typing import Optional

import click
import structlog

from cadence.clients.functions import FunctionsClient
from cadence.clients.supabase import SupabaseClient
from cadence.clients.unipile import LinkedInConnectionPoller, UnipileClient
from cadence.core.config import DEFAULT_CONFIG_PATH, Settings, load_settings
from cadence.workflows.context import EngineContext
from cadence.workflows.dispatcher import build_default_dispatcher
from cadence.workflows.driver import process_due_runs
from cadence.workflows.errors import WorkflowError
from cadence.workflows.models import RUN_STATUSES
from cadence.workflows.store import RunStore
from cadence.workflows.timing import utcnow

# Configure structlog for CLI output
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer()
    ]
)

log = structlog.get_logger()


def build_store() -> RunStore:
    return RunStore(SupabaseClient())


def build_context(settings: Settings, store: RunStore) -> EngineContext:
    """Assemble the request-scoped engine context for one invocation."""
    functions = FunctionsClient(
        base_url=settings.functions.base_url or None,
        timeout=settings.functions.timeout_seconds,
    )

    poller = None
    if settings.unipile.enabled:
        try:
            poller = LinkedInConnectionPoller(
                store, UnipileClient(timeout=settings.unipile.timeout_seconds)
            )
        except ValueError as e:
            log.warning("unipile_not_configured", error=str(e))

    return EngineContext(
        store=store,
        dispatcher=build_default_dispatcher(functions),
        config=settings.engine,
        auth_token=settings.auth_token,
        poller=poller,
    )


@click.group()
def cli():
    """Cadence - outreach workflow engine."""


@cli.command()
@click.option("--config", "config_path", type=click.Path(), default=str(DEFAULT_CONFIG_PATH),
              help="Config directory path")
@click.option("--batch-size", type=int, default=None, help="Override the number of runs per tick")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
def process(config_path: str, batch_size: Optional[int], as_json: bool):
    """Process workflow runs that are due (one tick)."""
    settings = load_settings(Path(config_path))
    if batch_size:
        settings.engine.batch_size = batch_size

    ctx = build_context(settings, build_store())
    summary = asyncio.run(process_due_runs(ctx))

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return

    if summary.processed == 0:
        click.echo("No workflow runs to process")
        return

    click.echo(f"Processed {summary.processed} workflow runs")
    click.echo(f"  Steps:     {len(summary.results)}")
    click.echo(f"  Succeeded: {summary.succeeded}")
    click.echo(f"  Failed:    {summary.failed}")
    click.echo(f"  Skipped:   {summary.skipped}")

    for result in summary.results:
        if not result.success:
            click.echo(f"  ✗ {result.run_id} at {result.node_id}: {result.error}")


@cli.command()
@click.argument("workflow_id")
@click.argument("lead_ids", nargs=-1, required=True)
@click.option("--owner", "owner_id", default=None, help="Owner user id (defaults to workflow owner)")
@click.option("--org", "org_id", default=None, help="Organization id")
def enroll(workflow_id: str, lead_ids: tuple, owner_id: Optional[str], org_id: Optional[str]):
    """Enroll leads into a workflow."""
    store = build_store()

    try:
        workflow = store.get_workflow(workflow_id)
        if workflow is None:
            raise click.ClickException(f"Workflow not found: {workflow_id}")
        runs = store.enroll(workflow, list(lead_ids), utcnow(), owner_id=owner_id, org_id=org_id)
    except WorkflowError as e:
        raise click.ClickException(str(e))

    click.echo(f"Enrolled {len(runs)} lead(s) into {workflow.name}")


@cli.command()
@click.argument("lead_id")
@click.argument("event_name", type=click.Choice(["connection_accepted", "message_received"]))
@click.option("--body", default=None, help="Message text for message_received")
@click.option("--no-resume", is_flag=True, help="Record the fact but leave runs waiting")
def event(lead_id: str, event_name: str, body: Optional[str], no_resume: bool):
    """Record an external event for a lead's waiting runs."""
    store = build_store()

    facts = {}
    if body is not None:
        facts["message_body"] = body

    runs = store.record_event(lead_id, event_name, facts, resume=not no_resume)
    click.echo(f"Recorded {event_name} on {len(runs)} run(s)")


@cli.command()
def status():
    """Show workflow run counts by status."""
    counts = build_store().count_by_status()

    click.echo("\nWorkflow Runs")
    click.echo("───────────────")
    for run_status in RUN_STATUSES:
        click.echo(f"{run_status.capitalize():<12}{counts.get(run_status, 0)}")
    click.echo("───────────────")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
