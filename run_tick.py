#!/usr/bin/env python3
"""Cron wrapper: process due workflow runs once and exit."""

import asyncio
from datetime import datetime
from dotenv import load_dotenv

load_dotenv()

import structlog

from cadence.core.cli import build_context, build_store
from cadence.core.config import load_settings
from cadence.workflows.driver import process_due_runs

log = structlog.get_logger()


async def main():
    start_time = datetime.now()
    log.info("workflow_tick_started", time=start_time.isoformat())

    settings = load_settings()
    ctx = build_context(settings, build_store())
    summary = await process_due_runs(ctx)

    elapsed = (datetime.now() - start_time).total_seconds()
    log.info(
        "workflow_tick_completed",
        elapsed_seconds=elapsed,
        processed=summary.processed,
        succeeded=summary.succeeded,
        failed=summary.failed,
    )


if __name__ == "__main__":
    asyncio.run(main())
