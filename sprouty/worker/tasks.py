"""Celery tasks (sync wrappers around the async services)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from celery.signals import setup_logging

from sprouty.core.logging import configure_logging
from sprouty.worker.celery_app import SCAN_TASK, celery_app

logger = logging.getLogger(__name__)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    """Use the app's logging setup instead of Celery's."""
    configure_logging()


def _run_async(coro):
    """Run async function in sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def _scan_due_reminders() -> Dict[str, Any]:
    from sprouty.core.database import Database
    from sprouty.reminders.scan_service import ReminderScanService

    # Motor binds to the running loop, so connect inside the same coroutine
    await Database.connect()
    try:
        return await ReminderScanService.run_tick()
    finally:
        await Database.disconnect()


@celery_app.task(name=SCAN_TASK, acks_late=True)
def scan_due_reminders() -> Dict[str, Any]:
    """
    Find due reminders, notify their owners and reschedule recurring ones.

    Scheduled by Celery Beat every REMINDER_SCAN_INTERVAL_MINUTES. Errors are
    logged and reported in the result; the task itself never raises so a bad
    tick can't take down the worker.

    Returns:
        Dict with statistics about the scan.
    """
    logger.info("Starting due-reminder scan")

    try:
        stats = _run_async(_scan_due_reminders())
    except Exception as e:
        logger.exception(f"Due-reminder scan crashed: {e}")
        return {"error": str(e)}

    if stats.get("error"):
        logger.error(f"Due-reminder scan finished with error: {stats['error']}")
    else:
        logger.info(f"Due-reminder scan complete: {stats}")
    return stats
