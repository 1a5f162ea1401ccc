"""Celery app bootstrap (AWS SQS broker) and the reminder scan beat schedule."""

from __future__ import annotations

from datetime import timedelta
from typing import Union

from celery import Celery
from celery.schedules import crontab

from sprouty.core.config import Settings, get_settings

# Logical queue name; the SQS transport prepends `queue_name_prefix`
DEFAULT_QUEUE = "default"
SCAN_TASK = "sprouty.worker.tasks.scan_due_reminders"


def sqs_transport_options(settings: Settings) -> dict:
    """Broker transport options for the SQS queue the scan task runs on."""
    options = {
        "region": (settings.AWS_REGION or "").strip(),
        "queue_name_prefix": (settings.CELERY_QUEUE_PREFIX or "sprouty-").strip(),
        "visibility_timeout": int(settings.CELERY_VISIBILITY_TIMEOUT),
        "polling_interval": float(settings.CELERY_POLLING_INTERVAL),
        "wait_time_seconds": int(settings.CELERY_WAIT_TIME_SECONDS),
    }

    queue_url = (settings.SQS_DEFAULT_QUEUE_URL or "").strip()
    if queue_url:
        options["predefined_queues"] = {DEFAULT_QUEUE: {"url": queue_url}}
    return options


def scan_schedule(minutes: int) -> Union[crontab, timedelta]:
    """
    Beat schedule for the reminder scan.

    Intervals that divide an hour (or whole hours) are pinned to the clock;
    anything else runs on a plain interval.
    """
    minutes = max(1, int(minutes))
    if minutes % 60 == 0:
        hours = minutes // 60
        return crontab(minute=0) if hours == 1 else crontab(minute=0, hour=f"*/{hours}")
    if 60 % minutes == 0:
        return crontab(minute=f"*/{minutes}")
    return timedelta(minutes=minutes)


settings = get_settings()
SCAN_INTERVAL_MINUTES = max(1, int(settings.REMINDER_SCAN_INTERVAL_MINUTES))

celery_app = Celery(
    "sprouty",
    broker=(settings.CELERY_BROKER_URL or "sqs://").strip(),
    include=["sprouty.worker.tasks"],
)

celery_app.conf.update(
    broker_transport_options=sqs_transport_options(settings),
    task_default_queue=DEFAULT_QUEUE,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    # A tick must give up before its scan lease can be taken over
    task_soft_time_limit=int(settings.REMINDER_SCAN_LOCK_TTL_SECONDS),
    beat_schedule={
        "scan-due-reminders": {
            "task": SCAN_TASK,
            "schedule": scan_schedule(SCAN_INTERVAL_MINUTES),
            # A tick that waited a whole interval in the queue is stale
            "options": {"queue": DEFAULT_QUEUE, "expires": SCAN_INTERVAL_MINUTES * 60},
        },
    },
)
