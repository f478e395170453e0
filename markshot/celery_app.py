"""
Celery configuration for markshot.

Screenshot captures run on their own ``screenshots`` queue so the number of
concurrent headless browsers is bounded by that worker's concurrency.
"""

from __future__ import annotations

from celery import Celery
from kombu import Exchange, Queue

from .core.config import get_settings

SCREENSHOT_QUEUE = "screenshots"
MAINTENANCE_QUEUE = "maintenance"

CAPTURE_TASK = "markshot.screenshots.tasks.capture_screenshot"
SWEEP_TASK = "markshot.screenshots.tasks.sweep_stalled_screenshots"

_settings = get_settings()

celery_app = Celery(
    "markshot",
    broker=_settings.effective_celery_broker_url,
    backend=_settings.effective_celery_result_backend,
    include=["markshot.screenshots.tasks"],
)

screenshot_exchange = Exchange(SCREENSHOT_QUEUE, type="direct")
maintenance_exchange = Exchange(MAINTENANCE_QUEUE, type="direct")

celery_app.conf.task_queues = (
    Queue(SCREENSHOT_QUEUE, screenshot_exchange, routing_key=SCREENSHOT_QUEUE),
    Queue(MAINTENANCE_QUEUE, maintenance_exchange, routing_key=MAINTENANCE_QUEUE),
)

celery_app.conf.task_routes = {
    CAPTURE_TASK: {"queue": SCREENSHOT_QUEUE},
    SWEEP_TASK: {"queue": MAINTENANCE_QUEUE},
}

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_default_queue=SCREENSHOT_QUEUE,
    task_always_eager=_settings.celery_task_always_eager,

    result_expires=86400,  # 24 hours

    # Acknowledge after the attempt so a lost worker re-delivers it
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # One browser per worker process at a time
    worker_prefetch_multiplier=1,
    worker_concurrency=_settings.celery_concurrency,

    # Page load timeout plus upload and write-back
    task_time_limit=180,
    task_soft_time_limit=150,

    task_track_started=True,

    beat_schedule={
        "sweep-stalled-screenshots": {
            "task": SWEEP_TASK,
            "schedule": _settings.retry.sweep_interval_seconds,
        },
    },
)

__all__ = ["celery_app"]
