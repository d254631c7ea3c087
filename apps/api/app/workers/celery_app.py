"""Celery application configuration."""

from celery import Celery

from app.core.config import Settings, get_settings

CELERY_CONFIG = dict(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task safety limits
    task_time_limit=600,
    task_soft_time_limit=540,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    task_routes={
        "tasks.retention.*": {"queue": "retention"},
    },
    # Beat schedule (GDPR retention sweep)
    beat_schedule={
        "purge-scheduled-deletions": {
            "task": "tasks.retention.purge_scheduled_deletions",
            "schedule": 3600.0,  # Hourly
        },
        "purge-expired-submissions": {
            "task": "tasks.retention.purge_expired_submissions",
            "schedule": 3600.0,  # Hourly
        },
    },
)


def create_celery_app(settings: Settings) -> Celery:
    """Create the worker app against the configured Redis broker."""
    app = Celery(
        "derma",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=[
            "app.workers.tasks.retention",
        ],
    )
    app.conf.update(CELERY_CONFIG)
    return app


# Worker and beat processes load this module by name; settings come from the
# environment once at import.
celery_app = create_celery_app(get_settings())


# Task base class with common error handling
class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class with error handling."""

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True
    max_retries = 3
