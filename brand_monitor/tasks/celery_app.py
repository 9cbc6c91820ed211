from celery import Celery
from celery.schedules import crontab

from brand_monitor.core.config import settings

celery_app = Celery(
    "brand_monitor",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    broker_connection_retry_on_startup=True,
)

# One full scan per day; the task itself walks every batch in sequence
celery_app.conf.beat_schedule = {
    "daily-brand-monitor": {
        "task": "run_daily_monitor",
        "schedule": crontab(hour=settings.monitor_hour, minute=settings.monitor_minute),
    },
}

celery_app.conf.include = [
    "brand_monitor.tasks.monitor_tasks",
]
