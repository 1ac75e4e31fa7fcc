"""
Celery configuration for queued settlement.

- Redis broker and result backend
- Settlement queue routing
- Late acknowledgement so a crashed worker's event is redelivered
- Logfire instrumentation per worker process
"""

import logfire
from celery import Celery
from celery.signals import worker_process_init

from throne.config import get_settings
from throne.observability import configure_logging, initialize_logfire

settings = get_settings()

celery_app = Celery(
    "throne",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["throne.tasks.settlement_tasks"],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task results
    result_expires=3600,

    # Task routing
    task_routes={
        "tasks.settle_payment": {"queue": "settlements"},
    },

    # Worker configuration
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,

    # At-least-once: settlement is idempotent per payment reference
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Retries are decided per task
    task_autoretry_for=(),

    # Monitoring
    worker_send_task_events=True,
    task_send_sent_event=True,
)


@worker_process_init.connect
def init_worker_process(**kwargs) -> None:
    """Configure logging and Logfire once per worker process."""
    worker_settings = get_settings()
    configure_logging(worker_settings.log_level)
    enabled = initialize_logfire(worker_settings)
    logfire.info("Celery worker initialized", logfire_enabled=enabled)
