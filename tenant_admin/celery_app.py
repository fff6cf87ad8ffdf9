"""
Celery configuration for background e-mail delivery.
"""

from celery import Celery

from .config import get_settings

settings = get_settings()

celery_app = Celery(
    "tenant_admin",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["tenant_admin.tasks.email_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_routes={
        "tenant_admin.tasks.email_tasks.*": {"queue": "email"},
    },
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_default_retry_delay=60,
    result_expires=3600,
)
