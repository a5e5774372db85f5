# booking_engine/config/celery_config.py
"""Celery configuration, task routing and the beat schedule"""
from celery import Celery
from kombu import Queue

from booking_engine.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create and configure Celery application"""

    celery_app = Celery(
        "salon_scheduler",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "booking_engine.tasks.waitlist_tasks",
        ],
    )

    celery_app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone="UTC",
        enable_utc=True,

        # Task routing
        task_routes={
            "booking_engine.tasks.waitlist_tasks.*": {"queue": "waitlist"},
        },

        # Queue definitions
        task_queues=(
            Queue("waitlist", routing_key="waitlist"),
        ),

        # External offer-expiry sweep
        beat_schedule={
            "expire-waitlist-offers": {
                "task": "booking_engine.tasks.waitlist_tasks.expire_waitlist_offers",
                "schedule": float(settings.OFFER_EXPIRY_SWEEP_SECONDS),
            },
        },

        # Worker settings
        worker_max_tasks_per_child=1000,
        worker_prefetch_multiplier=1,
        task_acks_late=True,

        # Retry settings
        task_retry_max_retries=3,
        task_retry_delay=60,  # 1 minute

        broker_connection_retry_on_startup=True,
    )

    return celery_app


# Create the Celery app instance
celery_app = create_celery_app()
