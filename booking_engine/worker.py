"""
Celery worker entry point

Runs the waitlist offer-expiry sweep. In production beat runs as its own
process (`celery -A booking_engine.worker beat`); `python -m
booking_engine.worker` starts a worker with an embedded beat for single-node
deployments.
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from booking_engine.config.celery_config import celery_app
from booking_engine.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Log what this worker will run"""
    waitlist_tasks = sorted(name for name in celery_app.tasks if name.startswith("booking_engine."))
    logger.info(f"🚀 Celery worker ready, scheduling tasks: {waitlist_tasks}")

    for name, entry in celery_app.conf.beat_schedule.items():
        logger.info(f"⏰ Beat entry {name}: {entry['task']} every {entry['schedule']}s")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("🛑 Celery worker shutting down...")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--beat',
        '--queues=waitlist',
        '--loglevel=info',
        '--concurrency=2',
    ])
