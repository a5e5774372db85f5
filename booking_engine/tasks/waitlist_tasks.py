# ===== booking_engine/tasks/waitlist_tasks.py =====
"""Waitlist maintenance tasks, driven by celery beat"""
import logging

from booking_engine.config.celery_config import celery_app
from booking_engine.config.database import SessionLocal
from booking_engine.core.exceptions import StoreError
from booking_engine.services.waitlist.waitlist_dispatcher import WaitlistDispatcher

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, max_retries=3)
def expire_waitlist_offers(self):
    """Expire lapsed waitlist offers and pass their slots to the next client in line"""
    db = SessionLocal()
    try:
        expired = WaitlistDispatcher.expire_offers(db)
        return {"status": "success", "expired": expired}

    except StoreError as exc:
        logger.error(f"Waitlist offer sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=60)

    finally:
        db.close()
