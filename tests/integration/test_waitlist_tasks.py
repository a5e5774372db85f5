"""Celery offer-expiry sweep."""
from datetime import datetime, time, timezone

import pytest

from booking_engine.config.celery_config import celery_app
from booking_engine.core.exceptions import StoreError
from booking_engine.models.waitlist import WaitlistEntry
from booking_engine.services.waitlist.waitlist_dispatcher import WaitlistDispatcher
from booking_engine.tasks import waitlist_tasks


class RetryRequested(Exception):
    pass


@pytest.fixture
def task_sessions(monkeypatch, session_factory):
    monkeypatch.setattr(waitlist_tasks, "SessionLocal", session_factory)


class TestExpireWaitlistOffersTask:

    def test_beat_schedule_runs_the_sweep(self):
        entry = celery_app.conf.beat_schedule["expire-waitlist-offers"]
        assert entry["task"] == waitlist_tasks.expire_waitlist_offers.name

    def test_expires_lapsed_offers(
            self, db, task_sessions, business, service, monday, client_actor, make_client):
        first = WaitlistDispatcher.join_waitlist(db, client_actor, business.id, service.id, monday)
        first.created_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
        db.commit()
        second = WaitlistDispatcher.join_waitlist(db, make_client(), business.id, service.id, monday)

        # Offered long ago, so the window has lapsed by now
        WaitlistDispatcher.dispatch_freed_slot(
            db, business.id, service.id, monday, time(10, 0),
            now=datetime(2020, 1, 2, tzinfo=timezone.utc)
        )

        result = waitlist_tasks.expire_waitlist_offers()

        assert result == {"status": "success", "expired": 1}
        db.expire_all()
        assert db.query(WaitlistEntry).filter(WaitlistEntry.id == first.id).one().status == "expired"
        assert db.query(WaitlistEntry).filter(WaitlistEntry.id == second.id).one().status == "offered"

    def test_nothing_to_expire(self, task_sessions):
        assert waitlist_tasks.expire_waitlist_offers() == {"status": "success", "expired": 0}

    def test_store_failure_is_retried(self, task_sessions, monkeypatch):
        def broken_sweep(db, now=None):
            raise StoreError("Storage failure while finding lapsed waitlist offers")

        def fake_retry(exc=None, countdown=None, **kwargs):
            assert countdown == 60
            return RetryRequested(str(exc))

        monkeypatch.setattr(WaitlistDispatcher, "expire_offers", broken_sweep)
        monkeypatch.setattr(waitlist_tasks.expire_waitlist_offers, "retry", fake_retry)

        with pytest.raises(RetryRequested):
            waitlist_tasks.expire_waitlist_offers()
