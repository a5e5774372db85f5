"""Two clients racing for overlapping slots."""
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from booking_engine.core.exceptions import ConflictError
from booking_engine.models.reservation import Reservation
from booking_engine.services.reservation.reservation_service import ReservationService

LAST_YEAR = datetime(2029, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestConcurrentBooking:
    """Exactly one of two simultaneous overlapping bookings commits."""

    def _race(self, session_factory, business, service, day, requests):
        # Plain ids only; the fixture objects belong to the test thread's session
        business_id, service_id = business.id, service.id
        barrier = threading.Barrier(len(requests))

        def attempt(actor, start_time):
            session = session_factory()
            try:
                barrier.wait(timeout=5)
                reservation = ReservationService.create_reservation(
                    session, actor, business_id, service_id, day, start_time, now=LAST_YEAR
                )
                return "booked", reservation.id
            except ConflictError as e:
                return "conflict", e.code
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=len(requests)) as pool:
            futures = [pool.submit(attempt, actor, start) for actor, start in requests]
            return [f.result(timeout=30) for f in futures]

    def test_same_slot(self, db, session_factory, business, service, make_client, monday):
        results = self._race(
            session_factory, business, service, monday,
            [(make_client(), "10:00"), (make_client(), "10:00")],
        )

        outcomes = sorted(outcome for outcome, _ in results)
        assert outcomes == ["booked", "conflict"]
        assert [detail for outcome, detail in results if outcome == "conflict"] == ["TIME_SLOT_CONFLICT"]
        assert db.query(Reservation).count() == 1

    def test_overlapping_slots(self, db, session_factory, business, service, make_client, monday):
        results = self._race(
            session_factory, business, service, monday,
            [(make_client(), "10:00"), (make_client(), "10:30")],
        )

        assert sorted(outcome for outcome, _ in results) == ["booked", "conflict"]
        assert db.query(Reservation).count() == 1

    def test_disjoint_slots_both_succeed(self, db, session_factory, business, service, make_client, monday):
        results = self._race(
            session_factory, business, service, monday,
            [(make_client(), "10:00"), (make_client(), "11:00")],
        )

        assert [outcome for outcome, _ in results] == ["booked", "booked"]
        assert db.query(Reservation).count() == 2
