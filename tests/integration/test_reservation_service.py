"""Reservation creation, rescheduling and lifecycle against the store."""
import uuid
from datetime import datetime, time, timedelta, timezone

import pytest

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from booking_engine.models.reservation import Reservation
from booking_engine.services.reservation.reservation_lifecycle import Actor, ActorRole
from booking_engine.services.reservation.reservation_service import ReservationService
from booking_engine.services.waitlist.waitlist_dispatcher import WaitlistDispatcher

LAST_YEAR = datetime(2029, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def book(db, business, service, client_actor):
    """Book as the default client unless told otherwise"""

    def _book(day, start, actor=None, **kwargs):
        return ReservationService.create_reservation(
            db,
            actor or client_actor,
            kwargs.pop("business_id", business.id),
            kwargs.pop("service_id", service.id),
            day,
            start,
            now=kwargs.pop("now", LAST_YEAR),
            **kwargs
        )

    return _book


class TestCreateReservation:
    """Booking a slot."""

    def test_creates_pending_reservation(self, book, client_actor, monday):
        reservation = book(monday, "10:00", client_notes="Short on the sides")

        assert reservation.status == "pending"
        assert reservation.client_id == client_actor.user_id
        assert reservation.start_time == time(10, 0)
        assert reservation.end_time == time(11, 0)
        assert reservation.duration_minutes == 60
        assert [e.event_type for e in reservation.events] == ["created"]

    def test_auto_confirm_business(self, db, make_business, make_service, client_actor, monday):
        business = make_business(auto_confirm=True)
        service = make_service(business)

        reservation = ReservationService.create_reservation(
            db, client_actor, business.id, service.id, monday, "10:00", now=LAST_YEAR
        )
        assert reservation.status == "confirmed"

    def test_overlapping_slot_is_rejected(self, book, make_client, monday):
        book(monday, "10:00")

        with pytest.raises(ConflictError) as exc:
            book(monday, "10:30", actor=make_client())
        assert exc.value.code == "TIME_SLOT_CONFLICT"

    def test_adjacent_slot_is_fine(self, book, make_client, monday):
        book(monday, "10:00")
        follow_up = book(monday, "11:00", actor=make_client())

        assert follow_up.start_time == time(11, 0)

    def test_cancelled_slot_can_be_rebooked(self, db, book, client_actor, make_client, monday):
        first = book(monday, "10:00")
        ReservationService.update_status(db, client_actor, first.id, "cancelled")

        again = book(monday, "10:00", actor=make_client())
        assert again.status == "pending"

    def test_different_staff_members_in_parallel(self, book, business, make_staff, make_client, monday):
        alex = make_staff(business, name="Alex")
        sam = make_staff(business, name="Sam")

        book(monday, "10:00", resource_id=alex.id)
        parallel = book(monday, "10:00", actor=make_client(), resource_id=sam.id)

        assert parallel.resource_id == sam.id

    def test_business_wide_booking_blocks_staff(self, book, business, make_staff, make_client, monday):
        alex = make_staff(business, name="Alex")
        book(monday, "10:00")

        with pytest.raises(ConflictError):
            book(monday, "10:00", actor=make_client(), resource_id=alex.id)

    @pytest.mark.parametrize("start,code", [
        ("08:00", "OUTSIDE_BUSINESS_HOURS"),
        ("17:30", "OUTSIDE_BUSINESS_HOURS"),
        ("25:00", "INVALID_TIME"),
    ])
    def test_invalid_start(self, book, monday, start, code):
        with pytest.raises(ValidationError) as exc:
            book(monday, start)
        assert exc.value.code == code

    def test_closed_day(self, book, sunday):
        with pytest.raises(ValidationError) as exc:
            book(sunday, "10:00")
        assert exc.value.code == "BUSINESS_CLOSED"

    def test_slot_in_the_past(self, book, monday):
        with pytest.raises(ValidationError) as exc:
            book(monday, "10:00", now=datetime(2030, 1, 7, 12, 0, tzinfo=timezone.utc))
        assert exc.value.code == "SLOT_IN_PAST"

    def test_inactive_service(self, book, business, make_service, monday):
        retired = make_service(business, name="Perm", is_active=False)

        with pytest.raises(ValidationError) as exc:
            book(monday, "10:00", service_id=retired.id)
        assert exc.value.code == "SERVICE_INACTIVE"

    def test_only_clients_book(self, book, owner, monday):
        with pytest.raises(ForbiddenError):
            book(monday, "10:00", actor=owner)

    def test_failed_booking_leaves_nothing_behind(self, db, book, make_client, monday):
        book(monday, "10:00")
        with pytest.raises(ConflictError):
            book(monday, "10:15", actor=make_client())

        assert db.query(Reservation).count() == 1


class TestRescheduleReservation:
    """Moving a reservation in place."""

    def test_moves_and_resets_to_pending(self, db, book, owner, client_actor, monday, tuesday):
        reservation = book(monday, "10:00")
        ReservationService.update_status(db, owner, reservation.id, "confirmed")

        moved = ReservationService.reschedule_reservation(
            db, client_actor, reservation.id, tuesday, "14:00", now=LAST_YEAR
        )

        assert moved.id == reservation.id
        assert moved.appointment_date == tuesday
        assert (moved.start_time, moved.end_time) == (time(14, 0), time(15, 0))
        assert moved.status == "pending"

        event = moved.events[-1]
        assert event.event_type == "rescheduled"
        assert event.from_status == "confirmed"
        assert event.previous_date == monday
        assert event.previous_start_time == time(10, 0)

    def test_may_overlap_its_own_old_slot(self, db, book, client_actor, monday):
        reservation = book(monday, "10:00")

        moved = ReservationService.reschedule_reservation(db, client_actor, reservation.id, monday, "10:30", now=LAST_YEAR)
        assert moved.start_time == time(10, 30)

    def test_conflict_with_another_booking(self, db, book, client_actor, make_client, monday):
        reservation = book(monday, "10:00")
        book(monday, "14:00", actor=make_client())

        with pytest.raises(ConflictError) as exc:
            ReservationService.reschedule_reservation(db, client_actor, reservation.id, monday, "13:30", now=LAST_YEAR)
        assert exc.value.code == "TIME_SLOT_CONFLICT"

        db.refresh(reservation)
        assert reservation.start_time == time(10, 0)

    def test_terminal_reservation_cannot_move(self, db, book, client_actor, monday, tuesday):
        reservation = book(monday, "10:00")
        ReservationService.update_status(db, client_actor, reservation.id, "cancelled")

        with pytest.raises(ConflictError) as exc:
            ReservationService.reschedule_reservation(db, client_actor, reservation.id, tuesday, "10:00", now=LAST_YEAR)
        assert exc.value.code == "INVALID_TRANSITION"

    def test_other_client_cannot_move(self, db, book, make_client, monday, tuesday):
        reservation = book(monday, "10:00")

        with pytest.raises(ForbiddenError):
            ReservationService.reschedule_reservation(db, make_client(), reservation.id, tuesday, "10:00", now=LAST_YEAR)

    def test_must_end_same_day(self, db, book, client_actor, monday, tuesday):
        reservation = book(monday, "10:00")

        with pytest.raises(ValidationError) as exc:
            ReservationService.reschedule_reservation(db, client_actor, reservation.id, tuesday, "23:30", now=LAST_YEAR)
        assert exc.value.code == "OUTSIDE_BUSINESS_HOURS"

    def test_past_slot_is_rejected(self, db, book, client_actor, monday):
        reservation = book(monday, "15:00")
        now = datetime(2030, 1, 7, 12, 0, tzinfo=timezone.utc)

        with pytest.raises(ValidationError) as exc:
            ReservationService.reschedule_reservation(db, client_actor, reservation.id, monday, "09:00", now=now)
        assert exc.value.code == "SLOT_IN_PAST"

    def test_hours_not_enforced_by_default(self, db, book, client_actor, monday, sunday):
        reservation = book(monday, "10:00")

        moved = ReservationService.reschedule_reservation(db, client_actor, reservation.id, sunday, "10:00", now=LAST_YEAR)
        assert moved.appointment_date == sunday

    def test_hours_enforced_when_configured(self, db, book, client_actor, monday, sunday, monkeypatch):
        monkeypatch.setattr(get_settings(), "RESCHEDULE_ENFORCE_BUSINESS_HOURS", True)
        reservation = book(monday, "10:00")

        with pytest.raises(ValidationError) as exc:
            ReservationService.reschedule_reservation(db, client_actor, reservation.id, sunday, "10:00", now=LAST_YEAR)
        assert exc.value.code == "BUSINESS_CLOSED"


class TestUpdateStatus:
    """Lifecycle transitions."""

    def test_owner_confirms_then_completes(self, db, book, owner, monday):
        reservation = book(monday, "10:00")

        ReservationService.update_status(db, owner, reservation.id, "confirmed", business_notes="Regular")
        done = ReservationService.update_status(db, owner, reservation.id, "completed")

        assert done.status == "completed"
        assert done.business_notes == "Regular"
        assert [e.to_status for e in done.events] == ["pending", "confirmed", "completed"]

    def test_staff_member_of_business_may_confirm(self, db, book, business, make_staff, monday):
        staff_user = Actor(user_id=uuid.uuid4(), role=ActorRole.STAFF)
        make_staff(business, user_id=staff_user.user_id)
        reservation = book(monday, "10:00")

        assert ReservationService.update_status(db, staff_user, reservation.id, "confirmed").status == "confirmed"

    def test_unrelated_staff_is_forbidden(self, db, book, monday):
        reservation = book(monday, "10:00")
        stranger = Actor(user_id=uuid.uuid4(), role=ActorRole.STAFF)

        with pytest.raises(ForbiddenError):
            ReservationService.update_status(db, stranger, reservation.id, "confirmed")

    def test_other_owner_is_forbidden(self, db, book, monday):
        reservation = book(monday, "10:00")
        other_owner = Actor(user_id=uuid.uuid4(), role=ActorRole.OWNER)

        with pytest.raises(ForbiddenError) as exc:
            ReservationService.update_status(db, other_owner, reservation.id, "cancelled")
        assert exc.value.code == "INSUFFICIENT_PERMISSIONS"

    def test_client_cannot_confirm(self, db, book, client_actor, monday):
        reservation = book(monday, "10:00")

        with pytest.raises(ForbiddenError) as exc:
            ReservationService.update_status(db, client_actor, reservation.id, "confirmed")
        assert exc.value.code == "CLIENT_CAN_ONLY_CANCEL"

        db.refresh(reservation)
        assert reservation.status == "pending"

    def test_client_cancel_records_reason(self, db, book, client_actor, monday):
        reservation = book(monday, "10:00")

        cancelled = ReservationService.update_status(
            db, client_actor, reservation.id, "cancelled", cancellation_reason="Flu"
        )

        assert cancelled.status == "cancelled"
        assert cancelled.cancelled_at is not None
        assert cancelled.cancellation_reason == "Flu"

    def test_client_cannot_set_business_notes(self, db, book, client_actor, monday):
        reservation = book(monday, "10:00")

        cancelled = ReservationService.update_status(
            db, client_actor, reservation.id, "cancelled", business_notes="VIP"
        )
        assert cancelled.business_notes is None

    def test_completed_cannot_be_cancelled(self, db, book, owner, monday):
        reservation = book(monday, "10:00")
        ReservationService.update_status(db, owner, reservation.id, "confirmed")
        ReservationService.update_status(db, owner, reservation.id, "completed")

        with pytest.raises(ConflictError) as exc:
            ReservationService.update_status(db, owner, reservation.id, "cancelled")
        assert exc.value.code == "INVALID_TRANSITION"

    def test_unknown_reservation(self, db, owner):
        with pytest.raises(NotFoundError) as exc:
            ReservationService.update_status(db, owner, uuid.uuid4(), "confirmed")
        assert exc.value.code == "RESERVATION_NOT_FOUND"


class TestCancellationDispatch:
    """Freed slots go to the waitlist after the cancellation commits."""

    def test_cancel_dispatches_exactly_once(self, db, book, owner, business, service, monday, monkeypatch):
        calls = []
        monkeypatch.setattr(WaitlistDispatcher, "dispatch_freed_slot", lambda *args, **kwargs: calls.append((args, kwargs)))
        reservation = book(monday, "10:00")

        ReservationService.update_status(db, owner, reservation.id, "cancelled")

        assert len(calls) == 1
        args, kwargs = calls[0]
        assert args[1:5] == (business.id, service.id, monday, time(10, 0))
        assert kwargs["resource_id"] is None

    def test_other_transitions_do_not_dispatch(self, db, book, owner, monday, monkeypatch):
        calls = []
        monkeypatch.setattr(WaitlistDispatcher, "dispatch_freed_slot", lambda *args, **kwargs: calls.append(args))
        reservation = book(monday, "10:00")

        ReservationService.update_status(db, owner, reservation.id, "confirmed")
        ReservationService.update_status(db, owner, reservation.id, "no_show")

        assert calls == []

    def test_dispatch_failure_keeps_cancellation(self, db, session_factory, book, client_actor, monday, monkeypatch):
        def broken_dispatch(*args, **kwargs):
            raise RuntimeError("waitlist store unavailable")

        monkeypatch.setattr(WaitlistDispatcher, "dispatch_freed_slot", broken_dispatch)
        reservation = book(monday, "10:00")

        cancelled = ReservationService.update_status(db, client_actor, reservation.id, "cancelled")
        assert cancelled.status == "cancelled"

        other_session = session_factory()
        try:
            stored = other_session.query(Reservation).filter(Reservation.id == reservation.id).one()
            assert stored.status == "cancelled"
        finally:
            other_session.close()


class TestReads:

    def test_get_reservation_is_owner_or_client_only(self, db, book, owner, client_actor, make_client, monday):
        reservation = book(monday, "10:00")

        assert ReservationService.get_reservation(db, client_actor, reservation.id).id == reservation.id
        assert ReservationService.get_reservation(db, owner, reservation.id).id == reservation.id
        with pytest.raises(ForbiddenError):
            ReservationService.get_reservation(db, make_client(), reservation.id)

    def test_client_listing_and_stats(self, db, book, owner, client_actor, monday, tuesday):
        first = book(monday, "10:00")
        second = book(tuesday, "10:00")
        third = book(tuesday, "12:00")
        ReservationService.update_status(db, owner, first.id, "confirmed")
        ReservationService.update_status(db, owner, first.id, "completed")
        ReservationService.update_status(db, client_actor, third.id, "cancelled")

        everything = ReservationService.list_client_reservations(db, client_actor.user_id, today=monday)
        assert [r.id for r in everything] == [first.id, second.id, third.id]

        upcoming = ReservationService.list_client_reservations(db, client_actor.user_id, upcoming=True, today=monday)
        assert [r.id for r in upcoming] == [second.id]

        past = ReservationService.list_client_reservations(db, client_actor.user_id, upcoming=False, today=tuesday)
        assert [r.id for r in past] == [first.id]

        cancelled = ReservationService.list_client_reservations(db, client_actor.user_id, status="cancelled")
        assert [r.id for r in cancelled] == [third.id]

        stats = ReservationService.get_client_stats(db, client_actor.user_id, today=monday)
        assert stats == {"total": 3, "upcoming": 1, "completed": 1, "cancelled": 1}

    def test_business_listing(self, db, book, business, owner, client_actor, make_client, monday, tuesday):
        book(monday, "10:00")
        book(tuesday, "10:00", actor=make_client())

        assert len(ReservationService.list_business_reservations(db, owner, business.id)) == 2
        assert len(ReservationService.list_business_reservations(db, owner, business.id, appointment_date=monday)) == 1
        with pytest.raises(ForbiddenError):
            ReservationService.list_business_reservations(db, client_actor, business.id)
