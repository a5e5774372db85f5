"""Tests for the reservation state machine."""
import pytest

from booking_engine.core.exceptions import ConflictError, ForbiddenError, ValidationError
from booking_engine.services.reservation.reservation_lifecycle import (
    ActorRole,
    ReservationStatus,
    can_reschedule,
    check_transition,
    initial_status,
    parse_status,
)


class TestInitialStatus:

    def test_auto_confirm(self):
        assert initial_status(True) == ReservationStatus.CONFIRMED

    def test_manual_confirm(self):
        assert initial_status(False) == ReservationStatus.PENDING


class TestTransitions:
    """Who may move a reservation where."""

    @pytest.mark.parametrize("current,target", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("pending", "no_show"),
        ("confirmed", "completed"),
        ("confirmed", "cancelled"),
        ("confirmed", "no_show"),
    ])
    @pytest.mark.parametrize("role", [ActorRole.OWNER, ActorRole.STAFF])
    def test_business_side_transitions(self, current, target, role):
        assert check_transition(current, target, role) == ReservationStatus(target)

    @pytest.mark.parametrize("current", ["pending", "confirmed"])
    def test_client_can_cancel(self, current):
        assert check_transition(current, "cancelled", ActorRole.CLIENT) == ReservationStatus.CANCELLED

    @pytest.mark.parametrize("target", ["confirmed", "completed", "no_show"])
    def test_client_cannot_do_anything_else(self, target):
        with pytest.raises(ForbiddenError) as exc:
            check_transition("pending", target, ActorRole.CLIENT)
        assert exc.value.code == "CLIENT_CAN_ONLY_CANCEL"

    @pytest.mark.parametrize("current,target", [
        ("pending", "pending"),
        ("confirmed", "pending"),
        ("confirmed", "confirmed"),
        ("completed", "confirmed"),
    ])
    def test_client_misuse_is_always_forbidden(self, current, target):
        with pytest.raises(ForbiddenError) as exc:
            check_transition(current, target, ActorRole.CLIENT)
        assert exc.value.code == "CLIENT_CAN_ONLY_CANCEL"

    def test_client_cancelling_twice_is_a_conflict(self):
        with pytest.raises(ConflictError) as exc:
            check_transition("cancelled", "cancelled", ActorRole.CLIENT)
        assert exc.value.code == "INVALID_TRANSITION"

    @pytest.mark.parametrize("terminal", ["completed", "cancelled", "no_show"])
    def test_terminal_states_are_final(self, terminal):
        with pytest.raises(ConflictError) as exc:
            check_transition(terminal, "confirmed", ActorRole.OWNER)
        assert exc.value.code == "INVALID_TRANSITION"

    def test_cancelled_is_never_reactivated(self):
        with pytest.raises(ConflictError):
            check_transition("cancelled", "pending", ActorRole.OWNER)

    def test_back_to_pending_is_rejected(self):
        with pytest.raises(ConflictError):
            check_transition("confirmed", "pending", ActorRole.OWNER)

    def test_same_status_is_rejected(self):
        with pytest.raises(ConflictError):
            check_transition("confirmed", "confirmed", ActorRole.OWNER)

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            parse_status("archived")
        assert exc.value.code == "INVALID_STATUS"


class TestReschedule:

    @pytest.mark.parametrize("status,allowed", [
        ("pending", True),
        ("confirmed", True),
        ("completed", False),
        ("cancelled", False),
        ("no_show", False),
    ])
    def test_only_active_reservations_move(self, status, allowed):
        assert can_reschedule(status) is allowed
