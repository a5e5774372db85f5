"""Tests for in-memory overlap detection."""
import uuid

from booking_engine.services.availability.conflict_detector import (
    BookedInterval,
    has_conflict,
    intervals_overlap,
    shares_resource,
)


class TestIntervalsOverlap:
    """Half-open interval semantics."""

    def test_adjacent_intervals_do_not_overlap(self):
        # [13:45, 14:15) and [14:15, 14:45)
        assert intervals_overlap(825, 855, 855, 885) is False
        assert intervals_overlap(855, 885, 825, 855) is False

    def test_partial_overlap(self):
        assert intervals_overlap(825, 870, 855, 885) is True

    def test_containment(self):
        assert intervals_overlap(600, 720, 630, 660) is True


class TestHasConflict:
    """Resource-scoped conflict checks."""

    def test_adjacent_booking_is_not_a_conflict(self):
        existing = [BookedInterval.from_times("14:15", "14:45")]
        candidate = BookedInterval.from_times("13:45", "14:15")
        assert has_conflict(candidate, existing) is False

    def test_other_staff_member_does_not_conflict(self):
        alex, sam = uuid.uuid4(), uuid.uuid4()
        existing = [BookedInterval.from_times("10:00", "11:00", resource_id=alex)]
        candidate = BookedInterval.from_times("10:00", "11:00", resource_id=sam)

        assert has_conflict(candidate, existing) is False

    def test_same_staff_member_conflicts(self):
        alex = uuid.uuid4()
        existing = [BookedInterval.from_times("10:00", "11:00", resource_id=alex)]
        candidate = BookedInterval.from_times("10:30", "11:30", resource_id=alex)

        assert has_conflict(candidate, existing) is True

    def test_booking_without_resource_blocks_everyone(self):
        existing = [BookedInterval.from_times("10:00", "11:00")]
        candidate = BookedInterval.from_times("10:30", "11:30", resource_id=uuid.uuid4())

        assert has_conflict(candidate, existing) is True
        assert shares_resource(None, uuid.uuid4()) is True

    def test_excluded_reservation_is_ignored(self):
        reservation_id = uuid.uuid4()
        existing = [BookedInterval.from_times("10:00", "11:00", reservation_id=reservation_id)]
        candidate = BookedInterval.from_times("10:30", "11:30")

        assert has_conflict(candidate, existing, exclude_reservation_id=reservation_id) is False
