"""
冲突检测测试
"""
import pytest
from datetime import datetime
from decimal import Decimal

from hotel_pms.models.ontology import Booking, BookingStatus
from hotel_pms.services.booking_repository import BookingRepository
from hotel_pms.services.overlap_checker import OverlapChecker, intervals_overlap


def d(day: int) -> datetime:
    return datetime(2024, 1, day)


@pytest.mark.parametrize("a, b, expected", [
    ((1, 3), (2, 4), True),    # 部分重叠
    ((1, 5), (2, 3), True),    # 包含
    ((2, 3), (1, 5), True),    # 被包含
    ((1, 3), (1, 3), True),    # 完全相同
    ((1, 3), (3, 5), False),   # 同日换房
    ((3, 5), (1, 3), False),
    ((1, 2), (4, 5), False),
])
def test_intervals_overlap(a, b, expected):
    assert intervals_overlap(d(a[0]), d(a[1]), d(b[0]), d(b[1])) is expected


def _booking(db, room, guest, start, end, status=BookingStatus.CONFIRMED):
    booking = Booking(
        guest_id=guest.id,
        room_id=room.id,
        check_in_date=d(start),
        check_out_date=d(end),
        number_of_guests=1,
        number_of_nights=end - start,
        room_rate=Decimal("100"),
        total_amount=Decimal("100") * (end - start),
        booking_status=status
    )
    db.add(booking)
    db.commit()
    return booking


class TestOverlapChecker:

    @pytest.fixture
    def checker(self, db_session):
        return OverlapChecker(BookingRepository(db_session))

    def test_no_bookings_no_conflict(self, checker, sample_room):
        assert checker.has_conflict(sample_room.id, d(1), d(3)) is False

    def test_active_booking_conflicts(self, checker, db_session, sample_room, sample_guest):
        _booking(db_session, sample_room, sample_guest, 1, 3)
        assert checker.has_conflict(sample_room.id, d(2), d(4)) is True

    def test_checked_in_booking_conflicts(self, checker, db_session, sample_room, sample_guest):
        _booking(db_session, sample_room, sample_guest, 1, 3, BookingStatus.CHECKED_IN)
        assert checker.has_conflict(sample_room.id, d(1), d(2)) is True

    @pytest.mark.parametrize("status", [
        BookingStatus.CANCELLED, BookingStatus.NO_SHOW, BookingStatus.CHECKED_OUT
    ])
    def test_terminal_bookings_never_conflict(self, checker, db_session, sample_room,
                                              sample_guest, status):
        _booking(db_session, sample_room, sample_guest, 1, 3, status)
        assert checker.has_conflict(sample_room.id, d(1), d(3)) is False

    def test_same_day_turnover_allowed(self, checker, db_session, sample_room, sample_guest):
        _booking(db_session, sample_room, sample_guest, 1, 3)
        assert checker.has_conflict(sample_room.id, d(3), d(5)) is False

    def test_other_room_ignored(self, checker, db_session, sample_room, sample_room_102, sample_guest):
        _booking(db_session, sample_room_102, sample_guest, 1, 3)
        assert checker.has_conflict(sample_room.id, d(1), d(3)) is False

    def test_excluded_booking_ignored(self, checker, db_session, sample_room, sample_guest):
        booking = _booking(db_session, sample_room, sample_guest, 1, 3)
        assert checker.has_conflict(sample_room.id, d(2), d(4), exclude_booking_id=booking.id) is False

    def test_find_conflicts_returns_bookings(self, checker, db_session, sample_room, sample_guest):
        first = _booking(db_session, sample_room, sample_guest, 1, 3)
        _booking(db_session, sample_room, sample_guest, 5, 7)
        conflicts = checker.find_conflicts(sample_room.id, d(2), d(4))
        assert [b.id for b in conflicts] == [first.id]
