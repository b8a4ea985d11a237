from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import pytest

from app.utils.availability import BookingSlot, Interval
from app.utils.scheduler import find_best_room, free_slots

DAY = date(2030, 6, 7)


def at(hour, minute=0):
    return datetime.combine(DAY, time(hour, minute))


@dataclass
class RoomStub:
    id: int
    tenant_id: int
    capacity: int
    is_active: bool = True


ROOMS = [RoomStub(1, 1, 12), RoomStub(2, 1, 4), RoomStub(3, 1, 6), RoomStub(4, 2, 5), RoomStub(5, 1, 5, is_active=False)]


def test_best_room_is_smallest_that_fits():
    room = find_best_room(ROOMS, [], 1, Interval(at(18), at(20)), party_size=5)
    assert room.id == 3


def test_best_room_skips_booked_rooms():
    bookings = [BookingSlot(10, 1, 3, at(19), at(21))]
    room = find_best_room(ROOMS, bookings, 1, Interval(at(18), at(20)), party_size=5)
    assert room.id == 1


def test_best_room_none_when_nothing_fits():
    assert find_best_room(ROOMS, [], 1, Interval(at(18), at(20)), party_size=20) is None


def test_free_slots_skip_bookings():
    bookings = [BookingSlot(10, 1, 1, at(13), at(14, 30))]
    slots = free_slots(bookings, 1, 1, Interval(at(12), at(17)), timedelta(hours=1))
    assert slots == [
        Interval(at(12), at(13)),
        Interval(at(14, 30), at(15, 30)),
        Interval(at(15, 30), at(16, 30)),
    ]


def test_free_slots_ignore_cancelled_bookings():
    bookings = [BookingSlot(10, 1, 1, at(12), at(17), status="cancelled")]
    slots = free_slots(bookings, 1, 1, Interval(at(12), at(14)), timedelta(hours=1))
    assert len(slots) == 2


def test_free_slots_require_positive_length():
    with pytest.raises(ValueError):
        free_slots([], 1, 1, Interval(at(12), at(14)), timedelta(0))
