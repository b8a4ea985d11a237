import pytest
from datetime import time
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError

from app.models.booking import Booking
from app.models.business_hours import BusinessHours
from app.utils.availability import Interval, Placement, PlacementPlan, PlanKind
from app.utils.booking_store import (
    ConcurrentConflict,
    _is_transient,
    apply_plan,
    get_hours_for_weekday,
    list_active_bookings,
    load_business_hours,
)

from tests.conf_tests import TENANT_ID, OTHER_TENANT_ID, at, clear_db, test_db, make_booking, make_room


@pytest.fixture
def rooms(test_db): # pylint: disable=redefined-outer-name
    return make_room(test_db, "Room 1"), make_room(test_db, "Room 2")


# pylint: disable-next=redefined-outer-name
def test_list_active_bookings_skips_cancelled_and_other_tenants(test_db, rooms):
    room_one, room_two = rooms
    live = make_booking(test_db, room_one, at(18), at(20))
    make_booking(test_db, room_one, at(20), at(22), status="cancelled")
    other_room = make_room(test_db, "Room 1", tenant_id=OTHER_TENANT_ID)
    make_booking(test_db, other_room, at(18), at(20))

    slots = list_active_bookings(test_db, TENANT_ID, [room_one.id, room_two.id, other_room.id])
    assert [slot.id for slot in slots] == [live.id]
    assert slots[0].start_time == at(18)


# pylint: disable-next=redefined-outer-name
def test_business_hours_lookup(test_db):
    test_db.add(BusinessHours(tenant_id=TENANT_ID, day_of_week=5, open_time=time(20), close_time=time(4)))
    test_db.add(BusinessHours(tenant_id=TENANT_ID, day_of_week=1, is_closed=True))
    test_db.commit()

    friday = get_hours_for_weekday(test_db, TENANT_ID, 5)
    assert friday.is_overnight
    assert get_hours_for_weekday(test_db, TENANT_ID, 3) is None

    hours = load_business_hours(test_db, TENANT_ID)
    assert sorted(hours) == list(range(7))
    assert hours[1].is_closed
    assert hours[0] is None


# pylint: disable-next=redefined-outer-name
def test_apply_create_plan(test_db, rooms):
    room_one, _ = rooms
    plan = PlacementPlan(PlanKind.CREATE, (Placement(None, room_one.id, Interval(at(18), at(19, 30))),))
    (booking,) = apply_plan(test_db, TENANT_ID, plan, customer_name="Mina")
    assert booking.id is not None
    assert booking.status == "confirmed"
    assert float(booking.total_price) == 30.0


# pylint: disable-next=redefined-outer-name
def test_apply_swap_plan_commits_both(test_db, rooms):
    room_one, room_two = rooms
    a = make_booking(test_db, room_one, at(18), at(20))
    b = make_booking(test_db, room_two, at(19), at(21))
    plan = PlacementPlan(
        PlanKind.SWAP,
        (
            Placement(a.id, room_two.id, Interval(at(19), at(21))),
            Placement(b.id, room_one.id, Interval(at(18), at(20))),
        ),
    )
    apply_plan(test_db, TENANT_ID, plan)
    test_db.expire_all()
    assert test_db.get(Booking, a.id).room_id == room_two.id
    assert test_db.get(Booking, b.id).room_id == room_one.id


# pylint: disable-next=redefined-outer-name
def test_apply_plan_rejects_overlap_and_writes_nothing(test_db, rooms):
    room_one, room_two = rooms
    a = make_booking(test_db, room_one, at(18), at(20))
    b = make_booking(test_db, room_two, at(19), at(21))
    intruder = make_booking(test_db, room_one, at(20), at(21))
    # the second half of this swap lands on the intruder
    plan = PlacementPlan(
        PlanKind.SWAP,
        (
            Placement(a.id, room_two.id, Interval(at(19), at(21))),
            Placement(b.id, room_one.id, Interval(at(18), at(20, 30))),
        ),
    )
    with pytest.raises(ConcurrentConflict) as excinfo:
        apply_plan(test_db, TENANT_ID, plan)
    assert [slot.id for slot in excinfo.value.conflicts] == [intruder.id]

    test_db.expire_all()
    assert test_db.get(Booking, a.id).room_id == room_one.id
    assert test_db.get(Booking, b.id).room_id == room_two.id


# pylint: disable-next=redefined-outer-name
def test_apply_plan_for_cancelled_booking_conflicts(test_db, rooms):
    room_one, _ = rooms
    cancelled = make_booking(test_db, room_one, at(18), at(20), status="cancelled")
    plan = PlacementPlan(PlanKind.MOVE, (Placement(cancelled.id, room_one.id, Interval(at(20), at(22))),))
    with pytest.raises(ConcurrentConflict):
        apply_plan(test_db, TENANT_ID, plan)


# pylint: disable-next=redefined-outer-name
def test_apply_reactivation_plan_restores_cancelled_booking(test_db, rooms):
    room_one, _ = rooms
    cancelled = make_booking(test_db, room_one, at(18), at(20), status="cancelled")
    plan = PlacementPlan(PlanKind.REACTIVATE, (Placement(cancelled.id, room_one.id, Interval(at(18), at(20))),))
    (booking,) = apply_plan(test_db, TENANT_ID, plan, status="confirmed", notes="Back on")
    assert booking.status == "confirmed"
    assert booking.notes == "Back on"
    assert float(booking.total_price) == 40.0


def test_locked_database_is_transient():
    exc = OperationalError("UPDATE bookings", {}, Exception("database is locked"))
    assert _is_transient(exc)


def test_lost_connection_is_transient():
    assert _is_transient(DisconnectionError("connection dropped"))


def test_schema_errors_are_not_transient():
    assert not _is_transient(OperationalError("SELECT", {}, Exception("no such table: bookings")))
    assert not _is_transient(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))
