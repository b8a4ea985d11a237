from typing import Callable, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from datetime import datetime, timedelta, timezone, date
from sqlalchemy.orm import Session
from app.config import settings
from app.db import get_db
from app.models.booking import Booking, BookingStatus
from app.models.room import Room
from app.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingMove,
    BookingResize,
    BookingResponse,
    BookingUpdate,
    BookingUpdatesResponse,
    PlacementResponse,
    SlotResponse,
)
from app.schemas.room import RoomResponse
from app.utils.auth import get_current_tenant
from app.utils.availability import (
    Decision,
    Interval,
    InvalidInterval,
    Reason,
    Rejection,
    business_window,
    check_conflict,
    is_within_business_hours,
    resolve_create,
    resolve_placement,
    resolve_reactivation,
    resolve_resize,
)
from app.utils.booking_store import (
    ConcurrentConflict,
    StoreError,
    apply_plan,
    list_active_bookings,
    load_business_hours,
    to_slot,
)
from app.utils.scheduler import find_best_room, free_slots
from app.utils.validation_helpers import to_wall_clock
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/bookings",
    tags=["bookings"],
)

REJECTION_STATUS = {
    Reason.INVALID_INTERVAL: status.HTTP_400_BAD_REQUEST,
    Reason.OUTSIDE_BUSINESS_HOURS: status.HTTP_400_BAD_REQUEST,
    Reason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    Reason.CONCURRENT_CONFLICT: status.HTTP_409_CONFLICT,
}


def _min_duration():
    return timedelta(minutes=settings.min_booking_minutes)


def _conflict_summary(booking) -> dict:
    return {
        "id": booking.id,
        "room_id": booking.room_id,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "status": getattr(booking.status, "value", booking.status),
    }


def _raise_rejection(rejection: Rejection, conflict_status: int = status.HTTP_400_BAD_REQUEST):
    """Turn an engine rejection into an HTTP error; overlaps use ``conflict_status``."""
    status_code = REJECTION_STATUS.get(rejection.reason, conflict_status)
    logger.error(f"Rejected with {rejection.reason.value}: {rejection.message}")
    raise HTTPException(
        status_code=status_code,
        detail={
            "reason": rejection.reason.value,
            "message": rejection.message,
            "conflicts": [_conflict_summary(booking) for booking in rejection.conflicts],
        },
    )


def _make_interval(start_time: datetime, end_time: datetime) -> Interval:
    try:
        return Interval(start_time, end_time)
    except InvalidInterval as exc:
        _raise_rejection(Rejection(Reason.INVALID_INTERVAL, str(exc)))


def _get_room(db: Session, tenant_id: int, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.tenant_id == tenant_id).first()
    if not room or not room.is_active:
        _raise_rejection(Rejection(Reason.NOT_FOUND, f"Room {room_id} not found"))
    return room


def _get_booking(db: Session, tenant_id: int, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id, Booking.tenant_id == tenant_id).first()
    if not booking:
        logger.error(f"Booking not found: {booking_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


def _decide_and_apply(
    db: Session,
    tenant_id: int,
    decide: Callable[[], Decision],
    conflict_status: int,
    **fields,
):
    """
    Run ``decide`` and commit its plan, repeating the whole cycle when the store
    reports a concurrent booking or a transient failure.
    """
    attempts = max(1, settings.placement_attempts)
    for attempt in range(1, attempts + 1):
        decision = decide()
        if isinstance(decision, Rejection):
            _raise_rejection(decision, conflict_status)
        try:
            return decision, apply_plan(db, tenant_id, decision, **fields)
        except ConcurrentConflict as exc:
            if attempt == attempts:
                _raise_rejection(Rejection(Reason.CONCURRENT_CONFLICT, str(exc), tuple(exc.conflicts)))
            logger.warning(f"Concurrent booking detected on attempt {attempt}, retrying: {exc}")
        except StoreError as exc:
            if not exc.transient or attempt == attempts:
                logger.error(f"Booking store failure: {exc}")
                raise HTTPException(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    detail="Booking store unavailable, please try again",
                )
            logger.warning(f"Transient store failure on attempt {attempt}, retrying: {exc}")


@router.post(
    "/",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
    description="Book a room for a time interval inside business hours.",
)
def create_booking(
    booking: BookingCreate,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Create a new booking.

    - **room_id**: ID of the room to book.
    - **start_time** / **end_time**: the half-open interval to book.
    - **customer_name**, **customer_email**, **customer_phone**, **notes**: contact details.
    - **party_size**: (Optional) number of guests, checked against room capacity.

    Returns 409 with the conflicting bookings when the room is taken.
    """
    tenant_id = tenant["tenant_id"]
    logger.debug(f"Creating booking for tenant: {tenant_id}, room_id: {booking.room_id}")
    interval = _make_interval(booking.start_time, booking.end_time)

    def decide():
        room = _get_room(db, tenant_id, booking.room_id)
        if booking.party_size and room.capacity < booking.party_size:
            logger.error(f"Room capacity insufficient: {room.capacity} < {booking.party_size}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Room capacity insufficient")
        return resolve_create(
            list_active_bookings(db, tenant_id, [room.id]),
            tenant_id,
            room.id,
            interval,
            load_business_hours(db, tenant_id),
            _min_duration(),
        )

    _, committed = _decide_and_apply(
        db,
        tenant_id,
        decide,
        status.HTTP_409_CONFLICT,
        **booking.model_dump(include={"customer_name", "customer_email", "customer_phone", "notes"}),
    )
    logger.debug(f"Created booking: {committed[0].id}")
    return committed[0]


@router.get(
    "/",
    response_model=List[BookingResponse],
    summary="List bookings",
    description="Retrieve a paginated, filterable list of the tenant's bookings.",
)
def get_bookings(
    room_id: Optional[int] = None,
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Retrieve the tenant's bookings ordered by start time.

    - **room_id**: only bookings of this room.
    - **status**: only bookings with this status.
    - **start_date** / **end_date**: only bookings starting at or after / ending at or before.
    """
    query = db.query(Booking).filter(Booking.tenant_id == tenant["tenant_id"])
    if room_id is not None:
        query = query.filter(Booking.room_id == room_id)
    if booking_status is not None:
        query = query.filter(Booking.status == booking_status.value)
    if start_date is not None:
        query = query.filter(Booking.start_time >= to_wall_clock(start_date))
    if end_date is not None:
        query = query.filter(Booking.end_time <= to_wall_clock(end_date))
    bookings = query.order_by(Booking.start_time).offset(skip).limit(limit).all()
    logger.debug(f"Retrieved {len(bookings)} bookings")
    return bookings


def _as_utc(value: datetime) -> datetime:
    # updated_at is stored as naive UTC
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@router.get(
    "/updates",
    response_model=BookingUpdatesResponse,
    summary="Booking change feed",
    description="Bookings changed since a point in time, newest change first, for keeping schedules in sync.",
)
def get_booking_updates(
    since: Optional[datetime] = None,
    room_id: Optional[int] = None,
    booking_status: Optional[BookingStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Poll for booking changes.

    - **since**: only bookings updated strictly after this instant (UTC).
    - **room_id**, **status**, **start_date**, **end_date**: same filters as the booking list.
    - **limit**: page size; ``has_more`` is set when the page came back full.

    ``latest_update`` is the newest ``updated_at`` returned, to pass as the next ``since``.
    """
    query = db.query(Booking).filter(Booking.tenant_id == tenant["tenant_id"])
    if since is not None:
        query = query.filter(Booking.updated_at > _as_utc(since))
    if room_id is not None:
        query = query.filter(Booking.room_id == room_id)
    if booking_status is not None:
        query = query.filter(Booking.status == booking_status.value)
    if start_date is not None:
        query = query.filter(Booking.start_time >= to_wall_clock(start_date))
    if end_date is not None:
        query = query.filter(Booking.end_time <= to_wall_clock(end_date))
    bookings = query.order_by(Booking.updated_at.desc(), Booking.id.desc()).limit(limit).all()

    if bookings:
        latest_update = bookings[0].updated_at
    else:
        latest_update = _as_utc(since) if since is not None else datetime.utcnow()
    logger.debug(f"Found {len(bookings)} changed bookings since {since}")
    return {
        "bookings": bookings,
        "latest_update": latest_update,
        "count": len(bookings),
        "has_more": len(bookings) == limit,
    }


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    summary="Check availability",
    description="Report whether an interval is free in a room and inside business hours.",
)
def check_availability(
    room_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_booking_id: Optional[int] = None,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    tenant_id = tenant["tenant_id"]
    interval = _make_interval(to_wall_clock(start_time), to_wall_clock(end_time))
    _get_room(db, tenant_id, room_id)
    conflicts = check_conflict(
        list_active_bookings(db, tenant_id, [room_id]), tenant_id, room_id, interval, exclude_booking_id
    )
    within_hours = is_within_business_hours(interval, load_business_hours(db, tenant_id))
    return {
        "available": not conflicts and within_hours,
        "within_business_hours": within_hours,
        "conflicts": conflicts,
    }


@router.get(
    "/available_slots/",
    response_model=List[SlotResponse],
    summary="List available time slots",
    description="Retrieve free slots for a room inside the business hours opening on a date.",
)
def get_available_slots(
    room_id: int,
    day: date = Query(alias="date"),
    duration: int = settings.slot_minutes,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    List available time slots for a room.

    - **room_id**: ID of the room to check availability for.
    - **date**: Date whose opening window is searched (e.g., 2025-05-04).
    - **duration**: Duration of each slot in minutes.

    Returns a list of available slots with start_time and end_time.
    """
    tenant_id = tenant["tenant_id"]
    logger.debug(f"Fetching available slots for room_id: {room_id}, date: {day}, duration: {duration} minutes")

    if duration <= 0:
        logger.error(f"Invalid duration: {duration}, must be positive")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duration must be positive")

    _get_room(db, tenant_id, room_id)
    window = business_window(day, load_business_hours(db, tenant_id))
    if window is None:
        logger.debug(f"Closed on {day}, no slots")
        return []

    slots = free_slots(
        list_active_bookings(db, tenant_id, [room_id]), tenant_id, room_id, window, timedelta(minutes=duration)
    )
    logger.debug(f"Found {len(slots)} available slots for room_id: {room_id}")
    return [{"start_time": slot.start, "end_time": slot.end} for slot in slots]


@router.get(
    "/best_room",
    response_model=RoomResponse,
    summary="Find the best room",
    description="Find the smallest free room that fits the party for an interval.",
)
def get_best_room(
    start_time: datetime,
    end_time: datetime,
    party_size: int = Query(default=1, ge=1),
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    tenant_id = tenant["tenant_id"]
    interval = _make_interval(to_wall_clock(start_time), to_wall_clock(end_time))
    if not is_within_business_hours(interval, load_business_hours(db, tenant_id)):
        _raise_rejection(Rejection(Reason.OUTSIDE_BUSINESS_HOURS, "Requested time is outside business hours"))

    rooms = db.query(Room).filter(Room.tenant_id == tenant_id, Room.is_active.is_(True)).all()
    bookings = list_active_bookings(db, tenant_id, [room.id for room in rooms])
    room = find_best_room(rooms, bookings, tenant_id, interval, party_size)
    if not room:
        logger.error(f"No suitable room available for {interval.start} to {interval.end}, party of {party_size}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No suitable room available")
    return room


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking by ID",
    description="Retrieve a specific booking by its ID.",
)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    booking = _get_booking(db, tenant["tenant_id"], booking_id)
    logger.debug(f"Retrieved booking: {booking_id}")
    return booking


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Update a booking",
    description="Update contact details, notes or status. Times change through move and resize.",
)
def update_booking(
    booking_id: int,
    booking_update: BookingUpdate,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Update a booking's details.

    Setting a cancelled booking back to a live status re-checks its slot like
    a new booking: 409 if someone else has booked it meanwhile, 400 if it is
    no longer inside business hours.
    """
    tenant_id = tenant["tenant_id"]
    db_booking = _get_booking(db, tenant_id, booking_id)

    update_data = {}
    for key, value in booking_update.model_dump(exclude_unset=True).items():
        if value is None and key in ("customer_name", "status"):
            continue
        update_data[key] = value.value if key == "status" else value

    new_status = booking_update.status
    if (
        new_status is not None
        and new_status is not BookingStatus.CANCELLED
        and db_booking.status == BookingStatus.CANCELLED.value
    ):
        def decide():
            booking = _get_booking(db, tenant_id, booking_id)
            _get_room(db, tenant_id, booking.room_id)
            return resolve_reactivation(
                list_active_bookings(db, tenant_id, [booking.room_id]),
                tenant_id,
                to_slot(booking),
                load_business_hours(db, tenant_id),
            )

        _, committed = _decide_and_apply(db, tenant_id, decide, status.HTTP_409_CONFLICT, **update_data)
        logger.debug(f"Reactivated booking: {booking_id}")
        return committed[0]

    for key, value in update_data.items():
        setattr(db_booking, key, value)
    db.commit()
    db.refresh(db_booking)
    logger.debug(f"Updated booking: {booking_id}")
    return db_booking


@router.put(
    "/{booking_id}/move",
    response_model=PlacementResponse,
    summary="Move a booking",
    description="Move a booking to another room and time; dropping it onto exactly one booking swaps the two.",
)
def move_booking(
    booking_id: int,
    move: BookingMove,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Move a booking, as a drag and drop on the schedule does.

    - **room_id**, **start_time**, **end_time**: where the booking is dropped.

    Returns ``type: move`` with the moved booking, or ``type: swap`` with both
    bookings when the drop landed on exactly one other booking. Ambiguous drops
    and drops outside business hours return 400 with a ``reason``.
    """
    tenant_id = tenant["tenant_id"]
    logger.debug(f"Moving booking {booking_id} to room {move.room_id}, {move.start_time} to {move.end_time}")
    target_interval = _make_interval(move.start_time, move.end_time)

    def decide():
        moving = _get_booking(db, tenant_id, booking_id)
        if moving.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancelled bookings cannot be moved")
        _get_room(db, tenant_id, move.room_id)
        return resolve_placement(
            list_active_bookings(db, tenant_id, {moving.room_id, move.room_id}),
            tenant_id,
            to_slot(moving),
            move.room_id,
            target_interval,
            load_business_hours(db, tenant_id),
        )

    plan, committed = _decide_and_apply(db, tenant_id, decide, status.HTTP_400_BAD_REQUEST)
    logger.debug(f"Applied {plan.kind.value} for booking {booking_id}")
    return {"type": plan.kind.value, "bookings": committed}


@router.put(
    "/{booking_id}/resize",
    response_model=PlacementResponse,
    summary="Resize a booking",
    description="Move the start or end edge of a booking, keeping the other edge and the room.",
)
def resize_booking(
    booking_id: int,
    resize: BookingResize,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    tenant_id = tenant["tenant_id"]
    logger.debug(f"Resizing {resize.edge.value} of booking {booking_id} to {resize.new_boundary}")

    def decide():
        booking = _get_booking(db, tenant_id, booking_id)
        if booking.status == BookingStatus.CANCELLED.value:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cancelled bookings cannot be resized")
        return resolve_resize(
            list_active_bookings(db, tenant_id, [booking.room_id]),
            tenant_id,
            to_slot(booking),
            resize.edge,
            resize.new_boundary,
            load_business_hours(db, tenant_id),
            _min_duration(),
        )

    plan, committed = _decide_and_apply(db, tenant_id, decide, status.HTTP_400_BAD_REQUEST)
    return {"type": plan.kind.value, "bookings": committed}


@router.put(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description="Cancel a booking, freeing its slot. The booking itself is kept.",
)
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    db_booking = _get_booking(db, tenant["tenant_id"], booking_id)
    if db_booking.status == BookingStatus.CANCELLED.value:
        logger.error(f"Booking already cancelled: {booking_id}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Booking is already cancelled")

    db_booking.status = BookingStatus.CANCELLED.value
    db.commit()
    db.refresh(db_booking)
    logger.debug(f"Cancelled booking: {booking_id}")
    return db_booking


@router.delete(
    "/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a booking",
    description="Permanently delete a booking. Prefer cancelling.",
)
def delete_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    db_booking = _get_booking(db, tenant["tenant_id"], booking_id)
    db.delete(db_booking)
    db.commit()
    logger.debug(f"Deleted booking: {booking_id}")
    return None
