"""
Persistence side of booking placement.

Reads hand the availability engine plain snapshots; ``apply_plan`` writes a
whole plan in one transaction and re-checks the no-overlap rule before
committing, since another request may have booked the slot after the plan
was decided.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from app.models.booking import Booking, BookingStatus
from app.models.business_hours import BusinessHours
from app.models.room import Room
from app.utils.availability import BookingSlot, DayHours, Interval, PlacementPlan, PlanKind

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class StoreError(Exception):
    """A booking store operation failed; ``transient`` failures are worth retrying."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class ConcurrentConflict(StoreError):
    """Another booking took part of the planned slot between decision and commit."""

    def __init__(self, message: str, conflicts: Iterable = ()):
        super().__init__(message, transient=False)
        self.conflicts = list(conflicts)


def to_slot(booking: Booking) -> BookingSlot:
    return BookingSlot(
        id=booking.id,
        tenant_id=booking.tenant_id,
        room_id=booking.room_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=booking.status,
    )


def to_day_hours(record: BusinessHours) -> DayHours:
    return DayHours(
        day_of_week=record.day_of_week,
        open_time=record.open_time,
        close_time=record.close_time,
        is_closed=record.is_closed,
    )


def list_active_bookings(db: Session, tenant_id: int, room_ids: Iterable[int]) -> List[BookingSlot]:
    """Snapshots of every non-cancelled booking in the given rooms."""
    rows = db.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.room_id.in_(list(room_ids)),
        Booking.status != BookingStatus.CANCELLED.value,
    ).all()
    return [to_slot(row) for row in rows]


def get_hours_for_weekday(db: Session, tenant_id: int, weekday: int) -> Optional[DayHours]:
    record = db.query(BusinessHours).filter(
        BusinessHours.tenant_id == tenant_id,
        BusinessHours.day_of_week == weekday,
    ).first()
    return to_day_hours(record) if record else None


def load_business_hours(db: Session, tenant_id: int) -> Dict[int, Optional[DayHours]]:
    """Hours for all seven weekdays (0 = Sunday); None where nothing is configured."""
    hours = {weekday: None for weekday in range(7)}
    for record in db.query(BusinessHours).filter(BusinessHours.tenant_id == tenant_id).all():
        hours[record.day_of_week] = to_day_hours(record)
    return hours


def booking_price(room: Room, interval: Interval) -> Decimal:
    hours = Decimal(int(interval.duration.total_seconds())) / Decimal(3600)
    return (Decimal(room.price_per_hour or 0) * hours).quantize(CENTS)


TRANSIENT_MARKERS = (
    "database is locked",
    "database is busy",
    "could not connect",
    "connection refused",
    "server closed the connection",
    "lost connection",
)


def _is_transient(exc: SQLAlchemyError) -> bool:
    # only lost connections and lock timeouts; a missing table or bad schema fails the same way twice
    if isinstance(exc, DisconnectionError) or getattr(exc, "connection_invalidated", False):
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in message for marker in TRANSIENT_MARKERS)
    return False


def _write_placements(db: Session, tenant_id: int, plan: PlacementPlan, fields: dict) -> List[Booking]:
    written = []
    for placement in plan.placements:
        room = db.query(Room).filter(Room.id == placement.room_id, Room.tenant_id == tenant_id).first()
        if room is None:
            raise ConcurrentConflict(f"Room {placement.room_id} disappeared before the booking was saved")

        if placement.booking_id is None:
            booking = Booking(tenant_id=tenant_id, status=BookingStatus.CONFIRMED.value)
            db.add(booking)
        else:
            booking = db.query(Booking).filter(
                Booking.id == placement.booking_id,
                Booking.tenant_id == tenant_id,
            ).first()
            # a cancelled booking may only come back through a reactivation plan
            reviving = plan.kind is PlanKind.REACTIVATE
            if booking is None or (booking.status == BookingStatus.CANCELLED.value and not reviving):
                raise ConcurrentConflict(f"Booking {placement.booking_id} changed before the plan was applied")

        for key, value in fields.items():
            setattr(booking, key, value)
        booking.room_id = placement.room_id
        booking.start_time = placement.interval.start
        booking.end_time = placement.interval.end
        booking.total_price = booking_price(room, placement.interval)
        written.append(booking)
    return written


def _overlapping(db: Session, tenant_id: int, booking: Booking) -> List[Booking]:
    return db.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.room_id == booking.room_id,
        Booking.id != booking.id,
        Booking.status != BookingStatus.CANCELLED.value,
        Booking.start_time < booking.end_time,
        Booking.end_time > booking.start_time,
    ).all()


def apply_plan(db: Session, tenant_id: int, plan: PlacementPlan, **fields) -> List[Booking]:
    """
    Persist every placement of ``plan`` atomically and return the stored bookings.

    ``fields`` fill the remaining columns of a booking created by the plan,
    or overwrite columns of the bookings it places.
    Raises ConcurrentConflict when the committed state would contain an
    overlap, StoreError for any other database failure; nothing is written in
    either case.
    """
    try:
        written = _write_placements(db, tenant_id, plan, fields)
        db.flush()
        for booking in written:
            clashes = _overlapping(db, tenant_id, booking)
            if clashes:
                raise ConcurrentConflict(
                    f"Room {booking.room_id} was booked concurrently",
                    [to_slot(clash) for clash in clashes],
                )
        db.commit()
    except StoreError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(f"Applying {plan.kind.value} plan failed: {exc}")
        raise StoreError(str(exc), transient=_is_transient(exc)) from exc

    for booking in written:
        db.refresh(booking)
    logger.debug(f"Applied {plan.kind.value} plan to bookings {[booking.id for booking in written]}")
    return written
