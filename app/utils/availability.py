"""
Booking availability decisions.

Everything here is pure: callers load bookings and business hours first and
pass snapshots in, so nothing touches the database or the clock. Decisions
come back as values (``PlacementPlan`` or ``Rejection``) rather than
exceptions, so callers can branch on ``Rejection.reason``.

Intervals are half-open ``[start, end)``: a booking ending at 18:00 and one
starting at 18:00 in the same room do not conflict.
"""
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import List, Mapping, Optional, Sequence, Tuple, Union

CANCELLED = "cancelled"


class InvalidInterval(ValueError):
    """Raised when an interval does not end after it starts."""


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidInterval(
                f"End time {self.end.isoformat()} must be after start time {self.start.isoformat()}"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "Interval") -> bool:
        return other.start >= self.start and other.end <= self.end


@dataclass(frozen=True)
class BookingSlot:
    """Snapshot of a stored booking.

    The engine reads bookings by attribute only, so ORM rows work as well.
    """

    id: Optional[int]
    tenant_id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    status: str = "confirmed"


@dataclass(frozen=True)
class DayHours:
    """Opening window of one weekday. ``close_time <= open_time`` runs past midnight."""

    day_of_week: int
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False

    @property
    def is_overnight(self) -> bool:
        return self.close_time <= self.open_time

    def window_for(self, day: date) -> Optional[Interval]:
        if self.is_closed or self.open_time is None or self.close_time is None:
            return None
        start = datetime.combine(day, self.open_time)
        end = datetime.combine(day, self.close_time)
        if self.is_overnight:
            end += timedelta(days=1)
        return Interval(start, end)


HoursByWeekday = Mapping[int, Optional[DayHours]]


class Reason(str, enum.Enum):
    INVALID_INTERVAL = "INVALID_INTERVAL"
    OCCUPIED = "OCCUPIED"
    MULTIPLE_CONFLICTS = "MULTIPLE_CONFLICTS"
    OUTSIDE_BUSINESS_HOURS = "OUTSIDE_BUSINESS_HOURS"
    CONCURRENT_CONFLICT = "CONCURRENT_CONFLICT"
    NOT_FOUND = "NOT_FOUND"


class PlanKind(str, enum.Enum):
    CREATE = "create"
    MOVE = "move"
    SWAP = "swap"
    RESIZE = "resize"
    REACTIVATE = "reactivate"


class ResizeEdge(str, enum.Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class Placement:
    """Where one booking ends up. ``booking_id`` is None for a booking not yet stored."""

    booking_id: Optional[int]
    room_id: int
    interval: Interval


@dataclass(frozen=True)
class PlacementPlan:
    kind: PlanKind
    placements: Tuple[Placement, ...]

    def placement_for(self, booking_id: Optional[int]) -> Optional[Placement]:
        for placement in self.placements:
            if placement.booking_id == booking_id:
                return placement
        return None


@dataclass(frozen=True)
class Rejection:
    reason: Reason
    message: str
    conflicts: Tuple = ()


Decision = Union[PlacementPlan, Rejection]


def day_of_week(day: date) -> int:
    """Weekday number with 0 = Sunday, as business hours are stored."""
    return (day.weekday() + 1) % 7


def is_cancelled(booking) -> bool:
    return getattr(booking.status, "value", booking.status) == CANCELLED


def check_conflict(
    bookings: Sequence,
    tenant_id: int,
    room_id: int,
    interval: Interval,
    exclude_booking_id: Optional[int] = None,
) -> List:
    """Return the live bookings of ``room_id`` that overlap ``interval``."""
    return [
        booking
        for booking in bookings
        if booking.tenant_id == tenant_id
        and booking.room_id == room_id
        and (exclude_booking_id is None or booking.id != exclude_booking_id)
        and not is_cancelled(booking)
        and booking.start_time < interval.end
        and booking.end_time > interval.start
    ]


def conflict_rejection(conflicts: Sequence) -> Rejection:
    if len(conflicts) == 1:
        return Rejection(Reason.OCCUPIED, "Room is already booked for this time slot", tuple(conflicts))
    return Rejection(
        Reason.MULTIPLE_CONFLICTS,
        f"Time slot overlaps {len(conflicts)} existing bookings",
        tuple(conflicts),
    )


def business_window(day: date, hours: HoursByWeekday) -> Optional[Interval]:
    """Opening window that starts on ``day``.

    Returns None when the venue is closed that day and the whole calendar day
    when no hours are configured for it.
    """
    record = hours.get(day_of_week(day))
    if record is None:
        start = datetime.combine(day, time.min)
        return Interval(start, start + timedelta(days=1))
    return record.window_for(day)


def is_within_business_hours(interval: Interval, hours: HoursByWeekday) -> bool:
    """Whether ``interval`` lies entirely inside one opening window.

    The window opening on the interval's start day is tried first; after
    midnight the previous day's overnight window may still be open. A day
    without hours is open until midnight; an interval running past it is
    only accepted when every day it touches is unrestricted too.
    """
    day = interval.start.date()
    record = hours.get(day_of_week(day))
    if record is None:
        last_day = (interval.end - timedelta(microseconds=1)).date()
        touched = (day + timedelta(days=offset) for offset in range((last_day - day).days + 1))
        return all(hours.get(day_of_week(other)) is None for other in touched)

    window = record.window_for(day)
    if window is not None and window.contains(interval):
        return True

    previous_day = day - timedelta(days=1)
    previous = hours.get(day_of_week(previous_day))
    if previous is None or previous.is_closed or previous.open_time is None or previous.close_time is None:
        return False
    if not previous.is_overnight:
        return False
    return previous.window_for(previous_day).contains(interval)


def _outside_hours(plan: PlacementPlan, hours: HoursByWeekday) -> Optional[Rejection]:
    for placement in plan.placements:
        if not is_within_business_hours(placement.interval, hours):
            return Rejection(
                Reason.OUTSIDE_BUSINESS_HOURS,
                f"{placement.interval.start.isoformat()} to {placement.interval.end.isoformat()} "
                "is outside business hours",
            )
    return None


def _too_short(interval: Interval, min_duration: Optional[timedelta]) -> Optional[Rejection]:
    if min_duration is not None and interval.duration < min_duration:
        minutes = int(min_duration.total_seconds() // 60)
        return Rejection(Reason.INVALID_INTERVAL, f"Bookings must last at least {minutes} minutes")
    return None


def resolve_create(
    bookings: Sequence,
    tenant_id: int,
    room_id: int,
    interval: Interval,
    hours: HoursByWeekday,
    min_duration: Optional[timedelta] = None,
) -> Decision:
    """Decide whether a new booking may take ``interval`` in ``room_id``.

    A create never displaces anyone, so a single conflict is ``OCCUPIED``.
    """
    rejection = _too_short(interval, min_duration)
    if rejection:
        return rejection

    conflicts = check_conflict(bookings, tenant_id, room_id, interval)
    if conflicts:
        return conflict_rejection(conflicts)

    plan = PlacementPlan(PlanKind.CREATE, (Placement(None, room_id, interval),))
    return _outside_hours(plan, hours) or plan


def _swap_collisions(bookings: Sequence, tenant_id: int, moving, other, plan: PlacementPlan) -> List:
    moved = plan.placement_for(moving.id)
    displaced = plan.placement_for(other.id)
    collisions = [
        booking
        for booking in check_conflict(bookings, tenant_id, displaced.room_id, displaced.interval, moving.id)
        if booking.id != other.id
    ]
    if moved.room_id == displaced.room_id and moved.interval.overlaps(displaced.interval):
        collisions.append(moving)
    return collisions


def resolve_placement(
    bookings: Sequence,
    tenant_id: int,
    moving,
    target_room_id: int,
    target_interval: Interval,
    hours: HoursByWeekday,
) -> Decision:
    """Decide what dropping ``moving`` onto ``target_room_id``/``target_interval`` does.

    - no conflict: a move of ``moving`` alone.
    - exactly one conflicting booking: a swap. The other booking takes the
      moving booking's original room and start time and keeps its own
      duration.
    - several conflicts: rejected, the drop target is ambiguous.

    Every resulting interval must sit inside business hours, and a swap must
    not push the displaced booking onto a third booking.
    """
    conflicts = check_conflict(bookings, tenant_id, target_room_id, target_interval, moving.id)
    if len(conflicts) > 1:
        return Rejection(
            Reason.MULTIPLE_CONFLICTS,
            f"Drop target overlaps {len(conflicts)} bookings",
            tuple(conflicts),
        )

    moved = Placement(moving.id, target_room_id, target_interval)
    if not conflicts:
        plan = PlacementPlan(PlanKind.MOVE, (moved,))
        return _outside_hours(plan, hours) or plan

    other = conflicts[0]
    displaced = Placement(
        other.id,
        moving.room_id,
        Interval(moving.start_time, moving.start_time + (other.end_time - other.start_time)),
    )
    plan = PlacementPlan(PlanKind.SWAP, (moved, displaced))
    rejection = _outside_hours(plan, hours)
    if rejection:
        return rejection

    collisions = _swap_collisions(bookings, tenant_id, moving, other, plan)
    if collisions:
        return Rejection(
            Reason.OCCUPIED,
            f"Booking {other.id} cannot take the vacated slot",
            tuple(collisions),
        )
    return plan


def resolve_resize(
    bookings: Sequence,
    tenant_id: int,
    booking,
    edge: Union[ResizeEdge, str],
    new_boundary: datetime,
    hours: HoursByWeekday,
    min_duration: Optional[timedelta] = None,
) -> Decision:
    """Move one edge of ``booking`` to ``new_boundary``; the other edge stays put.

    A resize never changes room, so any overlap is a hard reject.
    """
    edge = ResizeEdge(edge)
    if edge is ResizeEdge.START:
        start, end = new_boundary, booking.end_time
    else:
        start, end = booking.start_time, new_boundary

    try:
        interval = Interval(start, end)
    except InvalidInterval as exc:
        return Rejection(Reason.INVALID_INTERVAL, str(exc))

    rejection = _too_short(interval, min_duration)
    if rejection:
        return rejection

    conflicts = check_conflict(bookings, tenant_id, booking.room_id, interval, booking.id)
    if conflicts:
        return conflict_rejection(conflicts)

    plan = PlacementPlan(PlanKind.RESIZE, (Placement(booking.id, booking.room_id, interval),))
    return _outside_hours(plan, hours) or plan


def resolve_reactivation(bookings: Sequence, tenant_id: int, booking, hours: HoursByWeekday) -> Decision:
    """Bring a cancelled ``booking`` back into its original room and slot.

    The slot has to be free again and still inside business hours, exactly
    as if it were booked anew.
    """
    interval = Interval(booking.start_time, booking.end_time)
    conflicts = check_conflict(bookings, tenant_id, booking.room_id, interval, booking.id)
    if conflicts:
        return conflict_rejection(conflicts)

    plan = PlacementPlan(PlanKind.REACTIVATE, (Placement(booking.id, booking.room_id, interval),))
    return _outside_hours(plan, hours) or plan
