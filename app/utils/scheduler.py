from datetime import timedelta
from typing import List, Sequence
from app.utils.availability import Interval, check_conflict


def find_best_room(rooms: Sequence, bookings: Sequence, tenant_id: int, interval: Interval, party_size: int = 1):
    """
    Find the smallest active room that fits the party and is free for the whole interval.
    """
    optimal_room = None
    min_occupancy = float('inf')

    for room in rooms:
        if room.tenant_id != tenant_id or not room.is_active or room.capacity < party_size:
            continue
        if check_conflict(bookings, tenant_id, room.id, interval):
            continue
        if room.capacity < min_occupancy:
            optimal_room = room
            min_occupancy = room.capacity

    return optimal_room


def free_slots(bookings: Sequence, tenant_id: int, room_id: int, window: Interval, slot_length: timedelta) -> List[Interval]:
    """
    Split ``window`` into back-to-back slots of ``slot_length`` that do not overlap a live booking.
    """
    if slot_length <= timedelta(0):
        raise ValueError("Slot length must be positive")

    busy = sorted(check_conflict(bookings, tenant_id, room_id, window), key=lambda booking: booking.start_time)

    slots = []
    current_time = window.start
    for booking in busy:
        while current_time + slot_length <= booking.start_time:
            slots.append(Interval(current_time, current_time + slot_length))
            current_time += slot_length
        current_time = max(current_time, booking.end_time)

    while current_time + slot_length <= window.end:
        slots.append(Interval(current_time, current_time + slot_length))
        current_time += slot_length

    return slots
