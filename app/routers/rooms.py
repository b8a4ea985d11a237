from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List
from app.db import get_db
from app.models.booking import Booking, BookingStatus
from app.models.room import Room
from app.schemas.room import RoomCreate, RoomUpdate, RoomResponse
from app.utils.auth import get_current_tenant
import logging

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/rooms",
    tags=["rooms"],
)


def _get_room(db: Session, tenant_id: int, room_id: int) -> Room:
    room = db.query(Room).filter(Room.id == room_id, Room.tenant_id == tenant_id).first()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def _commit_room(db: Session, db_room: Room):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.error(f"Duplicate room name for tenant {db_room.tenant_id}: {db_room.name}")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A room with this name already exists")
    db.refresh(db_room)


@router.post("/", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
def create_room(room: RoomCreate, db: Session = Depends(get_db), tenant: dict = Depends(get_current_tenant)):
    """
    Create a new karaoke room.
    """
    db_room = Room(tenant_id=tenant["tenant_id"], **room.model_dump())
    db.add(db_room)
    _commit_room(db, db_room)
    return db_room


@router.get("/", response_model=List[RoomResponse])
def get_rooms(
    skip: int = 0,
    limit: int = 100,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    tenant: dict = Depends(get_current_tenant),
):
    """
    Retrieve the tenant's rooms, active ones only unless asked otherwise.
    """
    query = db.query(Room).filter(Room.tenant_id == tenant["tenant_id"])
    if not include_inactive:
        query = query.filter(Room.is_active.is_(True))
    rooms = query.order_by(Room.category, Room.name).offset(skip).limit(limit).all()
    return rooms


@router.get("/{room_id}", response_model=RoomResponse)
def get_room(room_id: int, db: Session = Depends(get_db), tenant: dict = Depends(get_current_tenant)):
    """
    Retrieve a specific room by ID.
    """
    return _get_room(db, tenant["tenant_id"], room_id)


@router.put("/{room_id}", response_model=RoomResponse)
def update_room(room_id: int, room_update: RoomUpdate, db: Session = Depends(get_db), tenant: dict = Depends(get_current_tenant)):
    """
    Update a room's details.
    """
    db_room = _get_room(db, tenant["tenant_id"], room_id)

    update_data = room_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        if value is not None:
            setattr(db_room, key, value)

    _commit_room(db, db_room)
    return db_room


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_room(room_id: int, db: Session = Depends(get_db), tenant: dict = Depends(get_current_tenant)):
    """
    Delete a room. Rooms that still hold live bookings must be deactivated instead.
    """
    db_room = _get_room(db, tenant["tenant_id"], room_id)

    live = db.query(Booking).filter(
        Booking.room_id == room_id,
        Booking.status != BookingStatus.CANCELLED.value,
    ).count()
    if live:
        logger.error(f"Room {room_id} still has {live} live bookings")
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room has bookings")

    db.delete(db_room)
    db.commit()
    return None
