from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional
from app.models.booking import BookingStatus
from app.utils.availability import ResizeEdge
from app.utils.validation_helpers import to_wall_clock


class BookingBase(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None


class BookingCreate(BookingBase):
    room_id: int
    start_time: datetime
    end_time: datetime
    party_size: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value):
        return to_wall_clock(value)


class BookingUpdate(BaseModel):
    customer_name: Optional[str] = Field(default=None, min_length=1)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[BookingStatus] = None


class BookingMove(BaseModel):
    room_id: int
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value):
        return to_wall_clock(value)


class BookingResize(BaseModel):
    edge: ResizeEdge
    new_boundary: datetime

    @field_validator("new_boundary")
    @classmethod
    def check_boundary(cls, value):
        return to_wall_clock(value)


class BookingResponse(BaseModel):
    id: int
    tenant_id: int
    room_id: int
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    total_price: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class BookingChange(BookingResponse):
    """A booking as reported by the change feed, with its room summarised."""

    room_name: Optional[str] = None
    room_capacity: Optional[int] = None
    room_category: Optional[str] = None
    price_per_hour: Optional[float] = None


class BookingUpdatesResponse(BaseModel):
    bookings: List[BookingChange]
    latest_update: datetime
    count: int
    has_more: bool


class PlacementResponse(BaseModel):
    type: str
    bookings: List[BookingResponse]


class ConflictResponse(BaseModel):
    id: int
    room_id: int
    start_time: datetime
    end_time: datetime
    status: BookingStatus

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    available: bool
    within_business_hours: bool
    conflicts: List[ConflictResponse]


class SlotResponse(BaseModel):
    start_time: datetime
    end_time: datetime
