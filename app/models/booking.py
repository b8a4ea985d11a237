import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, Numeric, Text
from sqlalchemy.orm import relationship
from app.db import Base


class BookingStatus(str, enum.Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_tenant_room_start", "tenant_id", "room_id", "start_time"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, nullable=False)
    room_id = Column(Integer, ForeignKey("rooms.id"), nullable=False)
    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value)
    notes = Column(Text, nullable=True)
    total_price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    room = relationship("Room", back_populates="bookings")

    @property
    def room_name(self):
        return self.room.name if self.room else None

    @property
    def room_capacity(self):
        return self.room.capacity if self.room else None

    @property
    def room_category(self):
        return self.room.category if self.room else None

    @property
    def price_per_hour(self):
        return self.room.price_per_hour if self.room else None
