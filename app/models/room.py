from sqlalchemy.orm import relationship
from sqlalchemy import Boolean, Column, Integer, Numeric, String, Text, UniqueConstraint
from app.db import Base


class Room(Base):
    __tablename__ = "rooms"
    __table_args__ = (UniqueConstraint("tenant_id", "name", name="uq_rooms_tenant_name"),)

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, index=True, nullable=False)
    name = Column(String, nullable=False)
    capacity = Column(Integer, nullable=False)
    category = Column(String, nullable=False, default="Standard")
    description = Column(Text, nullable=True)
    price_per_hour = Column(Numeric(10, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    bookings = relationship(
        "Booking", back_populates="room", cascade="all, delete-orphan"
    )
