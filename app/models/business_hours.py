from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Time, UniqueConstraint
from app.db import Base


class BusinessHours(Base):
    """Opening window of a tenant for one weekday (0 = Sunday)."""

    __tablename__ = "business_hours"
    __table_args__ = (
        UniqueConstraint("tenant_id", "day_of_week", name="uq_business_hours_tenant_day"),
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_business_hours_day"),
    )

    id = Column(Integer, primary_key=True, index=True)
    tenant_id = Column(Integer, index=True, nullable=False)
    day_of_week = Column(Integer, nullable=False)
    open_time = Column(Time, nullable=True)
    close_time = Column(Time, nullable=True)
    is_closed = Column(Boolean, nullable=False, default=False)
