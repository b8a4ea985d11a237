from datetime import time
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class BusinessHoursDay(BaseModel):
    """One weekday; a close time at or before the open time runs past midnight."""

    day_of_week: int = Field(ge=0, le=6, description="0 = Sunday")
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False

    @model_validator(mode="after")
    def check_window(self):
        if not self.is_closed and (self.open_time is None or self.close_time is None):
            raise ValueError("open_time and close_time are required when is_closed is false")
        return self


class BusinessHoursUpdate(BaseModel):
    hours: List[BusinessHoursDay]

    @field_validator("hours")
    @classmethod
    def check_unique_days(cls, value):
        days = [day.day_of_week for day in value]
        if len(days) != len(set(days)):
            raise ValueError("Each day_of_week may appear only once")
        return value


class BusinessHoursResponse(BusinessHoursDay):
    id: int
    tenant_id: int

    model_config = ConfigDict(from_attributes=True)
