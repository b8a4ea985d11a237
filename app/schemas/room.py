from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class RoomBase(BaseModel):
    name: str = Field(min_length=1)
    capacity: int = Field(ge=1)
    category: str = "Standard"
    description: Optional[str] = None
    price_per_hour: float = Field(default=0, ge=0)
    is_active: bool = True

class RoomCreate(RoomBase):
    pass

class RoomUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    capacity: Optional[int] = Field(default=None, ge=1)
    category: Optional[str] = None
    description: Optional[str] = None
    price_per_hour: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class RoomResponse(RoomBase):
    id: int
    tenant_id: int

    model_config = ConfigDict(from_attributes=True)
