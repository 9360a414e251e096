from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Any, Optional

class SensorCreate(BaseModel):
    name: str
    type: str
    parent_name: Optional[str] = None

class SensorResponse(BaseModel):
    id: int
    name: str
    type: str
    role: str
    default_name: str
    parent_name: str
    
    class Config:
        from_attributes = True

class SensorDataCreate(BaseModel):
    value: str
    timestamp: Optional[datetime] = None

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        # numeric payloads are stored as their raw text
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

class SensorDataResponse(BaseModel):
    id: int
    sensor_id: int
    value: str
    timestamp: datetime
    
    class Config:
        from_attributes = True
