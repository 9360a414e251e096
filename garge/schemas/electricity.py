from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import Any, Optional

class ElectricityPricePayload(BaseModel):
    """Structured price reading, e.g. {"price": 0.42} or {"value": 0.42}"""
    price: Optional[float] = None
    value: Optional[float] = None

class ElectricityPriceCreate(BaseModel):
    value: str
    area: Optional[str] = None
    timestamp: Optional[datetime] = None

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

class ElectricityPriceResponse(BaseModel):
    id: int
    value: str
    area: Optional[str] = None
    timestamp: datetime
    
    class Config:
        from_attributes = True
