from pydantic import BaseModel
from datetime import datetime
from typing import Optional

class SwitchCreate(BaseModel):
    name: str
    type: str

class SwitchUpdate(BaseModel):
    name: str
    type: str
    role: Optional[str] = None

class SwitchResponse(BaseModel):
    id: int
    name: str
    type: str
    role: str
    
    class Config:
        from_attributes = True

class SwitchDataCreate(BaseModel):
    value: str  # "ON" / "OFF", case-insensitive

class SwitchDataResponse(BaseModel):
    id: int
    switch_id: int
    value: str
    timestamp: datetime
    
    class Config:
        from_attributes = True
