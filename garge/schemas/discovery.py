from pydantic import BaseModel
from datetime import datetime
from typing import Optional

class DiscoveredDeviceCreate(BaseModel):
    discovered_by: str
    target: str
    type: str
    timestamp: Optional[datetime] = None

class DiscoveredDeviceResponse(BaseModel):
    id: int
    discovered_by: str
    target: str
    type: str
    timestamp: datetime
    
    class Config:
        from_attributes = True
