from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from garge.database import Base

class DiscoveredDevice(Base):
    __tablename__ = "discovered_devices"
    __table_args__ = (
        UniqueConstraint("discovered_by", "target", "type", name="uq_discovered_device"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    discovered_by = Column(String, nullable=False, index=True)  # sensor parent_name
    target = Column(String, nullable=False, index=True)  # device name
    type = Column(String, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)
