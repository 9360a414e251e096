from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garge.database import Base

class Switch(Base):
    __tablename__ = "switches"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    type = Column(String(50), nullable=False)  # "relay", "socket", ...
    role = Column(String(50), nullable=False)  # defaults to the switch name
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    data = relationship("SwitchData", back_populates="switch", cascade="all, delete-orphan")

class SwitchData(Base):
    __tablename__ = "switch_data"
    
    id = Column(Integer, primary_key=True, index=True)
    switch_id = Column(Integer, ForeignKey("switches.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String, nullable=False)  # "ON" / "OFF"
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    
    switch = relationship("Switch", back_populates="data")
