from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garge.database import Base

class Sensor(Base):
    __tablename__ = "sensors"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    type = Column(String(50), nullable=False)  # "temperature", "humidity", ...
    role = Column(String(50), nullable=False)
    registration_code = Column(String, nullable=False)
    default_name = Column(String(50), nullable=False)
    parent_name = Column(String, nullable=False, index=True)  # gateway that owns the sensor
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    data = relationship("SensorData", back_populates="sensor", cascade="all, delete-orphan")

class SensorData(Base):
    __tablename__ = "sensor_data"
    
    id = Column(Integer, primary_key=True, index=True)
    sensor_id = Column(Integer, ForeignKey("sensors.id", ondelete="CASCADE"), nullable=False, index=True)
    value = Column(String, nullable=False)  # raw payload, usually a number
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    
    sensor = relationship("Sensor", back_populates="data")
