from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from garge.database import Base

# Pseudo-sensor backed by the external electricity price feed
ELECTRICITY_PRICE_SENSOR_TYPE = "electricity_price"
ELECTRICITY_PRICE_SENSOR_ID = -1

class AutomationRule(Base):
    __tablename__ = "automation_rules"
    
    id = Column(Integer, primary_key=True, index=True)
    target_type = Column(String, nullable=False)  # "Switch"
    target_id = Column(Integer, nullable=False, index=True)
    action = Column(String, nullable=False)  # "on" / "off"
    logical_operator = Column(String, nullable=True)  # "AND" / "OR", None means AND
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
    
    conditions = relationship(
        "AutomationCondition",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="AutomationCondition.id",
    )

class AutomationCondition(Base):
    __tablename__ = "automation_conditions"
    
    id = Column(Integer, primary_key=True, index=True)
    automation_rule_id = Column(Integer, ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    sensor_type = Column(String, nullable=False)  # sensor kind or "electricity_price"
    sensor_id = Column(Integer, nullable=False, index=True)  # -1 = electricity price feed
    condition = Column(String, nullable=False)  # "==", ">", "<>", ...
    threshold = Column(Float, nullable=False)
    
    rule = relationship("AutomationRule", back_populates="conditions")
