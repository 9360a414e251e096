from sqlalchemy import Column, Integer, String, DateTime
from garge.database import Base

class ElectricityPrice(Base):
    __tablename__ = "electricity_prices"
    
    id = Column(Integer, primary_key=True, index=True)
    value = Column(String, nullable=False)  # "0.42" or {"price": 0.42} / {"value": 0.42}
    area = Column(String, nullable=True)  # price area, e.g. "NO1"
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
