from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from garge.models.automation import AutomationRule, ELECTRICITY_PRICE_SENSOR_ID
from garge.models.electricity import ElectricityPrice
from garge.models.sensor import SensorData

def get_latest_reading(db: Session, sensor_id: int) -> Optional[SensorData]:
    return (
        db.query(SensorData)
        .filter(SensorData.sensor_id == sensor_id)
        .order_by(SensorData.timestamp.desc(), SensorData.id.desc())
        .first()
    )

def get_latest_electricity_price(db: Session) -> Optional[ElectricityPrice]:
    return (
        db.query(ElectricityPrice)
        .order_by(ElectricityPrice.timestamp.desc(), ElectricityPrice.id.desc())
        .first()
    )

def collect_readings(db: Session, rule: AutomationRule, overrides: Optional[Dict[int, Any]] = None) -> Dict[int, Any]:
    """Latest reading for every sensor a rule references, keyed by sensor id.

    `overrides` carries readings already in hand (typically the one that
    triggered the evaluation) and wins over the store. Sensors with no
    reading are left out of the result.
    """
    overrides = overrides or {}
    readings: Dict[int, Any] = {}

    for condition in rule.conditions:
        sensor_id = condition.sensor_id
        if sensor_id in readings:
            continue
        if sensor_id in overrides:
            readings[sensor_id] = overrides[sensor_id]
            continue

        if sensor_id == ELECTRICITY_PRICE_SENSOR_ID:
            latest = get_latest_electricity_price(db)
        else:
            latest = get_latest_reading(db, sensor_id)

        if latest is not None:
            readings[sensor_id] = latest

    return readings
