from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Set
import logging

from garge.database import get_db, get_utc_datetime, settings
from garge.models.sensor import Sensor, SensorData
from garge.schemas.sensor import SensorCreate, SensorResponse, SensorDataCreate, SensorDataResponse
from garge.security import get_current_roles
from garge.services.access import AccessModel
from garge.services.automation_processing import process_sensor_reading
from garge.services.devices import DeviceConflictError, create_sensor
from garge.services.readings import get_latest_reading

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sensors", tags=["sensors"])

def _get_accessible_sensor(db: Session, roles: Set[str], sensor: Sensor) -> Sensor:
    if not sensor:
        raise HTTPException(status_code=404, detail="Sensor not found!")
    if not AccessModel(db).has_access(roles, sensor):
        logger.warning(f"Access to sensor {sensor.name} forbidden")
        raise HTTPException(status_code=403, detail="Forbidden")
    return sensor

def _store_reading(db: Session, sensor: Sensor, dto: SensorDataCreate, background_tasks: BackgroundTasks) -> SensorData:
    reading = SensorData(
        sensor_id=sensor.id,
        value=dto.value,
        timestamp=dto.timestamp or get_utc_datetime(),
    )
    db.add(reading)
    db.commit()
    db.refresh(reading)
    logger.info(f"Sensor data created: Id={reading.id}, SensorId={sensor.id}, Value={reading.value}")

    # runs after the response is sent
    if settings.automation_processing_enabled:
        background_tasks.add_task(process_sensor_reading, sensor.id, reading.value)
    return reading

@router.get("/", response_model=List[SensorResponse])
async def list_sensors(db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    return AccessModel(db).accessible_sensors(roles)

@router.get("/{sensor_id}", response_model=SensorResponse)
async def get_sensor(sensor_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    return _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.id == sensor_id).first())

@router.post("/", response_model=SensorResponse, status_code=201)
async def create_new_sensor(dto: SensorCreate, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Create a sensor and its role (sensor admins only)"""
    if not AccessModel(db).is_admin(roles, "sensor"):
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        return create_sensor(db, dto.name, dto.type, dto.parent_name)
    except DeviceConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.delete("/{sensor_id}", status_code=204)
async def delete_sensor(sensor_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Delete a sensor and all its readings"""
    sensor = _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.id == sensor_id).first())
    db.delete(sensor)
    db.commit()
    logger.info(f"Sensor {sensor_id} deleted")

@router.get("/{sensor_id}/data", response_model=List[SensorDataResponse])
async def get_sensor_data(sensor_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.id == sensor_id).first())
    return (
        db.query(SensorData)
        .filter(SensorData.sensor_id == sensor_id)
        .order_by(SensorData.timestamp.asc(), SensorData.id.asc())
        .all()
    )

@router.get("/{sensor_id}/latest", response_model=SensorDataResponse)
async def get_sensor_latest(sensor_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.id == sensor_id).first())
    reading = get_latest_reading(db, sensor_id)
    if not reading:
        raise HTTPException(status_code=404, detail="No data found for this sensor!")
    return reading

@router.post("/{sensor_id}/data", response_model=SensorDataResponse, status_code=201)
async def create_sensor_data(
    sensor_id: int,
    dto: SensorDataCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    sensor = _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.id == sensor_id).first())
    return _store_reading(db, sensor, dto, background_tasks)

@router.post("/name/{sensor_name}/data", response_model=SensorDataResponse, status_code=201)
async def create_sensor_data_by_name(
    sensor_name: str,
    dto: SensorDataCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    sensor = _get_accessible_sensor(db, roles, db.query(Sensor).filter(Sensor.name == sensor_name).first())
    return _store_reading(db, sensor, dto, background_tasks)
