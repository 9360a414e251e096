"""
Switch and sensor provisioning: every device gets a role named after it
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging
import secrets

from garge.models.sensor import Sensor
from garge.models.switch import Switch
from garge.services.roles import ensure_role

logger = logging.getLogger(__name__)

REGISTRATION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REGISTRATION_CODE_LENGTH = 10

class DeviceConflictError(Exception):
    pass

def derive_parent_name(name: str) -> str:
    """Gateway name, i.e. everything before the last underscore"""
    if not name or "_" not in name:
        return name
    return name.rsplit("_", 1)[0]

def derive_default_name(name: str) -> str:
    """garge_ab12_temperature -> Garge ab12 temperature"""
    parts = name.split("_")
    if len(parts) < 2 or not parts[-2] or not parts[-1]:
        return name
    return f"Garge {parts[-2]} {parts[-1]}"

def generate_registration_code(db: Session, length: int = REGISTRATION_CODE_LENGTH) -> str:
    while True:
        code = "".join(secrets.choice(REGISTRATION_CODE_ALPHABET) for _ in range(length))
        if not db.query(Sensor.id).filter(Sensor.registration_code == code).first():
            return code

def _commit_new(db: Session, entity, kind: str):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"{kind} name {entity.name} already exists")
        raise DeviceConflictError(f"{kind} name already exists!")
    db.refresh(entity)
    logger.info(f"{kind} created: Id={entity.id}, Name={entity.name}")
    return entity

def create_switch(db: Session, name: str, type: str) -> Switch:
    if db.query(Switch.id).filter(Switch.name == name).first():
        raise DeviceConflictError("Switch name already exists!")

    ensure_role(db, name)
    switch = Switch(name=name, type=type, role=name)
    db.add(switch)
    return _commit_new(db, switch, "Switch")

def create_sensor(db: Session, name: str, type: str, parent_name: Optional[str] = None) -> Sensor:
    if db.query(Sensor.id).filter(Sensor.name == name).first():
        raise DeviceConflictError("Sensor name already exists!")

    ensure_role(db, name)
    sensor = Sensor(
        name=name,
        type=type,
        role=name,
        registration_code=generate_registration_code(db),
        default_name=derive_default_name(name),
        parent_name=parent_name or derive_parent_name(name),
    )
    db.add(sensor)
    return _commit_new(db, sensor, "Sensor")
