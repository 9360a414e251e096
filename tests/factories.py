from datetime import datetime, timedelta, timezone

from garge.models import DiscoveredDevice, Sensor, SensorData, Switch
from garge.services.roles import assign_role

BASE_TIME = datetime(2025, 8, 1, 12, 0, tzinfo=timezone.utc)


def add_switch(db, name, switch_id=None, role=None, type="relay"):
    switch = Switch(id=switch_id, name=name, type=type, role=role or name)
    db.add(switch)
    db.commit()
    db.refresh(switch)
    return switch


def add_sensor(db, name, parent_name, role=None, type="temperature", sensor_id=None):
    sensor = Sensor(
        id=sensor_id,
        name=name,
        type=type,
        role=role or name,
        registration_code=f"CODE{name.upper()}"[:10],
        default_name=name,
        parent_name=parent_name,
    )
    db.add(sensor)
    db.commit()
    db.refresh(sensor)
    return sensor


def add_discovery(db, discovered_by, target, type="switch", timestamp=BASE_TIME):
    edge = DiscoveredDevice(discovered_by=discovered_by, target=target, type=type, timestamp=timestamp)
    db.add(edge)
    db.commit()
    db.refresh(edge)
    return edge


def add_reading(db, sensor_id, value, minutes=0):
    reading = SensorData(sensor_id=sensor_id, value=value, timestamp=BASE_TIME + timedelta(minutes=minutes))
    db.add(reading)
    db.commit()
    return reading


def grant(db, user_id, *roles):
    for role in roles:
        assign_role(db, user_id, role)
    return {"X-User": user_id}
