from garge.database import Base
from .switch import Switch, SwitchData
from .sensor import Sensor, SensorData
from .discovery import DiscoveredDevice
from .automation import AutomationRule, AutomationCondition
from .role import Role, UserRole
from .electricity import ElectricityPrice

__all__ = [
    "Base",
    "Switch",
    "SwitchData",
    "Sensor",
    "SensorData",
    "DiscoveredDevice",
    "AutomationRule",
    "AutomationCondition",
    "Role",
    "UserRole",
    "ElectricityPrice"
]
