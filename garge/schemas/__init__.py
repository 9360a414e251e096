from .automation import (
    AutomationRuleCreate,
    AutomationRuleUpdate,
    AutomationRuleResponse,
    ValidationResult,
    DispatchResult,
)
from .switch import SwitchResponse, SwitchDataResponse
from .sensor import SensorResponse, SensorDataResponse
from .discovery import DiscoveredDeviceResponse

__all__ = [
    "AutomationRuleCreate",
    "AutomationRuleUpdate",
    "AutomationRuleResponse",
    "ValidationResult",
    "DispatchResult",
    "SwitchResponse",
    "SwitchDataResponse",
    "SensorResponse",
    "SensorDataResponse",
    "DiscoveredDeviceResponse"
]
