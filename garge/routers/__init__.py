from .health import router as health_router
from .roles import router as roles_router
from .discovery import router as discovery_router
from .electricity import router as electricity_router

__all__ = [
    "health_router",
    "roles_router",
    "discovery_router",
    "electricity_router"
]
