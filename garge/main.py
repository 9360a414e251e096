# garge/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from garge.database import engine, settings
from garge.models import Base
from garge.init_db import init_database
from garge.services.scheduler import start_scheduler, stop_scheduler

# Routers
from garge.routers import automation, switches, sensors
from garge.routers import health_router, roles_router, discovery_router, electricity_router


def create_app() -> FastAPI:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Garge API",
        description="API for home automation: sensors, switches, discovery-based access and automation rules",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    # Mount router
    app.include_router(health_router)            # /healthz, /api/v1/health
    app.include_router(roles_router)             # /api/v1/roles/...
    app.include_router(switches.router)          # /api/v1/switches/...
    app.include_router(sensors.router)           # /api/v1/sensors/...
    app.include_router(discovery_router)         # /api/v1/mqtt/discovered-devices
    app.include_router(electricity_router)       # /api/v1/electricity/...
    app.include_router(automation.router)        # /api/v1/automation/...

    # Startup: tables, seed roles, scheduler (all idempotent)
    @app.on_event("startup")
    async def _startup():
        Base.metadata.create_all(bind=engine)
        init_database()
        start_scheduler()

    @app.on_event("shutdown")
    async def _shutdown():
        stop_scheduler()

    return app


app = create_app()
