from sqlalchemy import create_engine
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Dict, List
from datetime import datetime, timezone
import os
from dotenv import load_dotenv

load_dotenv()

DEFAULT_ADMIN_ROLES: Dict[str, List[str]] = {
    "switch": ["switch_admin", "admin"],
    "sensor": ["sensor_admin", "admin"],
    "automation": ["automation_admin", "admin"],
    "mqtt": ["mqtt_admin", "admin"],
    "product": ["product_admin", "admin"],
    "subscription": ["subscription_admin", "admin"],
    "electricity": ["admin"],
    "role": ["admin"],
}

class Settings(BaseSettings):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./garge.db")
    secret_key: str = os.getenv("SECRET_KEY", "dev-secret-key")

    # Automation is evaluated by an external operator unless enabled here
    automation_processing_enabled: bool = os.getenv("AUTOMATION_PROCESSING_ENABLED", "false").lower() == "true"
    automation_rule_timeout_seconds: float = float(os.getenv("AUTOMATION_RULE_TIMEOUT_SECONDS", "5"))
    electricity_price_tick_seconds: int = int(os.getenv("ELECTRICITY_PRICE_TICK_SECONDS", "300"))
    equality_tolerance: float = float(os.getenv("EQUALITY_TOLERANCE", "0.001"))

    # resource kind -> roles that grant unconditional access (env: ADMIN_ROLES as JSON)
    admin_roles: Dict[str, List[str]] = Field(default_factory=lambda: dict(DEFAULT_ADMIN_ROLES))

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

settings = Settings()

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {}
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_utc_datetime() -> datetime:
    return datetime.now(timezone.utc)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
