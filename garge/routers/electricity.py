from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Set
import logging

from garge.database import get_db, get_utc_datetime, settings
from garge.models.electricity import ElectricityPrice
from garge.schemas.electricity import ElectricityPriceCreate, ElectricityPriceResponse
from garge.security import get_current_roles
from garge.services.access import AccessModel
from garge.services.automation_processing import process_electricity_price
from garge.services.readings import get_latest_electricity_price

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/electricity", tags=["electricity"])

@router.post("/prices", response_model=ElectricityPriceResponse, status_code=201)
async def record_price(
    dto: ElectricityPriceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Store a price reading from the external price feed"""
    if not AccessModel(db).is_admin(roles, "electricity"):
        raise HTTPException(status_code=403, detail="Forbidden")

    price = ElectricityPrice(
        value=dto.value,
        area=dto.area,
        timestamp=dto.timestamp or get_utc_datetime(),
    )
    db.add(price)
    db.commit()
    db.refresh(price)
    logger.info(f"Electricity price recorded: {price.value} ({price.area or 'default area'})")

    if settings.automation_processing_enabled:
        background_tasks.add_task(process_electricity_price, price.value)
    return price

@router.get("/prices/latest", response_model=ElectricityPriceResponse)
async def latest_price(db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    price = get_latest_electricity_price(db)
    if not price:
        raise HTTPException(status_code=404, detail="No electricity price recorded")
    return price
