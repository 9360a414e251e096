from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Set
import logging

from garge.database import get_db
from garge.schemas.discovery import DiscoveredDeviceCreate, DiscoveredDeviceResponse
from garge.security import get_current_roles
from garge.services.access import AccessModel
from garge.services.discovery import DiscoveryConflictError, register_discovered_device

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/mqtt", tags=["mqtt"])

@router.post("/discovered-devices", status_code=201)
async def post_discovered_device(
    dto: DiscoveredDeviceCreate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Record that `discovered_by` has seen `target` (MQTT admins, i.e. the broker bridge)"""
    if not AccessModel(db).is_admin(roles, "mqtt"):
        logger.warning("PostDiscoveredDevice forbidden")
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        device = register_discovered_device(db, dto.discovered_by, dto.target, dto.type, dto.timestamp)
    except DiscoveryConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"id": device.id}

@router.get("/discovered-devices", response_model=List[DiscoveredDeviceResponse])
async def list_discovered_devices(db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Discovery edges coming from gateways the caller owns a sensor of"""
    return AccessModel(db).visible_discovered_devices(roles)
