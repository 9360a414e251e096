from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from typing import List, Set
import logging

from garge.database import get_db
from garge.models.switch import Switch, SwitchData
from garge.schemas.switch import (
    SwitchCreate,
    SwitchUpdate,
    SwitchResponse,
    SwitchDataCreate,
    SwitchDataResponse,
)
from garge.security import get_current_roles
from garge.services.access import AccessModel
from garge.services.action_dispatcher import SWITCH_STATES, insert_device_state
from garge.services.devices import DeviceConflictError, create_switch
from garge.services.roles import ensure_role

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/switches", tags=["switches"])

def _get_accessible_switch(db: Session, roles: Set[str], switch: Switch) -> Switch:
    if not switch:
        raise HTTPException(status_code=404, detail="Switch not found!")
    if not AccessModel(db).has_access(roles, switch):
        logger.warning(f"Access to switch {switch.name} forbidden")
        raise HTTPException(status_code=403, detail="Forbidden")
    return switch

def _normalize_state(value: str) -> str:
    state = (value or "").strip().upper()
    if state not in SWITCH_STATES:
        raise HTTPException(status_code=400, detail="The value must be either 'ON' or 'OFF'.")
    return state

@router.get("/", response_model=List[SwitchResponse])
async def list_switches(db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Switches the caller owns, was given via discovery, or all of them for admins"""
    return AccessModel(db).accessible_switches(roles)

@router.get("/{switch_id}", response_model=SwitchResponse)
async def get_switch(switch_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    switch = db.query(Switch).filter(Switch.id == switch_id).first()
    return _get_accessible_switch(db, roles, switch)

@router.post("/", response_model=SwitchResponse, status_code=201)
async def create_new_switch(dto: SwitchCreate, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Create a switch and its role (switch admins only)"""
    if not AccessModel(db).is_admin(roles, "switch"):
        raise HTTPException(status_code=403, detail="Forbidden")
    try:
        return create_switch(db, dto.name, dto.type)
    except DeviceConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

@router.put("/{switch_id}", response_model=SwitchResponse)
async def update_switch(
    switch_id: int,
    dto: SwitchUpdate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    switch = _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.id == switch_id).first())

    clash = db.query(Switch.id).filter(Switch.name == dto.name, Switch.id != switch_id).first()
    if clash:
        raise HTTPException(status_code=409, detail="Switch name already exists!")

    switch.name = dto.name
    switch.type = dto.type
    if dto.role:
        ensure_role(db, dto.role)
        switch.role = dto.role
    db.commit()
    db.refresh(switch)
    return switch

@router.delete("/{switch_id}", status_code=204)
async def delete_switch(switch_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Delete a switch and its state history"""
    switch = _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.id == switch_id).first())
    db.delete(switch)
    db.commit()
    logger.info(f"Switch {switch_id} deleted")

@router.get("/{switch_id}/data", response_model=List[SwitchDataResponse])
async def get_switch_data(switch_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.id == switch_id).first())
    return (
        db.query(SwitchData)
        .filter(SwitchData.switch_id == switch_id)
        .order_by(SwitchData.timestamp.asc(), SwitchData.id.asc())
        .all()
    )

@router.get("/{switch_id}/state", response_model=SwitchDataResponse)
async def get_switch_state(switch_id: int, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Latest recorded state"""
    _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.id == switch_id).first())
    state = (
        db.query(SwitchData)
        .filter(SwitchData.switch_id == switch_id)
        .order_by(SwitchData.timestamp.desc(), SwitchData.id.desc())
        .first()
    )
    if not state:
        raise HTTPException(status_code=404, detail="No data found for this switch!")
    return state

@router.post("/{switch_id}/data", response_model=SwitchDataResponse, status_code=201)
async def create_switch_data(
    switch_id: int,
    dto: SwitchDataCreate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    switch = _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.id == switch_id).first())
    state = insert_device_state(db, switch.id, _normalize_state(dto.value))
    db.commit()
    db.refresh(state)
    return state

@router.post("/name/{switch_name}/data", response_model=SwitchDataResponse, status_code=201)
async def create_switch_data_by_name(
    switch_name: str,
    dto: SwitchDataCreate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    switch = _get_accessible_switch(db, roles, db.query(Switch).filter(Switch.name == switch_name).first())
    state = insert_device_state(db, switch.id, _normalize_state(dto.value))
    db.commit()
    db.refresh(state)
    return state
