from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Set

from garge.database import get_db
from garge.schemas.role import RoleAssign, UserRolesResponse
from garge.security import get_current_roles, get_current_user
from garge.services.access import AccessModel
from garge.services.roles import assign_role, get_user_roles

router = APIRouter(prefix="/api/v1/roles", tags=["roles"])

@router.get("/me", response_model=UserRolesResponse)
async def my_roles(user_id: str = Depends(get_current_user), roles: Set[str] = Depends(get_current_roles)):
    return UserRolesResponse(user_id=user_id, roles=sorted(roles))

@router.post("/assign", response_model=UserRolesResponse)
async def assign(dto: RoleAssign, db: Session = Depends(get_db), roles: Set[str] = Depends(get_current_roles)):
    """Grant a role to a user (admins only)"""
    if not AccessModel(db).is_admin(roles, "role"):
        raise HTTPException(status_code=403, detail="Forbidden")
    assign_role(db, dto.user_id, dto.role)
    return UserRolesResponse(user_id=dto.user_id, roles=sorted(get_user_roles(db, dto.user_id)))
