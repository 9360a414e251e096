"""
Principal resolution. Authentication happens upstream: the gateway in front of
this API verifies the caller's token and forwards the user id in `X-User`.
"""
from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional, Set

from garge.database import get_db
from garge.services.roles import get_user_roles

def get_current_user(x_user: Optional[str] = Header(None)) -> str:
    if not x_user or not x_user.strip():
        raise HTTPException(status_code=401, detail="Missing X-User header")
    return x_user.strip()

def get_current_roles(user_id: str = Depends(get_current_user), db: Session = Depends(get_db)) -> Set[str]:
    return get_user_roles(db, user_id)
