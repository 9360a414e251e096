"""
Role lookup and provisioning
"""
from sqlalchemy.orm import Session
from typing import Set
import logging

from garge.models.role import Role, UserRole

logger = logging.getLogger(__name__)

def get_user_roles(db: Session, user_id: str) -> Set[str]:
    """Role names held by a principal"""
    if not user_id:
        return set()
    rows = (
        db.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    return {name for (name,) in rows}

def ensure_role(db: Session, name: str) -> Role:
    """Return the role called `name`, creating it when absent (not committed)"""
    role = db.query(Role).filter(Role.name == name).first()
    if role is None:
        role = Role(name=name)
        db.add(role)
        db.flush()
        logger.info(f"Provisioned role {name}")
    return role

def assign_role(db: Session, user_id: str, role_name: str) -> bool:
    """Grant a role to a user. Returns False when the user already held it."""
    role = ensure_role(db, role_name)
    existing = (
        db.query(UserRole)
        .filter(UserRole.user_id == user_id, UserRole.role_id == role.id)
        .first()
    )
    if existing:
        db.commit()
        return False

    db.add(UserRole(user_id=user_id, role_id=role.id))
    db.commit()
    logger.info(f"Assigned role {role_name} to user {user_id}")
    return True
