"""
Database initialization script
Creates the tables and the admin-tier roles, and optionally grants "admin"
to a bootstrap user (BOOTSTRAP_ADMIN_USER).
"""
import logging
import os

from garge.database import SessionLocal, engine, settings
from garge.models import Base
from garge.services.roles import assign_role, ensure_role

logger = logging.getLogger(__name__)

def init_database():
    """Create tables and seed roles; safe to run repeatedly"""
    
    Base.metadata.create_all(bind=engine)
    
    db = SessionLocal()
    try:
        role_names = sorted({name for names in settings.admin_roles.values() for name in names})
        for name in role_names:
            ensure_role(db, name)
        db.commit()
        logger.info(f"Admin roles ensured: {', '.join(role_names)}")
        
        bootstrap_user = os.getenv("BOOTSTRAP_ADMIN_USER")
        if bootstrap_user and assign_role(db, bootstrap_user, "admin"):
            logger.info(f"Bootstrap user {bootstrap_user} granted admin")
        
    except Exception as e:
        db.rollback()
        logger.error(f"Error initializing database: {e}")
        raise
    finally:
        db.close()

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
