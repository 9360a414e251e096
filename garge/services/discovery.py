"""
Discovery edges: "gateway X has seen device Y". These drive transitive access.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from garge.database import get_utc_datetime
from garge.models.discovery import DiscoveredDevice

logger = logging.getLogger(__name__)

class DiscoveryConflictError(Exception):
    pass

def register_discovered_device(
    db: Session,
    discovered_by: str,
    target: str,
    type: str,
    timestamp: Optional[datetime] = None,
) -> DiscoveredDevice:
    """Record a discovery edge.

    The (discovered_by, target, type) triple is unique; a repeat is rejected
    with DiscoveryConflictError and the first row is kept as-is.
    """
    device = DiscoveredDevice(
        discovered_by=discovered_by,
        target=target,
        type=type,
        timestamp=timestamp or get_utc_datetime(),
    )
    db.add(device)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(
            f"Discovered device already exists for DiscoveredBy={discovered_by}, Target={target}, Type={type}"
        )
        raise DiscoveryConflictError("Discovered device already exists for this combination.")

    db.refresh(device)
    logger.info(
        f"Discovered device created: Id={device.id}, DiscoveredBy={discovered_by}, Target={target}, Type={type}"
    )
    return device
