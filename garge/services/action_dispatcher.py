"""
Turns a triggered automation rule into a switch state record
"""
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import logging

from garge.database import get_utc_datetime
from garge.models.automation import AutomationRule
from garge.models.switch import Switch, SwitchData
from garge.schemas.automation import DispatchResult
from garge.services.access import is_switch_target

logger = logging.getLogger(__name__)

# Same vocabulary the switch state API accepts and returns
SWITCH_STATE_ON = "ON"
SWITCH_STATE_OFF = "OFF"
SWITCH_STATES = (SWITCH_STATE_ON, SWITCH_STATE_OFF)

def switch_state_for_action(action: str) -> str:
    return SWITCH_STATE_ON if (action or "").strip().lower() == "on" else SWITCH_STATE_OFF

def insert_device_state(db: Session, switch_id: int, value: str, timestamp: Optional[datetime] = None) -> SwitchData:
    """Append a state record for a switch (not committed)"""
    state = SwitchData(
        switch_id=switch_id,
        value=value,
        timestamp=timestamp or get_utc_datetime(),
    )
    db.add(state)
    return state

def dispatch(db: Session, rule: AutomationRule) -> DispatchResult:
    """Execute a rule's action. Failures are logged and reported, never raised."""
    result = DispatchResult(
        rule_id=rule.id,
        success=False,
        message="",
        target_type=rule.target_type,
        target_id=rule.target_id,
    )

    if not is_switch_target(rule.target_type):
        logger.warning(f"Unsupported target type: {rule.target_type} (rule {rule.id})")
        result.message = "unsupported target type"
        return result

    try:
        target = db.query(Switch).filter(Switch.id == rule.target_id).first()
        if target is None:
            logger.warning(f"Target switch not found: {rule.target_id} (rule {rule.id})")
            result.message = "target not found"
            return result

        value = switch_state_for_action(rule.action)
        insert_device_state(db, target.id, value)
        db.commit()

        logger.info(f"AUTOMATION: rule {rule.id} set switch {target.name} (#{target.id}) -> {value}")
        result.success = True
        result.message = "dispatched"
        result.value = value
        return result

    except Exception as e:
        db.rollback()
        logger.exception(f"Error executing automation action for rule {rule.id}: {e}")
        result.message = f"dispatch failed: {e}"
        return result
