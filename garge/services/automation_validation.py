"""
Validation of automation rule submissions.

Every check runs and every violation is reported; nothing short-circuits
except the per-condition checks, which need a condition list to look at.
"""
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from garge.models.automation import ELECTRICITY_PRICE_SENSOR_ID
from garge.models.switch import Switch
from garge.schemas.automation import (
    AutomationConditionBase,
    AutomationRuleCreate,
    AutomationRuleUpdate,
    ValidationResult,
)

logger = logging.getLogger(__name__)

ALLOWED_ACTIONS = ("on", "off")
ALLOWED_LOGICAL_OPERATORS = ("AND", "OR")
ALLOWED_OPERATORS = ("==", "=", ">", "<", ">=", "<=", "!=", "<>")

def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()

class AutomationValidator:
    def __init__(self, db: Session):
        self.db = db

    def validate_create(self, dto: AutomationRuleCreate) -> ValidationResult:
        return self._validate(dto)

    def validate_update(self, dto: AutomationRuleUpdate) -> ValidationResult:
        return self._validate(dto)

    def _validate(self, dto: AutomationRuleCreate) -> ValidationResult:
        errors: List[str] = []

        if _is_blank(dto.target_type):
            errors.append("TargetType is required.")
        if dto.target_id <= 0:
            errors.append("TargetId must be greater than 0.")

        if _is_blank(dto.action):
            errors.append("Action is required.")
        elif dto.action.lower() not in ALLOWED_ACTIONS:
            errors.append("Action must be 'on' or 'off'.")

        if not dto.conditions:
            errors.append("At least one condition is required.")
        else:
            if len(dto.conditions) > 1:
                if _is_blank(dto.logical_operator):
                    errors.append("LogicalOperator is required when multiple conditions are specified.")
                elif dto.logical_operator.upper() not in ALLOWED_LOGICAL_OPERATORS:
                    errors.append("LogicalOperator must be 'AND' or 'OR'.")

            for condition in dto.conditions:
                self._validate_condition(condition, errors)

        if not _is_blank(dto.target_type) and dto.target_id > 0:
            if not self.target_exists(dto.target_type, dto.target_id):
                errors.append(f"Target {dto.target_type} with ID {dto.target_id} does not exist.")

        if errors:
            logger.info(f"Automation rule rejected with {len(errors)} error(s): {errors}")
        return ValidationResult(is_valid=not errors, errors=errors)

    @staticmethod
    def _validate_condition(condition: AutomationConditionBase, errors: List[str]) -> None:
        if _is_blank(condition.sensor_type):
            errors.append("SensorType is required for each condition.")

        if condition.sensor_id < ELECTRICITY_PRICE_SENSOR_ID or condition.sensor_id == 0:
            errors.append("SensorId must be greater than 0 (or -1 for electricity price).")

        if _is_blank(condition.condition):
            errors.append("Condition operator is required.")
        elif condition.condition not in ALLOWED_OPERATORS:
            errors.append(
                f"Invalid condition operator: {condition.condition}. "
                f"Allowed: {', '.join(ALLOWED_OPERATORS)}"
            )

        # threshold may be any float, negative included

    def target_exists(self, target_type: str, target_id: int) -> bool:
        if target_type.lower() == "switch":
            return self.db.query(Switch.id).filter(Switch.id == target_id).first() is not None
        return False

def normalize_logical_operator(logical_operator: Optional[str]) -> Optional[str]:
    """Uppercase AND/OR; anything else (or nothing) is stored as None, i.e. AND"""
    if _is_blank(logical_operator):
        return None
    normalized = logical_operator.strip().upper()
    return normalized if normalized in ALLOWED_LOGICAL_OPERATORS else None
