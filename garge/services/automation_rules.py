"""
Automation rule store: create / update / delete / lookup of rules and their conditions
"""
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from typing import Iterable, List
import logging

from garge.models.automation import (
    AutomationCondition,
    AutomationRule,
    ELECTRICITY_PRICE_SENSOR_ID,
    ELECTRICITY_PRICE_SENSOR_TYPE,
)
from garge.schemas.automation import AutomationRuleCreate, AutomationRuleUpdate
from garge.services.access import AccessModel
from garge.services.automation_validation import AutomationValidator, normalize_logical_operator

logger = logging.getLogger(__name__)

TARGET_TYPES = {"switch": "Switch"}

class RuleNotFoundError(Exception):
    def __init__(self, rule_id: int):
        super().__init__(f"Automation rule {rule_id} not found")
        self.rule_id = rule_id

class RuleValidationError(Exception):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors

def _canonical_target_type(target_type: str) -> str:
    target_type = target_type.strip()
    return TARGET_TYPES.get(target_type.lower(), target_type)

def _build_conditions(dto: AutomationRuleCreate) -> List[AutomationCondition]:
    return [
        AutomationCondition(
            sensor_type=c.sensor_type.strip(),
            sensor_id=c.sensor_id,
            condition=c.condition,
            threshold=c.threshold,
        )
        for c in dto.conditions
    ]

def _apply(rule: AutomationRule, dto: AutomationRuleCreate) -> None:
    rule.target_type = _canonical_target_type(dto.target_type)
    rule.target_id = dto.target_id
    rule.action = dto.action.strip().lower()
    rule.logical_operator = normalize_logical_operator(dto.logical_operator)
    # delete-orphan drops the previous conditions in the same flush
    rule.conditions = _build_conditions(dto)

def _rules_query(db: Session):
    return db.query(AutomationRule).options(selectinload(AutomationRule.conditions))

def get_rule(db: Session, rule_id: int) -> AutomationRule:
    rule = _rules_query(db).filter(AutomationRule.id == rule_id).first()
    if rule is None:
        raise RuleNotFoundError(rule_id)
    return rule

def list_rules(db: Session) -> List[AutomationRule]:
    return _rules_query(db).order_by(AutomationRule.id).all()

def list_accessible_rules(db: Session, roles: Iterable[str]) -> List[AutomationRule]:
    return AccessModel(db).filter_accessible_rules(roles, list_rules(db))

def create_rule(db: Session, dto: AutomationRuleCreate) -> AutomationRule:
    result = AutomationValidator(db).validate_create(dto)
    if not result.is_valid:
        raise RuleValidationError(result.errors)

    rule = AutomationRule()
    _apply(rule, dto)
    db.add(rule)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create automation rule")
        raise

    db.refresh(rule)
    logger.info(
        f"Automation rule {rule.id} created: {rule.action} {rule.target_type} {rule.target_id} "
        f"with {len(rule.conditions)} condition(s)"
    )
    return rule

def update_rule(db: Session, rule_id: int, dto: AutomationRuleUpdate) -> AutomationRule:
    """Replace a rule's attributes and its whole condition set atomically"""
    rule = get_rule(db, rule_id)

    result = AutomationValidator(db).validate_update(dto)
    if not result.is_valid:
        raise RuleValidationError(result.errors)

    try:
        _apply(rule, dto)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to update automation rule {rule_id}, conditions left unchanged")
        raise

    db.refresh(rule)
    logger.info(f"Automation rule {rule.id} updated with {len(rule.conditions)} condition(s)")
    return rule

def delete_rule(db: Session, rule_id: int) -> None:
    rule = get_rule(db, rule_id)
    db.delete(rule)
    db.commit()
    logger.info(f"Automation rule {rule_id} deleted")

def find_rules_for_sensor(db: Session, sensor_id: int, sensor_type: str) -> List[AutomationRule]:
    """Rules with at least one condition on this sensor and sensor type"""
    return (
        _rules_query(db)
        .filter(
            AutomationRule.conditions.any(
                (AutomationCondition.sensor_id == sensor_id)
                & (func.lower(AutomationCondition.sensor_type) == (sensor_type or "").lower())
            )
        )
        .order_by(AutomationRule.id)
        .all()
    )

def find_rules_for_electricity_price(db: Session) -> List[AutomationRule]:
    return (
        _rules_query(db)
        .filter(
            AutomationRule.conditions.any(
                (AutomationCondition.sensor_id == ELECTRICITY_PRICE_SENSOR_ID)
                | (func.lower(AutomationCondition.sensor_type) == ELECTRICITY_PRICE_SENSOR_TYPE)
            )
        )
        .order_by(AutomationRule.id)
        .all()
    )
