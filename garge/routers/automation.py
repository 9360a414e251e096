from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.orm import Session
from typing import List, Set
import logging

from garge.database import get_db
from garge.schemas.automation import (
    AutomationRuleCreate,
    AutomationRuleUpdate,
    AutomationRuleResponse,
    DispatchResult,
    RuleEvaluationResponse,
)
from garge.security import get_current_roles
from garge.services.access import AccessModel
from garge.services.action_dispatcher import dispatch
from garge.services.automation_processing import evaluate_rule_now
from garge.services.automation_rules import (
    RuleNotFoundError,
    RuleValidationError,
    create_rule,
    delete_rule,
    get_rule,
    list_accessible_rules,
    update_rule,
)
from garge.services.automation_validation import AutomationValidator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/automation", tags=["automation"])

def _load_rule(db: Session, rule_id: int):
    try:
        return get_rule(db, rule_id)
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Automation rule not found")

@router.post("/", response_model=AutomationRuleResponse, status_code=201)
async def create_automation_rule(
    dto: AutomationRuleCreate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Create an automation rule on a target the caller may act on"""
    validation = AutomationValidator(db).validate_create(dto)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail={"errors": validation.errors})

    if not AccessModel(db).can_access_target(roles, dto.target_type, dto.target_id):
        logger.warning(f"CreateRule forbidden on {dto.target_type} {dto.target_id}")
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        return create_rule(db, dto)
    except RuleValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})

@router.get("/", response_model=List[AutomationRuleResponse])
async def list_automation_rules(
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """All rules whose target the caller may act on"""
    return list_accessible_rules(db, roles)

@router.get("/{rule_id}", response_model=AutomationRuleResponse)
async def get_automation_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    rule = _load_rule(db, rule_id)
    if not AccessModel(db).can_access_rule(roles, rule):
        raise HTTPException(status_code=403, detail="Forbidden")
    return rule

@router.put("/{rule_id}", response_model=AutomationRuleResponse)
async def update_automation_rule(
    rule_id: int,
    dto: AutomationRuleUpdate,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Replace a rule, conditions included. The caller needs access to the old and the new target."""
    rule = _load_rule(db, rule_id)
    access = AccessModel(db)
    if not access.can_access_rule(roles, rule):
        raise HTTPException(status_code=403, detail="Forbidden")

    validation = AutomationValidator(db).validate_update(dto)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail={"errors": validation.errors})

    if not access.can_access_target(roles, dto.target_type, dto.target_id):
        logger.warning(f"UpdateRule {rule_id} forbidden on new target {dto.target_type} {dto.target_id}")
        raise HTTPException(status_code=403, detail="Forbidden")

    try:
        return update_rule(db, rule_id, dto)
    except RuleValidationError as e:
        raise HTTPException(status_code=400, detail={"errors": e.errors})
    except RuleNotFoundError:
        raise HTTPException(status_code=404, detail="Automation rule not found")

@router.delete("/{rule_id}", status_code=204)
async def delete_automation_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    rule = _load_rule(db, rule_id)
    if not AccessModel(db).can_access_rule(roles, rule):
        raise HTTPException(status_code=403, detail="Forbidden")
    delete_rule(db, rule_id)

@router.post("/{rule_id}/evaluate", response_model=RuleEvaluationResponse)
async def evaluate_automation_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Dry run: evaluate against the latest readings without switching anything"""
    rule = _load_rule(db, rule_id)
    if not AccessModel(db).can_access_rule(roles, rule):
        raise HTTPException(status_code=403, detail="Forbidden")
    return evaluate_rule_now(db, rule)

@router.post("/{rule_id}/dispatch", response_model=DispatchResult)
async def dispatch_automation_rule(
    rule_id: int,
    db: Session = Depends(get_db),
    roles: Set[str] = Depends(get_current_roles),
):
    """Run a rule's action regardless of its conditions (automation admins only)"""
    if not AccessModel(db).is_admin(roles, "automation"):
        raise HTTPException(status_code=403, detail="Forbidden")
    rule = _load_rule(db, rule_id)
    return dispatch(db, rule)
