from pydantic import BaseModel
from typing import List, Optional

class AutomationConditionBase(BaseModel):
    sensor_type: str = ""
    sensor_id: int = 0
    condition: str = ""
    threshold: float = 0.0

class AutomationConditionCreate(AutomationConditionBase):
    pass

class AutomationConditionResponse(AutomationConditionBase):
    id: int
    
    class Config:
        from_attributes = True

class AutomationRuleBase(BaseModel):
    target_type: str = ""
    target_id: int = 0
    action: str = ""
    logical_operator: Optional[str] = None

class AutomationRuleCreate(AutomationRuleBase):
    conditions: Optional[List[AutomationConditionCreate]] = None

class AutomationRuleUpdate(AutomationRuleCreate):
    pass

class AutomationRuleResponse(AutomationRuleBase):
    id: int
    conditions: List[AutomationConditionResponse] = []
    
    class Config:
        from_attributes = True

class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []

class ConditionEvaluation(BaseModel):
    condition_id: Optional[int] = None
    sensor_type: str
    sensor_id: int
    condition: str
    threshold: float
    reading: Optional[str] = None
    result: bool

class RuleEvaluationResponse(BaseModel):
    rule_id: int
    logical_operator: str
    triggered: bool
    conditions: List[ConditionEvaluation] = []

class DispatchResult(BaseModel):
    rule_id: Optional[int] = None
    success: bool
    message: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    value: Optional[str] = None
