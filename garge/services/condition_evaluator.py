"""
Automation condition evaluation.

Evaluation is fail-closed: a missing reading, an unparseable value or an
unknown operator makes the condition false, never an exception.
"""
from pydantic import ValidationError
from typing import Any, Dict, List, Optional
import logging
import re

from garge.database import settings
from garge.models.automation import AutomationCondition, AutomationRule, ELECTRICITY_PRICE_SENSOR_TYPE
from garge.schemas.electricity import ElectricityPricePayload

logger = logging.getLogger(__name__)

_GROUPED_NUMBER = re.compile(r"[+-]?\d{1,3}(?:,\d{3})+(?:\.\d*)?(?:[eE][+-]?\d+)?")

def _raw_value(reading: Any) -> Any:
    """Readings are SensorData / ElectricityPrice rows, or bare raw values"""
    if reading is None or isinstance(reading, (str, bytes, int, float)):
        return reading
    return getattr(reading, "value", None)

def parse_sensor_value(raw: Any) -> Optional[float]:
    """Locale-independent float parse of a raw reading"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = str(raw).strip()
    # float() would accept "1_000"
    if "_" in text:
        return None
    if "," in text:
        # "," is only a thousands separator, e.g. "1,000.5"; "21,5" is rejected
        if not _GROUPED_NUMBER.fullmatch(text):
            return None
        text = text.replace(",", "")
    try:
        return float(text)
    except ValueError:
        return None

def parse_electricity_price(raw: Any) -> Optional[float]:
    """Plain number first, then a JSON object's `price`, then its `value`"""
    value = parse_sensor_value(raw)
    if value is not None:
        return value
    if not isinstance(raw, (str, bytes)):
        return None

    try:
        payload = ElectricityPricePayload.model_validate_json(raw)
    except ValidationError:
        return None

    if payload.price is not None:
        return payload.price
    if payload.value is not None:
        return payload.value
    return None

def resolve_sensor_value(sensor_type: str, raw: Any) -> Optional[float]:
    if (sensor_type or "").lower() == ELECTRICITY_PRICE_SENSOR_TYPE:
        value = parse_electricity_price(raw)
        if value is None:
            logger.warning(f"Failed to parse electricity price from sensor data: {raw!r}")
        return value

    value = parse_sensor_value(raw)
    if value is None:
        logger.warning(f"Failed to parse sensor value as float: {raw!r}")
    return value

def compare(value: float, operator: str, threshold: float, tolerance: Optional[float] = None) -> bool:
    """Apply a condition operator; equality uses an absolute tolerance"""
    eps = settings.equality_tolerance if tolerance is None else tolerance

    if operator in ("==", "="):
        return abs(value - threshold) < eps
    if operator in ("!=", "<>"):
        return abs(value - threshold) >= eps
    if operator == ">":
        return value > threshold
    if operator == "<":
        return value < threshold
    if operator == ">=":
        return value >= threshold
    if operator == "<=":
        return value <= threshold

    logger.warning(f"Unknown operator: {operator}")
    return False

def evaluate_condition(condition: AutomationCondition, reading: Any, tolerance: Optional[float] = None) -> bool:
    """Evaluate one condition against the latest reading of its sensor"""
    try:
        raw = _raw_value(reading)
        if raw is None:
            logger.info(f"No reading available for sensor {condition.sensor_id} ({condition.sensor_type})")
            return False

        value = resolve_sensor_value(condition.sensor_type, raw)
        if value is None:
            return False

        return compare(value, condition.condition, condition.threshold, tolerance)
    except Exception as e:
        logger.exception(f"Error evaluating condition for sensor {condition.sensor_id}: {e}")
        return False

def evaluate_conditions(rule: AutomationRule, readings: Dict[int, Any], tolerance: Optional[float] = None) -> List[bool]:
    return [
        evaluate_condition(c, readings.get(c.sensor_id), tolerance)
        for c in rule.conditions
    ]

def combine(logical_operator: Optional[str], results: List[bool]) -> bool:
    """OR means any; anything else (AND, None, single condition) means all"""
    if not results:
        return False
    if (logical_operator or "").upper() == "OR":
        return any(results)
    return all(results)

def evaluate_rule(rule: AutomationRule, readings: Dict[int, Any], tolerance: Optional[float] = None) -> bool:
    """Evaluate a rule given the latest reading per sensor id (-1 = electricity price)"""
    return combine(rule.logical_operator, evaluate_conditions(rule, readings, tolerance))
