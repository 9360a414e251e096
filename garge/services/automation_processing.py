"""
Automation processing: reacts to new sensor readings and electricity prices
by evaluating the rules that reference them and dispatching the triggered ones.

Each rule is evaluated in its own worker thread with its own session so a slow
or failing rule never holds up the others. A rule that outlives its timeout is
reported as failed and its action is not dispatched. Nothing raised inside a
rule evaluation crosses this module's boundary.
"""
from sqlalchemy.orm import Session, sessionmaker
from typing import Any, Dict, List, Optional
import asyncio
import threading
import logging

from garge.database import SessionLocal, settings
from garge.models.automation import AutomationRule, ELECTRICITY_PRICE_SENSOR_ID
from garge.models.sensor import Sensor
from garge.schemas.automation import ConditionEvaluation, RuleEvaluationResponse
from garge.services.action_dispatcher import dispatch
from garge.services.automation_rules import (
    find_rules_for_electricity_price,
    find_rules_for_sensor,
    get_rule,
)
from garge.services.condition_evaluator import combine, evaluate_conditions
from garge.services.readings import collect_readings

logger = logging.getLogger(__name__)

def _raw(reading: Any) -> Optional[str]:
    if reading is None:
        return None
    value = getattr(reading, "value", reading)
    return None if value is None else str(value)

def evaluate_rule_now(db: Session, rule: AutomationRule, overrides: Optional[Dict[int, Any]] = None) -> RuleEvaluationResponse:
    """Evaluate a rule against the latest readings without dispatching"""
    readings = collect_readings(db, rule, overrides)
    results = evaluate_conditions(rule, readings)

    return RuleEvaluationResponse(
        rule_id=rule.id,
        logical_operator=(rule.logical_operator or "AND").upper(),
        triggered=combine(rule.logical_operator, results),
        conditions=[
            ConditionEvaluation(
                condition_id=c.id,
                sensor_type=c.sensor_type,
                sensor_id=c.sensor_id,
                condition=c.condition,
                threshold=c.threshold,
                reading=_raw(readings.get(c.sensor_id)),
                result=met,
            )
            for c, met in zip(rule.conditions, results)
        ],
    )

def _evaluate_and_dispatch(
    rule_id: int,
    overrides: Dict[int, Any],
    session_factory: sessionmaker,
    abandoned: Optional[threading.Event] = None,
) -> Dict[str, Any]:
    db = session_factory()
    try:
        rule = get_rule(db, rule_id)
        evaluation = evaluate_rule_now(db, rule, overrides)

        # the caller has already reported a timeout for this rule
        if abandoned is not None and abandoned.is_set():
            logger.warning(f"Automation rule {rule_id} finished after its timeout, action not dispatched")
            return {"rule_id": rule_id, "triggered": False, "error": "timeout"}

        dispatched = None
        if evaluation.triggered:
            dispatched = dispatch(db, rule)

        return {
            "rule_id": rule_id,
            "triggered": evaluation.triggered,
            "condition_results": [c.result for c in evaluation.conditions],
            "dispatch": dispatched.model_dump() if dispatched else None,
        }
    finally:
        db.close()

async def _run_rule(rule_id: int, overrides: Dict[int, Any], session_factory: sessionmaker, timeout: float) -> Dict[str, Any]:
    loop = asyncio.get_running_loop()
    abandoned = threading.Event()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(None, _evaluate_and_dispatch, rule_id, overrides, session_factory, abandoned),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        abandoned.set()
        logger.error(f"Evaluation of automation rule {rule_id} timed out after {timeout}s")
        return {"rule_id": rule_id, "triggered": False, "error": "timeout"}
    except Exception as e:
        logger.exception(f"Error evaluating automation rule {rule_id}: {e}")
        return {"rule_id": rule_id, "triggered": False, "error": str(e)}

async def _run_rules(rule_ids: List[int], overrides: Dict[int, Any], session_factory: sessionmaker) -> List[Dict[str, Any]]:
    timeout = settings.automation_rule_timeout_seconds
    return list(await asyncio.gather(
        *(_run_rule(rule_id, overrides, session_factory, timeout) for rule_id in rule_ids)
    ))

def _sensor_rule_ids(sensor_id: int, session_factory: sessionmaker) -> Optional[List[int]]:
    """Ids of rules with a condition on this sensor, None when the sensor is unknown"""
    db = session_factory()
    try:
        sensor = db.query(Sensor).filter(Sensor.id == sensor_id).first()
        if not sensor:
            return None
        return [r.id for r in find_rules_for_sensor(db, sensor.id, sensor.type)]
    finally:
        db.close()

def _price_rule_ids(session_factory: sessionmaker) -> List[int]:
    db = session_factory()
    try:
        return [r.id for r in find_rules_for_electricity_price(db)]
    finally:
        db.close()

async def process_sensor_reading(sensor_id: int, value: Any, session_factory: sessionmaker = SessionLocal) -> Dict[str, Any]:
    """Evaluate every rule referencing `sensor_id`, using `value` as that sensor's reading"""
    try:
        loop = asyncio.get_running_loop()
        rule_ids = await loop.run_in_executor(None, _sensor_rule_ids, sensor_id, session_factory)
        if rule_ids is None:
            return {"success": False, "message": "Sensor not found"}

        results = await _run_rules(rule_ids, {sensor_id: value}, session_factory)
        triggered = sum(1 for r in results if r.get("triggered"))
        if rule_ids:
            logger.info(f"Sensor {sensor_id} reading evaluated {len(rule_ids)} rule(s), {triggered} triggered")

        return {
            "success": True,
            "sensor_id": sensor_id,
            "evaluated": len(rule_ids),
            "triggered": triggered,
            "results": results,
        }
    except Exception as e:
        logger.exception(f"Error processing sensor data for automation rules. SensorId: {sensor_id}: {e}")
        return {"success": False, "message": str(e)}

async def process_electricity_price(value: Any = None, session_factory: sessionmaker = SessionLocal) -> Dict[str, Any]:
    """Evaluate every rule referencing the electricity price feed.

    Without an explicit `value` the latest stored price is used.
    """
    try:
        loop = asyncio.get_running_loop()
        rule_ids = await loop.run_in_executor(None, _price_rule_ids, session_factory)

        overrides = {} if value is None else {ELECTRICITY_PRICE_SENSOR_ID: value}
        results = await _run_rules(rule_ids, overrides, session_factory)
        triggered = sum(1 for r in results if r.get("triggered"))

        return {
            "success": True,
            "evaluated": len(rule_ids),
            "triggered": triggered,
            "results": results,
        }
    except Exception as e:
        logger.exception(f"Error processing electricity price for automation rules: {e}")
        return {"success": False, "message": str(e)}
