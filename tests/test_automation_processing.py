import asyncio
import threading
import time

import pytest

from garge.database import settings
from garge.models import ElectricityPrice, SwitchData
from garge.schemas.automation import AutomationRuleCreate
from garge.services import automation_processing
from garge.services.automation_processing import (
    evaluate_rule_now,
    process_electricity_price,
    process_sensor_reading,
)
from garge.services.automation_rules import create_rule
from tests.factories import BASE_TIME, add_reading, add_sensor, add_switch


def _rule(db, conditions, action="on", target_id=7, logical_operator=None):
    return create_rule(db, AutomationRuleCreate(
        target_type="Switch",
        target_id=target_id,
        action=action,
        logical_operator=logical_operator,
        conditions=conditions,
    ))


@pytest.fixture
def devices(db):
    add_switch(db, "lamp7", switch_id=7)
    temp = add_sensor(db, "gateway1_temp", parent_name="gateway1", sensor_id=3)
    humidity = add_sensor(db, "gateway1_humidity", parent_name="gateway1", type="humidity", sensor_id=4)
    return {"temp": temp, "humidity": humidity}


def _states(session_factory):
    db = session_factory()
    try:
        return [s.value for s in db.query(SwitchData).order_by(SwitchData.id).all()]
    finally:
        db.close()


def test_triggered_rule_switches_target(db, session_factory, devices):
    _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])

    outcome = asyncio.run(process_sensor_reading(3, "26.5", session_factory=session_factory))

    assert outcome["success"] is True
    assert outcome["evaluated"] == 1
    assert outcome["triggered"] == 1
    assert outcome["results"][0]["dispatch"]["value"] == "ON"
    assert _states(session_factory) == ["ON"]


def test_untriggered_rule_leaves_target_alone(db, session_factory, devices):
    _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])

    outcome = asyncio.run(process_sensor_reading(3, "20", session_factory=session_factory))

    assert outcome["triggered"] == 0
    assert outcome["results"][0]["dispatch"] is None
    assert _states(session_factory) == []


def test_other_conditions_use_latest_stored_readings(db, session_factory, devices):
    _rule(db, [
        {"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25},
        {"sensor_type": "humidity", "sensor_id": 4, "condition": "<", "threshold": 40},
    ], action="off", logical_operator="AND")
    add_reading(db, 4, "55", minutes=0)
    add_reading(db, 4, "35", minutes=5)

    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    assert outcome["results"][0]["condition_results"] == [True, True]
    assert _states(session_factory) == ["OFF"]


def test_rules_on_other_sensors_are_not_evaluated(db, session_factory, devices):
    _rule(db, [{"sensor_type": "humidity", "sensor_id": 4, "condition": "<", "threshold": 40}])

    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    assert outcome["evaluated"] == 0
    assert outcome["results"] == []


def test_unknown_sensor(session_factory):
    outcome = asyncio.run(process_sensor_reading(99, "1", session_factory=session_factory))
    assert outcome == {"success": False, "message": "Sensor not found"}


def test_failing_rule_does_not_stop_the_others(db, session_factory, devices, monkeypatch):
    first = _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])
    second = _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])
    real = automation_processing._evaluate_and_dispatch

    def _flaky(rule_id, overrides, factory, abandoned=None):
        if rule_id == first.id:
            raise RuntimeError("boom")
        return real(rule_id, overrides, factory, abandoned)

    monkeypatch.setattr(automation_processing, "_evaluate_and_dispatch", _flaky)
    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    by_rule = {r["rule_id"]: r for r in outcome["results"]}
    assert by_rule[first.id]["error"] == "boom"
    assert by_rule[second.id]["triggered"] is True
    assert outcome["triggered"] == 1
    assert _states(session_factory) == ["ON"]


def test_slow_rule_times_out(db, session_factory, devices, monkeypatch):
    rule = _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])

    def _slow(rule_id, overrides, factory, abandoned=None):
        time.sleep(0.5)
        return {"rule_id": rule_id, "triggered": True}

    monkeypatch.setattr(automation_processing, "_evaluate_and_dispatch", _slow)
    monkeypatch.setattr(settings, "automation_rule_timeout_seconds", 0.05)
    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    assert outcome["results"] == [{"rule_id": rule.id, "triggered": False, "error": "timeout"}]
    assert outcome["triggered"] == 0


def test_rule_finishing_after_its_timeout_does_not_switch(db, session_factory, devices, monkeypatch):
    rule = _rule(db, [{"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25}])
    real = automation_processing.collect_readings

    def _slow_readings(*args, **kwargs):
        time.sleep(0.3)
        return real(*args, **kwargs)

    monkeypatch.setattr(automation_processing, "collect_readings", _slow_readings)
    monkeypatch.setattr(settings, "automation_rule_timeout_seconds", 0.05)
    # asyncio.run waits for the worker thread before returning
    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    assert outcome["results"] == [{"rule_id": rule.id, "triggered": False, "error": "timeout"}]
    assert _states(session_factory) == []


def test_rule_lookup_runs_off_the_event_loop(db, session_factory, devices, monkeypatch):
    real = automation_processing._sensor_rule_ids
    threads = []

    def _recording(*args):
        threads.append(threading.current_thread())
        return real(*args)

    monkeypatch.setattr(automation_processing, "_sensor_rule_ids", _recording)
    outcome = asyncio.run(process_sensor_reading(3, "30", session_factory=session_factory))

    assert outcome["success"] is True
    assert threads and threads[0] is not threading.main_thread()


def test_electricity_price_rules(db, session_factory, devices):
    _rule(db, [{"sensor_type": "electricity_price", "sensor_id": -1, "condition": "<", "threshold": 0.5}])

    cheap = asyncio.run(process_electricity_price('{"price": 0.3}', session_factory=session_factory))
    expensive = asyncio.run(process_electricity_price("0.9", session_factory=session_factory))

    assert cheap["triggered"] == 1
    assert expensive["triggered"] == 0
    assert _states(session_factory) == ["ON"]


def test_electricity_price_falls_back_to_latest_stored(db, session_factory, devices):
    _rule(db, [{"sensor_type": "electricity_price", "sensor_id": -1, "condition": "<", "threshold": 0.5}])
    db.add(ElectricityPrice(value='{"value": 0.2}', area="NO1", timestamp=BASE_TIME))
    db.commit()

    outcome = asyncio.run(process_electricity_price(session_factory=session_factory))

    assert outcome["triggered"] == 1


def test_evaluate_rule_now_is_a_dry_run(db, session_factory, devices):
    rule = _rule(db, [
        {"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25},
        {"sensor_type": "humidity", "sensor_id": 4, "condition": "<", "threshold": 40},
    ], logical_operator="OR")
    add_reading(db, 3, "21")

    evaluation = evaluate_rule_now(db, rule)

    assert evaluation.logical_operator == "OR"
    assert evaluation.triggered is False
    assert [(c.reading, c.result) for c in evaluation.conditions] == [("21", False), (None, False)]
    assert _states(session_factory) == []
