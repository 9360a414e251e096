import pytest

from garge.schemas.automation import AutomationConditionCreate, AutomationRuleCreate, AutomationRuleUpdate
from garge.services.automation_validation import AutomationValidator, normalize_logical_operator
from tests.factories import add_switch


def _dto(conditions=None, **overrides):
    data = {
        "target_type": "Switch",
        "target_id": 7,
        "action": "on",
        "conditions": conditions if conditions is not None else [
            {"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25.0}
        ],
    }
    data.update(overrides)
    return AutomationRuleCreate(**data)


@pytest.fixture
def validator(db):
    add_switch(db, "lamp7", switch_id=7)
    return AutomationValidator(db)


def test_valid_single_condition_rule(validator):
    result = validator.validate_create(_dto())
    assert result.is_valid
    assert result.errors == []


@pytest.mark.parametrize("sensor_id,valid", [(-2, False), (-1, True), (0, False), (1, True)])
def test_sensor_id_boundaries(validator, sensor_id, valid):
    dto = _dto([{"sensor_type": "electricity_price", "sensor_id": sensor_id, "condition": "<", "threshold": 0.5}])
    result = validator.validate_create(dto)
    assert result.is_valid is valid
    if not valid:
        assert result.errors == ["SensorId must be greater than 0 (or -1 for electricity price)."]


def test_multiple_conditions_require_logical_operator(validator):
    conditions = [
        {"sensor_type": "temperature", "sensor_id": 3, "condition": ">", "threshold": 25.0},
        {"sensor_type": "humidity", "sensor_id": 4, "condition": "<", "threshold": 40.0},
    ]
    result = validator.validate_create(_dto(conditions))
    assert result.errors == ["LogicalOperator is required when multiple conditions are specified."]

    result = validator.validate_create(_dto(conditions, logical_operator="XOR"))
    assert result.errors == ["LogicalOperator must be 'AND' or 'OR'."]

    assert validator.validate_create(_dto(conditions, logical_operator="or")).is_valid


def test_single_condition_ignores_logical_operator(validator):
    assert validator.validate_create(_dto(logical_operator="whatever")).is_valid


def test_empty_conditions(validator):
    result = validator.validate_create(_dto([]))
    assert result.errors == ["At least one condition is required."]

    result = validator.validate_create(AutomationRuleCreate(target_type="Switch", target_id=7, action="off"))
    assert result.errors == ["At least one condition is required."]


def test_action_rules(validator):
    assert validator.validate_create(_dto(action="OFF")).is_valid
    assert validator.validate_create(_dto(action="toggle")).errors == ["Action must be 'on' or 'off'."]
    assert validator.validate_create(_dto(action=" ")).errors == ["Action is required."]


def test_invalid_operator_message(validator):
    dto = _dto([{"sensor_type": "temperature", "sensor_id": 3, "condition": "=>", "threshold": 1}])
    assert validator.validate_create(dto).errors == [
        "Invalid condition operator: =>. Allowed: ==, =, >, <, >=, <=, !=, <>"
    ]


def test_every_violation_is_reported(validator):
    dto = AutomationRuleUpdate(
        target_type="",
        target_id=0,
        action="",
        conditions=[
            AutomationConditionCreate(sensor_type="", sensor_id=0, condition="", threshold=-3.5),
            AutomationConditionCreate(sensor_type="humidity", sensor_id=-5, condition="?", threshold=1e9),
        ],
    )
    result = validator.validate_update(dto)

    assert not result.is_valid
    assert result.errors == [
        "TargetType is required.",
        "TargetId must be greater than 0.",
        "Action is required.",
        "LogicalOperator is required when multiple conditions are specified.",
        "SensorType is required for each condition.",
        "SensorId must be greater than 0 (or -1 for electricity price).",
        "Condition operator is required.",
        "SensorId must be greater than 0 (or -1 for electricity price).",
        "Invalid condition operator: ?. Allowed: ==, =, >, <, >=, <=, !=, <>",
    ]


def test_missing_target(validator):
    result = validator.validate_create(_dto(target_id=8))
    assert result.errors == ["Target Switch with ID 8 does not exist."]


def test_target_type_lookup_is_case_insensitive(validator):
    assert validator.validate_create(_dto(target_type="switch")).is_valid


def test_unsupported_target_type_does_not_exist(validator):
    result = validator.validate_create(_dto(target_type="Light"))
    assert result.errors == ["Target Light with ID 7 does not exist."]


def test_normalize_logical_operator():
    assert normalize_logical_operator(None) is None
    assert normalize_logical_operator("or") == "OR"
    assert normalize_logical_operator("And") == "AND"
    assert normalize_logical_operator("nand") is None
