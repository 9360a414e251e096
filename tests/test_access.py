"""Discovery-based access: direct roles, gateway discovery, admin tiers."""
import pytest

from garge.models.automation import AutomationRule
from garge.services.access import AccessModel, check_access
from tests.factories import add_discovery, add_sensor, add_switch


@pytest.fixture
def home(db):
    """gateway1 has discovered lamp1; gateway2 has discovered nothing"""
    lamp = add_switch(db, "lamp1", switch_id=1)
    fan = add_switch(db, "fan2", switch_id=2)
    add_sensor(db, "gateway1_temp", parent_name="gateway1")
    add_sensor(db, "gateway2_temp", parent_name="gateway2")
    add_discovery(db, "gateway1", "lamp1")
    return {"lamp": lamp, "fan": fan}


def test_discovery_grants_access(db, home):
    assert check_access(db, {"gateway1_temp"}, home["lamp"]) is True


def test_other_gateway_is_denied(db, home):
    assert check_access(db, {"gateway2_temp"}, home["lamp"]) is False


def test_discovery_is_per_target(db, home):
    assert check_access(db, {"gateway1_temp"}, home["fan"]) is False


def test_direct_role_is_case_insensitive(db, home):
    assert check_access(db, {"LAMP1"}, home["lamp"]) is True
    assert check_access(db, {"fan2"}, home["lamp"]) is False


def test_sensor_role_lookup_is_case_insensitive(db, home):
    assert check_access(db, {"Gateway1_Temp"}, home["lamp"]) is True


def test_empty_principal_is_denied(db, home):
    assert check_access(db, set(), home["lamp"]) is False
    assert check_access(db, {"lamp1"}, None) is False


def test_admin_tiers(db, home):
    access = AccessModel(db)
    assert access.has_access({"switch_admin"}, home["fan"]) is True
    assert access.has_access({"admin"}, home["fan"]) is True
    assert access.has_access({"sensor_admin"}, home["fan"]) is False
    assert access.is_admin({"mqtt_admin"}, "mqtt") is True
    assert access.is_admin({"mqtt_admin"}, "electricity") is False


def test_custom_admin_table(db, home):
    access = AccessModel(db, admin_roles={"switch": ["operators"]})
    assert access.has_access({"Operators"}, home["fan"]) is True
    # kinds missing from the table fall back to the global admin role
    assert access.is_admin({"admin"}, "sensor") is True


def test_sensor_access(db, home):
    sensor = add_sensor(db, "gateway3_humidity", parent_name="gateway3")
    add_discovery(db, "gateway1", "gateway3_humidity", type="sensor")

    assert check_access(db, {"gateway1_temp"}, sensor) is True
    assert check_access(db, {"gateway2_temp"}, sensor) is False


def test_can_access_target(db, home):
    access = AccessModel(db)
    assert access.can_access_target({"gateway1_temp"}, "Switch", 1) is True
    assert access.can_access_target({"gateway1_temp"}, "switch", 2) is False
    assert access.can_access_target({"lamp1"}, "Switch", 99) is False
    assert access.can_access_target({"lamp1"}, "Light", 1) is False


def test_automation_admin_reaches_missing_targets(db, home):
    access = AccessModel(db)
    assert access.can_access_target({"automation_admin"}, "Switch", 99) is True
    assert access.can_access_target({"switch_admin"}, "Switch", 99) is False


def test_filter_accessible_rules(db, home):
    rules = [
        AutomationRule(id=10, target_type="Switch", target_id=1, action="on"),
        AutomationRule(id=11, target_type="Switch", target_id=2, action="on"),
        AutomationRule(id=12, target_type="Switch", target_id=99, action="off"),
        AutomationRule(id=13, target_type="Light", target_id=1, action="off"),
    ]
    access = AccessModel(db)

    assert [r.id for r in access.filter_accessible_rules({"gateway1_temp"}, rules)] == [10]
    assert [r.id for r in access.filter_accessible_rules({"fan2", "lamp1"}, rules)] == [10, 11]
    assert access.filter_accessible_rules({"nobody"}, rules) == []
    assert [r.id for r in access.filter_accessible_rules({"automation_admin"}, rules)] == [10, 11, 12, 13]


def test_accessible_device_listings(db, home):
    access = AccessModel(db)
    assert [s.name for s in access.accessible_switches({"gateway1_temp"})] == ["lamp1"]
    assert [s.name for s in access.accessible_switches({"fan2"})] == ["fan2"]
    assert [s.name for s in access.accessible_switches({"switch_admin"})] == ["lamp1", "fan2"]
    assert [s.name for s in access.accessible_sensors({"gateway2_temp"})] == ["gateway2_temp"]


def test_visible_discovered_devices(db, home):
    add_discovery(db, "gateway2", "fan2")
    access = AccessModel(db)

    assert [d.target for d in access.visible_discovered_devices({"gateway2_temp"})] == ["fan2"]
    assert [d.target for d in access.visible_discovered_devices({"mqtt_admin"})] == ["lamp1", "fan2"]
    assert access.visible_discovered_devices({"lamp1"}) == []
