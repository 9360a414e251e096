"""
Device access model.

A principal (a set of role names) may act on a switch or sensor when one of
the following holds, checked in order:

1. it holds an admin-tier role for the resource kind (see ``Settings.admin_roles``);
2. it holds the device's own role (case-insensitive);
3. a sensor it holds the role of has a ``parent_name`` that discovered the
   device, i.e. a ``DiscoveredDevice`` row with ``discovered_by`` equal to
   that parent and ``target`` equal to the device name.

Anything else is denied. Denial is a plain ``False``; callers turn it into a
403 at the HTTP boundary.
"""
from sqlalchemy import exists, func
from sqlalchemy.orm import Session
from typing import Dict, Iterable, List, Optional, Set, Union
import logging

from garge.database import settings
from garge.models.automation import AutomationRule
from garge.models.discovery import DiscoveredDevice
from garge.models.sensor import Sensor
from garge.models.switch import Switch

logger = logging.getLogger(__name__)

GLOBAL_ADMIN_ROLE = "admin"
SWITCH_TARGET = "switch"

Device = Union[Switch, Sensor]

def _normalize(roles: Iterable[str]) -> Set[str]:
    return {r.lower() for r in roles if r}

def resource_kind(device: Device) -> str:
    return "sensor" if isinstance(device, Sensor) else "switch"

def is_switch_target(target_type: Optional[str]) -> bool:
    return bool(target_type) and target_type.lower() == SWITCH_TARGET

class AccessModel:
    """Access checks over the sensor / switch / discovery tables"""

    def __init__(self, db: Session, admin_roles: Optional[Dict[str, List[str]]] = None):
        self.db = db
        table = admin_roles if admin_roles is not None else settings.admin_roles
        self.admin_roles: Dict[str, Set[str]] = {
            kind.lower(): _normalize(names) for kind, names in table.items()
        }

    def is_admin(self, roles: Iterable[str], resource: str) -> bool:
        required = self.admin_roles.get(resource.lower(), {GLOBAL_ADMIN_ROLE})
        return bool(_normalize(roles) & required)

    def accessible_parent_names(self, roles: Iterable[str]) -> Set[str]:
        """Parent (gateway) names of every sensor whose role the principal holds"""
        lowered = _normalize(roles)
        if not lowered:
            return set()
        rows = (
            self.db.query(Sensor.parent_name)
            .filter(func.lower(Sensor.role).in_(lowered))
            .distinct()
            .all()
        )
        return {parent for (parent,) in rows if parent}

    def is_discovered(self, parents: Set[str], target: str) -> bool:
        if not parents or not target:
            return False
        return bool(
            self.db.query(
                exists().where(
                    DiscoveredDevice.discovered_by.in_(parents),
                    DiscoveredDevice.target == target,
                )
            ).scalar()
        )

    def discovered_targets(self, parents: Set[str], targets: Set[str]) -> Set[str]:
        """Subset of `targets` discovered by any of `parents`, in one query"""
        if not parents or not targets:
            return set()
        rows = (
            self.db.query(DiscoveredDevice.target)
            .filter(
                DiscoveredDevice.discovered_by.in_(parents),
                DiscoveredDevice.target.in_(targets),
            )
            .distinct()
            .all()
        )
        return {target for (target,) in rows}

    def has_access(self, roles: Iterable[str], device: Optional[Device], resource: Optional[str] = None) -> bool:
        if device is None:
            return False
        roles = set(roles)
        kind = resource or resource_kind(device)

        if self.is_admin(roles, kind):
            return True

        if device.role and device.role.lower() in _normalize(roles):
            return True

        parents = self.accessible_parent_names(roles)
        granted = self.is_discovered(parents, device.name)
        if not granted:
            logger.debug(f"Access denied to {kind} {device.name} for roles {sorted(roles)}")
        return granted

    def find_target(self, target_type: Optional[str], target_id: Optional[int]) -> Optional[Switch]:
        if not is_switch_target(target_type) or not target_id:
            return None
        return self.db.query(Switch).filter(Switch.id == target_id).first()

    def can_access_target(self, roles: Iterable[str], target_type: Optional[str], target_id: Optional[int]) -> bool:
        roles = set(roles)
        if self.is_admin(roles, "automation"):
            return True
        target = self.find_target(target_type, target_id)
        if target is None:
            return False
        return self.has_access(roles, target, resource="automation")

    def can_access_rule(self, roles: Iterable[str], rule: AutomationRule) -> bool:
        return self.can_access_target(roles, rule.target_type, rule.target_id)

    def filter_accessible_rules(self, roles: Iterable[str], rules: List[AutomationRule]) -> List[AutomationRule]:
        """Rules whose target the principal may act on, resolved with a fixed number of queries"""
        roles = set(roles)
        if self.is_admin(roles, "automation"):
            return list(rules)

        switch_ids = {r.target_id for r in rules if is_switch_target(r.target_type)}
        if not switch_ids:
            return []

        switches = {
            s.id: s for s in self.db.query(Switch).filter(Switch.id.in_(switch_ids)).all()
        }
        lowered = _normalize(roles)
        parents = self.accessible_parent_names(roles)
        discovered = self.discovered_targets(parents, {s.name for s in switches.values()})

        allowed = {
            sid for sid, s in switches.items()
            if (s.role and s.role.lower() in lowered) or s.name in discovered
        }
        return [r for r in rules if is_switch_target(r.target_type) and r.target_id in allowed]

    def _accessible_devices(self, model, roles: Iterable[str], resource: str) -> List[Device]:
        roles = set(roles)
        query = self.db.query(model).order_by(model.id)
        if self.is_admin(roles, resource):
            return query.all()

        lowered = _normalize(roles)
        parents = self.accessible_parent_names(roles)
        discovered: Set[str] = set()
        if parents:
            discovered = {
                target for (target,) in
                self.db.query(DiscoveredDevice.target)
                .filter(DiscoveredDevice.discovered_by.in_(parents))
                .distinct()
                .all()
            }
        return [
            d for d in query.all()
            if (d.role and d.role.lower() in lowered) or d.name in discovered
        ]

    def accessible_switches(self, roles: Iterable[str]) -> List[Switch]:
        return self._accessible_devices(Switch, roles, "switch")

    def accessible_sensors(self, roles: Iterable[str]) -> List[Sensor]:
        return self._accessible_devices(Sensor, roles, "sensor")

    def visible_discovered_devices(self, roles: Iterable[str]) -> List[DiscoveredDevice]:
        roles = set(roles)
        query = self.db.query(DiscoveredDevice).order_by(DiscoveredDevice.id)
        if self.is_admin(roles, "mqtt"):
            return query.all()

        parents = self.accessible_parent_names(roles)
        if not parents:
            return []
        return query.filter(DiscoveredDevice.discovered_by.in_(parents)).all()

def check_access(db: Session, roles: Iterable[str], device: Optional[Device], resource: Optional[str] = None) -> bool:
    return AccessModel(db).has_access(roles, device, resource)
