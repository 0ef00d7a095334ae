"""Closed enumerations shared by the permission model, the grow-room cycle and vouchers.
Extend cautiously; stored role documents reference module keys by value, so a rename
needs a data migration.
"""
from __future__ import annotations
from enum import Enum
from typing import Dict, List, Tuple


class Module(str, Enum):
    DASHBOARD = 'dashboard'
    VENDORS = 'vendors'
    MATERIALS = 'materials'
    VOUCHERS = 'vouchers'
    REPORTS = 'reports'
    ROOMS = 'rooms'
    ROOM_STAGES = 'roomStages'
    ROOM_ACTIVITIES = 'roomActivities'
    ROLES = 'roles'
    USERS = 'users'


class Action(str, Enum):
    CREATE = 'create'
    EDIT = 'edit'
    VIEW = 'view'
    DELETE = 'delete'


class PrimaryRole(str, Enum):
    ADMIN = 'admin'
    ACCOUNTANT = 'accountant'
    VIEWER = 'viewer'


class Activity(str, Enum):
    WATERING = 'watering'
    RUFFLING = 'ruffling'
    THUMPING = 'thumping'


class DiscountType(str, Enum):
    NONE = 'none'
    PERCENT = 'percent'
    FLAT = 'flat'


class PaymentStatus(str, Enum):
    PAID = 'Paid'
    PENDING = 'Pending'
    PARTIALLY_PAID = 'Partially Paid'


MODULES: Tuple[str, ...] = tuple(m.value for m in Module)
ACTIONS: Tuple[str, ...] = tuple(a.value for a in Action)
PRIMARY_ROLES: Tuple[str, ...] = tuple(r.value for r in PrimaryRole)
ACTIVITIES: Tuple[str, ...] = tuple(a.value for a in Activity)
DISCOUNT_TYPES: Tuple[str, ...] = tuple(d.value for d in DiscountType)
PAYMENT_STATUSES: Tuple[str, ...] = tuple(p.value for p in PaymentStatus)


def _grant(*pairs: Tuple[str, List[str]]) -> Dict[str, Dict[str, bool]]:
    out: Dict[str, Dict[str, bool]] = {}
    for module, actions in pairs:
        out[module] = {a: a in actions for a in ACTIONS}
    return out


# Role presets installed by scripts/seed.py (missing modules normalize to all-false)
ROLE_PRESETS: Dict[str, Dict[str, Dict[str, bool]]] = {
    'Accountant': _grant(
        ('dashboard', ['view']),
        ('vendors', ['create', 'edit', 'view']),
        ('materials', ['create', 'edit', 'view']),
        ('vouchers', ['create', 'edit', 'view']),
        ('reports', ['view']),
    ),
    'Room Operator': _grant(
        ('dashboard', ['view']),
        ('rooms', ['view']),
        ('roomStages', ['view', 'edit']),
        ('roomActivities', ['view', 'edit']),
    ),
    'Viewer': _grant(
        ('dashboard', ['view']),
        ('vendors', ['view']),
        ('materials', ['view']),
        ('vouchers', ['view']),
        ('reports', ['view']),
        ('roomStages', ['view']),
        ('roomActivities', ['view']),
    ),
}

# Fixed growing rooms present in every installation
SEED_ROOMS: List[str] = ['Orion', 'Nova', 'Cosmos', 'Nebula', 'Pulsar', 'Atlas', 'Apollo', 'Zenith']
