"""Stage catalog rules: activity flags, uniqueness and the total interval budget."""
from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional

from flask import current_app
from sqlalchemy import select, func

from vendor_expense import get_db
from vendor_expense.constants.permissions import ACTIVITIES, SEED_ROOMS
from vendor_expense.errors import StateConflict, ValidationFailed
from vendor_expense.models.room import GrowingRoom
from vendor_expense.models.stage import Stage
from vendor_expense.services.room_cycle import StageCycle, cleared_status

DEFAULT_INTERVAL_BUDGET_DAYS = 60


def interval_budget() -> int:
    return int(current_app.config.get('STAGE_INTERVAL_BUDGET_DAYS', DEFAULT_INTERVAL_BUDGET_DAYS))


def normalize_activities(raw: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise ValidationFailed('activities must be an object')
    unknown = sorted(set(raw) - set(ACTIVITIES))
    if unknown:
        raise ValidationFailed(f'Unknown activities: {unknown}')
    return {a: bool(raw.get(a)) for a in ACTIVITIES}


def total_interval_days(exclude_id: Optional[int] = None, session=None) -> int:
    session = session or get_db()
    q = select(func.coalesce(func.sum(Stage.interval_days), 0))
    if exclude_id is not None:
        q = q.where(Stage.id != exclude_id)
    return int(session.execute(q).scalar_one())


def assert_interval_budget(interval_days: int, exclude_id: Optional[int] = None, session=None):
    """Reject a write that would push the catalog total past the budget."""
    budget = interval_budget()
    total = total_interval_days(exclude_id, session) + interval_days
    if total > budget:
        raise StateConflict(f'Total stage interval exceeds {budget} days')


def assert_unique_stage(name: Optional[str] = None, sequence_order: Optional[int] = None, exclude_id: Optional[int] = None, session=None):
    session = session or get_db()
    if sequence_order is not None:
        q = select(Stage.id).where(Stage.sequence_order == sequence_order)
        if exclude_id is not None:
            q = q.where(Stage.id != exclude_id)
        if session.execute(q).first():
            raise ValidationFailed('Sequence order already in use')
    if name is not None:
        q = select(Stage.id).where(Stage.name == name)
        if exclude_id is not None:
            q = q.where(Stage.id != exclude_id)
        if session.execute(q).first():
            raise ValidationFailed('Stage name already exists')


def catalog_summary(session=None) -> Dict[str, Any]:
    budget = interval_budget()
    total = total_interval_days(session=session)
    return {'totalDays': total, 'budgetDays': budget, 'isValid': total == budget}


def load_cycle(session=None) -> StageCycle:
    session = session or get_db()
    return StageCycle.from_models(session.execute(select(Stage)).scalars().all())


def release_rooms(stage_id: int, session=None) -> List[GrowingRoom]:
    """Return rooms sitting in ``stage_id`` to the unseeded state."""
    session = session or get_db()
    rooms = session.execute(select(GrowingRoom).where(GrowingRoom.current_stage_id == stage_id)).scalars().all()
    for room in rooms:
        room.current_stage = None
        room.current_stage_id = None
        room.stage_started_at = None
        room.activity_day = 0
        room.activity_status = cleared_status()
    return rooms


def ensure_rooms_seeded(session=None) -> List[GrowingRoom]:
    """Create any of the fixed rooms that are missing. Caller commits."""
    session = session or get_db()
    existing = set(session.execute(select(GrowingRoom.name)).scalars().all())
    created = []
    for name in SEED_ROOMS:
        if name in existing:
            continue
        room = GrowingRoom(name=name, max_bag_capacity=0, power_backup_source='', activity_day=0, activity_status=cleared_status())
        session.add(room)
        created.append(room)
    return created


__all__ = [
    'DEFAULT_INTERVAL_BUDGET_DAYS', 'interval_budget', 'normalize_activities', 'total_interval_days',
    'assert_interval_budget', 'assert_unique_stage', 'catalog_summary', 'load_cycle', 'release_rooms',
    'ensure_rooms_seeded',
]
