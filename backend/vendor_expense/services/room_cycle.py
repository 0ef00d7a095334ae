from __future__ import annotations
"""Grow-room stage cycle.

A room is either UNSEEDED (no current stage) or IN_STAGE. Every operation here
is a pure function from (RoomState, StageCycle, now) to a new RoomState; the
route layer loads the rows, calls in, and writes the result back.

    cycle = StageCycle.from_models(stages)
    state = RoomState.from_model(room)
    state, dirty = tick(state, cycle, now)
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from vendor_expense.constants.permissions import ACTIVITIES
from vendor_expense.errors import NotFound, StateConflict, ValidationFailed
from vendor_expense.utils.clock import ensure_aware, to_iso
from vendor_expense.utils.fsm import TransitionValidator

UNSEEDED = 'UNSEEDED'
IN_STAGE = 'IN_STAGE'

ROOM_FSM = TransitionValidator({
    UNSEEDED: {'INIT', 'MOVE'},
    IN_STAGE: {'MOVE', 'ACTIVITY'},
}, field_name='room stage')


def cleared_status() -> Dict[str, bool]:
    return {a: False for a in ACTIVITIES}


@dataclass(frozen=True)
class StageInfo:
    id: int
    name: str
    sequence_order: int
    interval_days: int
    activities: Dict[str, bool] = field(default_factory=cleared_status)

    @classmethod
    def from_model(cls, stage) -> 'StageInfo':
        return cls(
            id=stage.id,
            name=stage.name,
            sequence_order=stage.sequence_order,
            interval_days=stage.interval_days,
            activities=dict(stage.activities),
        )

    def enables(self, activity: str) -> bool:
        return bool(self.activities.get(activity))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'sequenceOrder': self.sequence_order,
            'intervalDays': self.interval_days,
            'activities': dict(self.activities),
        }


class StageCycle:
    """Stages in traversal order (sequence_order, then id)."""

    def __init__(self, stages: Sequence[StageInfo]):
        self.stages: List[StageInfo] = sorted(stages, key=lambda s: (s.sequence_order, s.id))

    @classmethod
    def from_models(cls, stages) -> 'StageCycle':
        return cls([StageInfo.from_model(s) for s in stages])

    def __len__(self):
        return len(self.stages)

    def __bool__(self):
        return bool(self.stages)

    def get(self, stage_id: Optional[int]) -> Optional[StageInfo]:
        if stage_id is None:
            return None
        for s in self.stages:
            if s.id == stage_id:
                return s
        return None

    def first(self) -> StageInfo:
        if not self.stages:
            raise StateConflict('No stages configured')
        for s in self.stages:
            if s.sequence_order == 1:
                return s
        return self.stages[0]

    def successor(self, stage_id: Optional[int]) -> StageInfo:
        """Next stage after ``stage_id``, wrapping last -> first.

        An unknown or missing id yields the first stage in order.
        """
        if not self.stages:
            raise StateConflict('No stages configured')
        ids = [s.id for s in self.stages]
        if stage_id not in ids:
            return self.stages[0]
        return self.stages[(ids.index(stage_id) + 1) % len(self.stages)]


@dataclass(frozen=True)
class RoomState:
    stage_id: Optional[int] = None
    started_at: Optional[datetime] = None
    activity_day: int = 0
    activity_status: Dict[str, bool] = field(default_factory=cleared_status)

    @property
    def phase(self) -> str:
        return IN_STAGE if self.stage_id is not None else UNSEEDED

    @classmethod
    def from_model(cls, room) -> 'RoomState':
        status = cleared_status()
        status.update({k: bool(v) for k, v in (room.activity_status or {}).items() if k in status})
        return cls(
            stage_id=room.current_stage_id,
            started_at=ensure_aware(room.stage_started_at),
            activity_day=room.activity_day or 0,
            activity_status=status,
        )

    def apply_to(self, room):
        room.current_stage_id = self.stage_id
        room.stage_started_at = self.started_at
        room.activity_day = self.activity_day
        room.activity_status = dict(self.activity_status)


def _enter(stage: StageInfo, now: datetime) -> RoomState:
    return RoomState(stage_id=stage.id, started_at=now, activity_day=0, activity_status=cleared_status())


def init_stage(state: RoomState, cycle: StageCycle, now: datetime) -> RoomState:
    ROOM_FSM.assert_can_transition(state.phase, 'INIT', 'Room already has a stage; use move-stage')
    return _enter(cycle.first(), now)


def move_to_next(state: RoomState, cycle: StageCycle, now: datetime) -> RoomState:
    ROOM_FSM.assert_can_transition(state.phase, 'MOVE')
    if state.phase == UNSEEDED:
        return _enter(cycle.first(), now)
    return _enter(cycle.successor(state.stage_id), now)


def move_to_stage(state: RoomState, cycle: StageCycle, target_id: int, now: datetime) -> RoomState:
    ROOM_FSM.assert_can_transition(state.phase, 'MOVE')
    if not cycle:
        raise StateConflict('No stages configured')
    target = cycle.get(target_id)
    if target is None:
        raise NotFound('Target stage not found')
    return _enter(target, now)


def toggle_activity(state: RoomState, cycle: StageCycle, activity: str, done: bool) -> RoomState:
    if activity not in ACTIVITIES:
        raise ValidationFailed(f'activity must be one of {list(ACTIVITIES)}')
    ROOM_FSM.assert_can_transition(state.phase, 'ACTIVITY', 'Room has no active stage')
    stage = cycle.get(state.stage_id)
    if stage is None or not stage.enables(activity):
        raise StateConflict(f'{activity} is not enabled for the current stage')
    status = dict(state.activity_status)
    status[activity] = bool(done)
    return replace(state, activity_status=status)


def days_elapsed(state: RoomState, now: datetime) -> int:
    if state.phase == UNSEEDED or state.started_at is None:
        return 0
    return max(0, (ensure_aware(now) - ensure_aware(state.started_at)) // timedelta(days=1))


def tick(state: RoomState, cycle: StageCycle, now: datetime) -> Tuple[RoomState, bool]:
    """Reset the daily checklist once a day boundary has passed since stage entry."""
    if state.phase != IN_STAGE:
        return state, False
    elapsed = days_elapsed(state, now)
    if elapsed == state.activity_day:
        return state, False
    return replace(state, activity_day=elapsed, activity_status=cleared_status()), True


def describe(state: RoomState, cycle: StageCycle, now: datetime) -> Dict[str, Any]:
    """Derived read model for a single room."""
    current = cycle.get(state.stage_id)
    next_stage = None
    if cycle:
        next_stage = cycle.successor(state.stage_id) if current else cycle.first()
    due_at = None
    if current and state.started_at is not None:
        due_at = ensure_aware(state.started_at) + timedelta(days=current.interval_days)
    return {
        'currentStage': current.to_dict() if current else None,
        'nextStage': next_stage.to_dict() if next_stage else None,
        'stageStartedAt': to_iso(state.started_at) if current else None,
        'daysElapsed': days_elapsed(state, now) if current else 0,
        'intervalDays': current.interval_days if current else None,
        'dueAt': to_iso(due_at),
        'dueNextStage': bool(due_at is not None and ensure_aware(now) >= due_at),
        'activityDay': state.activity_day,
        'activityStatus': dict(state.activity_status),
    }


__all__ = [
    'UNSEEDED', 'IN_STAGE', 'ROOM_FSM', 'StageInfo', 'StageCycle', 'RoomState', 'cleared_status',
    'init_stage', 'move_to_next', 'move_to_stage', 'toggle_activity', 'days_elapsed', 'tick', 'describe',
]
