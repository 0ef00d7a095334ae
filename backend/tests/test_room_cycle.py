from datetime import datetime, timedelta, timezone
import pytest
from vendor_expense.errors import NotFound, StateConflict, ValidationFailed
from vendor_expense.services import room_cycle
from vendor_expense.services.room_cycle import RoomState, StageCycle, StageInfo, UNSEEDED, IN_STAGE

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _cycle():
    return StageCycle([
        StageInfo(id=30, name='Fruiting', sequence_order=3, interval_days=10, activities={'watering': True, 'ruffling': False, 'thumping': False}),
        StageInfo(id=10, name='Spawn Run', sequence_order=1, interval_days=20, activities={'watering': False, 'ruffling': True, 'thumping': False}),
        StageInfo(id=20, name='Pinning', sequence_order=2, interval_days=30, activities={'watering': True, 'ruffling': False, 'thumping': True}),
    ])


def test_cycle_orders_by_sequence():
    assert [s.id for s in _cycle().stages] == [10, 20, 30]
    assert _cycle().first().id == 10


def test_init_enters_first_stage_with_clean_checklist():
    state = room_cycle.init_stage(RoomState(), _cycle(), T0)
    assert state.phase == IN_STAGE
    assert state.stage_id == 10
    assert state.started_at == T0
    assert state.activity_day == 0
    assert not any(state.activity_status.values())


def test_init_rejected_once_seeded():
    state = room_cycle.init_stage(RoomState(), _cycle(), T0)
    with pytest.raises(StateConflict):
        room_cycle.init_stage(state, _cycle(), T0)


def test_move_walks_the_cycle_and_wraps():
    cycle = _cycle()
    state = room_cycle.init_stage(RoomState(), cycle, T0)
    seen = []
    for i in range(4):
        state = room_cycle.move_to_next(state, cycle, T0 + timedelta(days=i + 1))
        seen.append(state.stage_id)
    assert seen == [20, 30, 10, 20]
    assert state.started_at == T0 + timedelta(days=4)


def test_move_from_unseeded_starts_the_cycle():
    state = room_cycle.move_to_next(RoomState(), _cycle(), T0)
    assert state.stage_id == 10


def test_move_to_explicit_stage():
    cycle = _cycle()
    state = room_cycle.init_stage(RoomState(), cycle, T0)
    state = room_cycle.move_to_stage(state, cycle, 30, T0)
    assert state.stage_id == 30
    with pytest.raises(NotFound):
        room_cycle.move_to_stage(state, cycle, 999, T0)


def test_no_stages_configured():
    empty = StageCycle([])
    with pytest.raises(StateConflict):
        room_cycle.init_stage(RoomState(), empty, T0)
    with pytest.raises(StateConflict):
        room_cycle.move_to_next(RoomState(), empty, T0)


def test_toggle_respects_stage_flags():
    cycle = _cycle()
    state = room_cycle.init_stage(RoomState(), cycle, T0)  # Spawn Run: ruffling only
    state = room_cycle.toggle_activity(state, cycle, 'ruffling', True)
    assert state.activity_status['ruffling'] is True
    for done in (True, False):
        with pytest.raises(StateConflict):
            room_cycle.toggle_activity(state, cycle, 'watering', done)
    state = room_cycle.toggle_activity(state, cycle, 'ruffling', False)
    assert state.activity_status['ruffling'] is False


def test_toggle_rejects_unknown_activity_and_unseeded_room():
    with pytest.raises(ValidationFailed):
        room_cycle.toggle_activity(RoomState(), _cycle(), 'misting', True)
    with pytest.raises(StateConflict):
        room_cycle.toggle_activity(RoomState(), _cycle(), 'watering', True)


def test_tick_clears_checklist_once_per_day_boundary():
    cycle = _cycle()
    state = room_cycle.init_stage(RoomState(), cycle, T0)
    state = room_cycle.toggle_activity(state, cycle, 'ruffling', True)

    same_day, dirty = room_cycle.tick(state, cycle, T0 + timedelta(hours=23))
    assert not dirty and same_day.activity_status['ruffling'] is True

    later = T0 + timedelta(days=2, hours=1)
    reset, dirty = room_cycle.tick(state, cycle, later)
    assert dirty
    assert reset.activity_day == 2
    assert not any(reset.activity_status.values())

    again, dirty = room_cycle.tick(reset, cycle, later + timedelta(hours=3))
    assert not dirty
    assert again == reset


def test_tick_ignores_unseeded_rooms():
    state, dirty = room_cycle.tick(RoomState(), _cycle(), T0)
    assert state.phase == UNSEEDED and not dirty


def test_describe_reports_due_state():
    cycle = _cycle()
    state = room_cycle.init_stage(RoomState(), cycle, T0)
    early = room_cycle.describe(state, cycle, T0 + timedelta(days=5))
    assert early['currentStage']['name'] == 'Spawn Run'
    assert early['nextStage']['name'] == 'Pinning'
    assert early['daysElapsed'] == 5
    assert early['dueNextStage'] is False
    due = room_cycle.describe(state, cycle, T0 + timedelta(days=20))
    assert due['dueNextStage'] is True
    assert due['dueAt'] == '2024-05-21T08:00:00Z'

    idle = room_cycle.describe(RoomState(), cycle, T0)
    assert idle['currentStage'] is None
    assert idle['nextStage']['id'] == 10
    assert idle['daysElapsed'] == 0
