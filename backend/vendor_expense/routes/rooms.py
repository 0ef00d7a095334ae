from __future__ import annotations
from flask import Blueprint, request, current_app
from sqlalchemy import select
from vendor_expense import get_db
from vendor_expense.models.room import GrowingRoom
from vendor_expense.decorators.auth import require_admin, require_permission, require_any_permission
from vendor_expense.decorators.audit import audit_log
from vendor_expense.errors import ValidationFailed
from vendor_expense.services import room_cycle
from vendor_expense.services.room_cycle import RoomState
from vendor_expense.services.stage_catalog import load_cycle
from vendor_expense.utils.clock import utcnow, to_iso
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, ensure_non_negative, ensure_string

rooms_bp = Blueprint('rooms', __name__)


@rooms_bp.get('/rooms')
@require_admin
def list_rooms():
    q = get_db().query(GrowingRoom)
    allowed = {'name': GrowingRoom.name, 'updated_at': GrowingRoom.updated_at, 'id': GrowingRoom.id}
    q = apply_multi_sort(q, request.args.get('sort') or 'name', allowed, GrowingRoom.id)
    cycle = load_cycle()
    return respond_list(q, lambda r: _room_json(r, cycle))


@rooms_bp.get('/rooms/status')
@require_any_permission(('roomStages', 'view'), ('roomStages', 'edit'), ('roomActivities', 'view'), ('roomActivities', 'edit'))
def room_status():
    """Status board. Rooms that crossed a day boundary get their checklist cleared and saved."""
    session = get_db()
    rooms = session.execute(select(GrowingRoom).order_by(GrowingRoom.name.asc())).scalars().all()
    cycle = load_cycle()
    now = utcnow()
    results = []
    reset = []
    for room in rooms:
        state, dirty = room_cycle.tick(RoomState.from_model(room), cycle, now)
        if dirty:
            state.apply_to(room)
            reset.append(room.name)
        results.append({'id': room.id, 'name': room.name, **room_cycle.describe(state, cycle, now)})
    if reset:
        session.commit()
        current_app.logger.info('daily activity checklist reset for rooms %s', reset)
    return {'data': results}


@rooms_bp.get('/rooms/<int:room_id>')
@require_admin
def get_room(room_id: int):
    room = get_or_404(GrowingRoom, room_id, 'Room')
    return respond_entity(room, _room_json(room, load_cycle()))


@rooms_bp.post('/rooms')
@require_admin
@audit_log('ROOM.CREATE', entity='GrowingRoom', entity_id_key='id', meta_keys=['name', 'maxBagCapacity'])
def create_room():
    session = get_db()
    data = request.json or {}
    require_fields(data, ['name', 'maxBagCapacity'])
    name = ensure_string(data['name'], 'name')
    _assert_unique_name(name)
    room = GrowingRoom(
        name=name,
        max_bag_capacity=ensure_non_negative(data['maxBagCapacity'], 'maxBagCapacity'),
        power_backup_source=ensure_string(data.get('powerBackupSource'), 'powerBackupSource'),
        activity_day=0,
        activity_status=room_cycle.cleared_status(),
    )
    session.add(room)
    session.commit()
    return _room_json(room, load_cycle()), 201


@rooms_bp.put('/rooms/<int:room_id>')
@require_admin
@audit_log('ROOM.UPDATE', entity='GrowingRoom', entity_id_key='id', diff_keys=['name', 'maxBagCapacity', 'powerBackupSource'],
           pre_fetch=lambda a, kw: _prefetch_room(kw.get('room_id')))
def update_room(room_id: int):
    session = get_db()
    room = get_or_404(GrowingRoom, room_id, 'Room')
    data = request.json or {}
    if 'name' in data:
        name = ensure_string(data['name'], 'name')
        if not name:
            raise ValidationFailed('name cannot be empty')
        _assert_unique_name(name, room.id)
        room.name = name
    if 'maxBagCapacity' in data:
        room.max_bag_capacity = ensure_non_negative(data['maxBagCapacity'], 'maxBagCapacity')
    if 'powerBackupSource' in data:
        room.power_backup_source = ensure_string(data['powerBackupSource'], 'powerBackupSource')
    session.commit()
    return _room_json(room, load_cycle())


@rooms_bp.delete('/rooms/<int:room_id>')
@require_admin
@audit_log('ROOM.DELETE', entity='GrowingRoom', entity_id_arg='room_id')
def delete_room(room_id: int):
    session = get_db()
    room = get_or_404(GrowingRoom, room_id, 'Room')
    session.delete(room)
    session.commit()
    return {'ok': True, 'id': room_id}


@rooms_bp.post('/rooms/<int:room_id>/init-stage')
@require_permission('roomStages', 'edit')
@audit_log('ROOM.STAGE.INIT', entity='GrowingRoom', entity_id_key='id', meta_keys=['currentStageId'])
def init_stage(room_id: int):
    room = get_or_404(GrowingRoom, room_id, 'Room')
    cycle = load_cycle()
    state = room_cycle.init_stage(RoomState.from_model(room), cycle, utcnow())
    return _save_transition(room, state, cycle, 'init')


@rooms_bp.post('/rooms/<int:room_id>/move-stage')
@require_permission('roomStages', 'edit')
@audit_log('ROOM.STAGE.MOVE', entity='GrowingRoom', entity_id_key='id', diff_keys=['currentStageId'],
           pre_fetch=lambda a, kw: _prefetch_room(kw.get('room_id')))
def move_stage(room_id: int):
    room = get_or_404(GrowingRoom, room_id, 'Room')
    data = request.json or {}
    cycle = load_cycle()
    current = RoomState.from_model(room)
    now = utcnow()
    target = data.get('stageId')
    if target is not None and target != '':
        try:
            target = int(target)
        except (TypeError, ValueError):
            raise ValidationFailed('stageId must be an integer')
        state = room_cycle.move_to_stage(current, cycle, target, now)
    else:
        state = room_cycle.move_to_next(current, cycle, now)
    return _save_transition(room, state, cycle, 'move')


@rooms_bp.post('/rooms/<int:room_id>/activities')
@require_permission('roomActivities', 'edit')
@audit_log('ROOM.ACTIVITY', entity='GrowingRoom', entity_id_key='id',
           meta_builder=lambda data, rv, a, kw: {'activityStatus': data.get('activityStatus')})
def toggle_activity(room_id: int):
    session = get_db()
    room = get_or_404(GrowingRoom, room_id, 'Room')
    data = request.json or {}
    require_fields(data, ['activity'])
    activity = ensure_string(data['activity'], 'activity')
    cycle = load_cycle()
    # settle the day boundary first so a toggle never lands on yesterday's checklist
    state, _ = room_cycle.tick(RoomState.from_model(room), cycle, utcnow())
    state = room_cycle.toggle_activity(state, cycle, activity, bool(data.get('done')))
    state.apply_to(room)
    session.commit()
    return _room_json(room, cycle)


def _save_transition(room: GrowingRoom, state: RoomState, cycle, verb: str):
    before = room.current_stage_id
    state.apply_to(room)
    get_db().commit()
    stage = cycle.get(state.stage_id)
    current_app.logger.info('room %s stage %s: %s -> %s (%s)', room.name, verb, before, state.stage_id, stage.name if stage else None)
    return _room_json(room, cycle)


def _assert_unique_name(name: str, exclude_id: int = None):
    q = select(GrowingRoom.id).where(GrowingRoom.name == name)
    if exclude_id is not None:
        q = q.where(GrowingRoom.id != exclude_id)
    if get_db().execute(q).first():
        raise ValidationFailed('Room name already exists')


def _room_json(room: GrowingRoom, cycle):
    stage = cycle.get(room.current_stage_id)
    return {
        'id': room.id,
        'name': room.name,
        'maxBagCapacity': room.max_bag_capacity,
        'powerBackupSource': room.power_backup_source or '',
        'currentStageId': room.current_stage_id,
        'currentStage': stage.to_dict() if stage else None,
        'stageStartedAt': to_iso(room.stage_started_at),
        'activityDay': room.activity_day,
        'activityStatus': dict(room.activity_status or room_cycle.cleared_status()),
        'updatedAt': to_iso(room.updated_at),
    }


def _prefetch_room(room_id: int):
    room = get_db().get(GrowingRoom, room_id)
    return _room_json(room, load_cycle()) if room else {}
