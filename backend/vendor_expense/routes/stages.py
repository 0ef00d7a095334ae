from __future__ import annotations
from flask import Blueprint, request, current_app
from vendor_expense import get_db
from vendor_expense.models.stage import Stage
from vendor_expense.decorators.auth import require_admin
from vendor_expense.decorators.audit import audit_log
from vendor_expense.errors import ValidationFailed
from vendor_expense.services.stage_catalog import (
    normalize_activities, assert_interval_budget, assert_unique_stage, catalog_summary, release_rooms,
)
from vendor_expense.utils.clock import to_iso
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, ensure_positive_int, ensure_number, ensure_string

stages_bp = Blueprint('stages', __name__)

_TARGETS = {'humidity': 'humidity', 'temperature': 'temperature', 'co2Level': 'co2_level'}


@stages_bp.get('/stages')
@require_admin
def list_stages():
    q = get_db().query(Stage)
    allowed = {'sequence_order': Stage.sequence_order, 'name': Stage.name, 'updated_at': Stage.updated_at, 'id': Stage.id}
    q = apply_multi_sort(q, request.args.get('sort') or 'sequence_order', allowed, Stage.id)
    return respond_list(q, _stage_json)


@stages_bp.get('/stages/summary')
@require_admin
def stage_summary():
    return catalog_summary()


@stages_bp.get('/stages/<int:stage_id>')
@require_admin
def get_stage(stage_id: int):
    s = get_or_404(Stage, stage_id, 'Stage')
    return respond_entity(s, _stage_json(s))


@stages_bp.post('/stages')
@require_admin
@audit_log('STAGE.CREATE', entity='Stage', entity_id_key='id', meta_keys=['name', 'sequenceOrder', 'intervalDays'])
def create_stage():
    session = get_db()
    data = request.json or {}
    require_fields(data, ['name', 'sequenceOrder', 'intervalDays'])
    sequence_order = ensure_positive_int(data['sequenceOrder'], 'sequenceOrder')
    interval_days = ensure_positive_int(data['intervalDays'], 'intervalDays')
    name = ensure_string(data['name'], 'name')
    assert_unique_stage(name=name, sequence_order=sequence_order)
    assert_interval_budget(interval_days)
    s = Stage(name=name, sequence_order=sequence_order, interval_days=interval_days, notes=ensure_string(data.get('notes'), 'notes'))
    for key, attr in _TARGETS.items():
        setattr(s, attr, ensure_number(data.get(key) or 0, key))
    s.activities = normalize_activities(data.get('activities'))
    session.add(s)
    session.commit()
    current_app.logger.info('stage %s created (order %s, %s days)', s.name, s.sequence_order, s.interval_days)
    return _stage_json(s), 201


@stages_bp.put('/stages/<int:stage_id>')
@require_admin
@audit_log('STAGE.UPDATE', entity='Stage', entity_id_key='id',
           diff_keys=['name', 'sequenceOrder', 'intervalDays', 'humidity', 'temperature', 'co2Level', 'notes', 'activities'],
           pre_fetch=lambda a, kw: _prefetch_stage(kw.get('stage_id')))
def update_stage(stage_id: int):
    session = get_db()
    s = get_or_404(Stage, stage_id, 'Stage')
    data = request.json or {}
    if 'sequenceOrder' in data:
        sequence_order = ensure_positive_int(data['sequenceOrder'], 'sequenceOrder')
        assert_unique_stage(sequence_order=sequence_order, exclude_id=s.id)
        s.sequence_order = sequence_order
    if 'name' in data:
        name = ensure_string(data['name'], 'name')
        if not name:
            raise ValidationFailed('name cannot be empty')
        assert_unique_stage(name=name, exclude_id=s.id)
        s.name = name
    if 'intervalDays' in data:
        interval_days = ensure_positive_int(data['intervalDays'], 'intervalDays')
        assert_interval_budget(interval_days, exclude_id=s.id)
        s.interval_days = interval_days
    for key, attr in _TARGETS.items():
        if key in data:
            setattr(s, attr, ensure_number(data[key] or 0, key))
    if 'notes' in data:
        s.notes = ensure_string(data['notes'], 'notes')
    if 'activities' in data:
        s.activities = normalize_activities(data['activities'])
    session.commit()
    return _stage_json(s)


@stages_bp.delete('/stages/<int:stage_id>')
@require_admin
@audit_log('STAGE.DELETE', entity='Stage', entity_id_arg='stage_id', meta_builder=lambda data, rv, a, kw: {'releasedRooms': data.get('releasedRooms')})
def delete_stage(stage_id: int):
    session = get_db()
    s = get_or_404(Stage, stage_id, 'Stage')
    released = release_rooms(s.id)
    session.delete(s)
    session.commit()
    if released:
        current_app.logger.info('stage %s deleted; rooms %s returned to unseeded', stage_id, [r.name for r in released])
    return {'ok': True, 'id': stage_id, 'releasedRooms': [r.id for r in released]}


def _stage_json(s: Stage):
    return {
        'id': s.id,
        'name': s.name,
        'sequenceOrder': s.sequence_order,
        'intervalDays': s.interval_days,
        'humidity': s.humidity,
        'temperature': s.temperature,
        'co2Level': s.co2_level,
        'notes': s.notes or '',
        'activities': s.activities,
        'updatedAt': to_iso(s.updated_at),
    }


def _prefetch_stage(stage_id: int):
    s = get_db().get(Stage, stage_id)
    return _stage_json(s) if s else {}
