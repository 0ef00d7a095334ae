from __future__ import annotations
from flask import Blueprint, request, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select
from vendor_expense import get_db
from vendor_expense.models.vendor import Vendor, vendor_materials
from vendor_expense.decorators.auth import require_permission
from vendor_expense.decorators.audit import audit_log
from vendor_expense.errors import ValidationFailed
from vendor_expense.services.purchasing import sync_vendor_materials, assert_vendor_deletable
from vendor_expense.utils.clock import to_iso
from vendor_expense.utils.filters import apply_filters
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, validate_status, ensure_string

vendors_bp = Blueprint('vendors', __name__)

_EDITABLE = {
    'name': 'name',
    'address': 'address',
    'contactPerson': 'contact_person',
    'contactNumber': 'contact_number',
    'email': 'email',
}


@vendors_bp.get('/vendors')
@require_permission('vendors', 'view')
def list_vendors():
    q = get_db().query(Vendor)
    filter_specs = {
        'name': {'op': lambda qu, v: qu.filter(Vendor.name.ilike(f'%{v}%'))},
        'status': {'op': lambda qu, v: qu.filter(Vendor.status == v), 'validate': lambda v: v in Vendor.ALL_STATUSES},
        'materialId': {'coerce': int, 'op': lambda qu, v: qu.filter(Vendor.id.in_(
            select(vendor_materials.c.vendor_id).where(vendor_materials.c.material_id == v)))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'name': Vendor.name,
        'status': Vendor.status,
        'updated_at': Vendor.updated_at,
        'id': Vendor.id
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Vendor.id)
    return respond_list(q, _vendor_json)


@vendors_bp.get('/vendors/<int:vendor_id>')
@require_permission('vendors', 'view')
def get_vendor(vendor_id: int):
    v = get_or_404(Vendor, vendor_id, 'Vendor')
    return respond_entity(v, _vendor_json(v))


@vendors_bp.post('/vendors')
@require_permission('vendors', 'create')
@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='id', meta_keys=['name', 'materialsSupplied'])
def create_vendor():
    session = get_db()
    data = request.json or {}
    require_fields(data, ['name'])
    status = validate_status(data.get('status') or Vendor.STATUS_ACTIVE, Vendor.ALL_STATUSES, 'status')
    v = Vendor(status=status, created_by=int(get_jwt_identity()))
    for key, attr in _EDITABLE.items():
        setattr(v, attr, ensure_string(data.get(key), key))
    session.add(v)
    sync_vendor_materials(v, data.get('materialsSupplied') or [])
    session.commit()
    return _vendor_json(v), 201


@vendors_bp.put('/vendors/<int:vendor_id>')
@require_permission('vendors', 'edit')
@audit_log('VENDOR.UPDATE', entity='Vendor', entity_id_key='id',
           diff_keys=['name', 'address', 'contactPerson', 'contactNumber', 'email', 'status', 'materialsSupplied'],
           pre_fetch=lambda a, kw: _prefetch_vendor(kw.get('vendor_id')))
def update_vendor(vendor_id: int):
    session = get_db()
    v = get_or_404(Vendor, vendor_id, 'Vendor')
    data = request.json or {}
    for key, attr in _EDITABLE.items():
        if key in data:
            setattr(v, attr, ensure_string(data[key], key))
    if not v.name:
        raise ValidationFailed('name cannot be empty')
    if 'status' in data:
        v.status = validate_status(data['status'], Vendor.ALL_STATUSES, 'status')
    if 'materialsSupplied' in data:
        sync_vendor_materials(v, data['materialsSupplied'])
    session.commit()
    return _vendor_json(v)


@vendors_bp.post('/vendors/<int:vendor_id>/activate')
@require_permission('vendors', 'edit')
@audit_log('VENDOR.ACTIVATE', entity='Vendor', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_vendor(kw.get('vendor_id')), meta_keys=['status'])
def activate_vendor(vendor_id: int):
    return _set_status(vendor_id, Vendor.STATUS_ACTIVE)


@vendors_bp.post('/vendors/<int:vendor_id>/deactivate')
@require_permission('vendors', 'edit')
@audit_log('VENDOR.DEACTIVATE', entity='Vendor', entity_id_key='id', diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_vendor(kw.get('vendor_id')), meta_keys=['status'])
def deactivate_vendor(vendor_id: int):
    return _set_status(vendor_id, Vendor.STATUS_INACTIVE)


@vendors_bp.delete('/vendors/<int:vendor_id>')
@require_permission('vendors', 'delete')
@audit_log('VENDOR.DELETE', entity='Vendor', entity_id_arg='vendor_id')
def delete_vendor(vendor_id: int):
    session = get_db()
    v = get_or_404(Vendor, vendor_id, 'Vendor')
    assert_vendor_deletable(v)
    v.materials = []
    session.delete(v)
    session.commit()
    current_app.logger.info('vendor %s deleted', vendor_id)
    return {'ok': True, 'id': vendor_id}


def _set_status(vendor_id: int, status: str):
    session = get_db()
    v = get_or_404(Vendor, vendor_id, 'Vendor')
    if v.status == status:
        raise ValidationFailed(f'already {status.lower()}')
    v.status = validate_status(status, Vendor.ALL_STATUSES, 'status')
    session.commit()
    return _vendor_json(v)


def _vendor_json(v: Vendor):
    return {
        'id': v.id,
        'name': v.name,
        'address': v.address or '',
        'contactPerson': v.contact_person or '',
        'contactNumber': v.contact_number or '',
        'email': v.email or '',
        'status': v.status,
        'materialsSupplied': v.material_ids,
        'updatedAt': to_iso(v.updated_at),
    }


def _prefetch_vendor(vendor_id: int):
    v = get_db().get(Vendor, vendor_id)
    return _vendor_json(v) if v else {}
