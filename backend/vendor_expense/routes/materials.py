from __future__ import annotations
from flask import Blueprint, request, current_app
from sqlalchemy import select
from vendor_expense import get_db
from vendor_expense.models.material import Material
from vendor_expense.models.vendor import vendor_materials
from vendor_expense.decorators.auth import require_permission
from vendor_expense.decorators.audit import audit_log
from vendor_expense.errors import ValidationFailed
from vendor_expense.services.purchasing import sync_material_vendors, assert_material_deletable
from vendor_expense.utils.clock import to_iso
from vendor_expense.utils.filters import apply_filters
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, ensure_string

materials_bp = Blueprint('materials', __name__)

_EDITABLE = ('name', 'category', 'unit', 'description')


@materials_bp.get('/materials')
@require_permission('materials', 'view')
def list_materials():
    q = get_db().query(Material)
    filter_specs = {
        'name': {'op': lambda qu, v: qu.filter(Material.name.ilike(f'%{v}%'))},
        'category': {'op': lambda qu, v: qu.filter(Material.category == v)},
        'vendorId': {'coerce': int, 'op': lambda qu, v: qu.filter(Material.id.in_(
            select(vendor_materials.c.material_id).where(vendor_materials.c.vendor_id == v)))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {'name': Material.name, 'category': Material.category, 'updated_at': Material.updated_at, 'id': Material.id}
    # default listing is alphabetical
    q = apply_multi_sort(q, request.args.get('sort') or 'name', allowed, Material.id)
    return respond_list(q, _material_json)


@materials_bp.get('/materials/<int:material_id>')
@require_permission('materials', 'view')
def get_material(material_id: int):
    m = get_or_404(Material, material_id, 'Material')
    return respond_entity(m, _material_json(m))


@materials_bp.post('/materials')
@require_permission('materials', 'create')
@audit_log('MATERIAL.CREATE', entity='Material', entity_id_key='id', meta_keys=['name', 'vendorIds'])
def create_material():
    session = get_db()
    data = request.json or {}
    require_fields(data, ['name'])
    m = Material(**{k: ensure_string(data.get(k), k) for k in _EDITABLE})
    session.add(m)
    sync_material_vendors(m, data.get('vendorIds') or [])
    session.commit()
    return _material_json(m), 201


@materials_bp.put('/materials/<int:material_id>')
@require_permission('materials', 'edit')
@audit_log('MATERIAL.UPDATE', entity='Material', entity_id_key='id', diff_keys=['name', 'category', 'unit', 'description', 'vendorIds'],
           pre_fetch=lambda a, kw: _prefetch_material(kw.get('material_id')))
def update_material(material_id: int):
    session = get_db()
    m = get_or_404(Material, material_id, 'Material')
    data = request.json or {}
    for key in _EDITABLE:
        if key in data:
            setattr(m, key, ensure_string(data[key], key))
    if not m.name:
        raise ValidationFailed('name cannot be empty')
    if 'vendorIds' in data:
        sync_material_vendors(m, data['vendorIds'])
    session.commit()
    return _material_json(m)


@materials_bp.delete('/materials/<int:material_id>')
@require_permission('materials', 'delete')
@audit_log('MATERIAL.DELETE', entity='Material', entity_id_arg='material_id')
def delete_material(material_id: int):
    session = get_db()
    m = get_or_404(Material, material_id, 'Material')
    assert_material_deletable(m)
    m.vendors = []
    session.delete(m)
    session.commit()
    current_app.logger.info('material %s deleted', material_id)
    return {'ok': True, 'id': material_id}


def _material_json(m: Material):
    return {
        'id': m.id,
        'name': m.name,
        'category': m.category or '',
        'unit': m.unit or '',
        'description': m.description or '',
        'vendorIds': m.vendor_ids,
        'updatedAt': to_iso(m.updated_at),
    }


def _prefetch_material(material_id: int):
    m = get_db().get(Material, material_id)
    return _material_json(m) if m else {}
