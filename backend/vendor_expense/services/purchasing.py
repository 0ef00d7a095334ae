from __future__ import annotations
"""Vendor/material association and voucher write rules.

Vendor.materials and Material.vendors are two views of the single
``vendor_materials`` table, so writing either side re-syncs the other.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func

from vendor_expense import get_db
from vendor_expense.constants.permissions import DISCOUNT_TYPES, PAYMENT_STATUSES, DiscountType
from vendor_expense.errors import StateConflict, ValidationFailed
from vendor_expense.models.material import Material
from vendor_expense.models.vendor import Vendor
from vendor_expense.models.voucher import Voucher, VoucherItem
from vendor_expense.services.totals import calculate_totals
from vendor_expense.utils.validation import ensure_non_negative, ensure_id_list, validate_status


def load_vendors(vendor_ids: Iterable[int], session=None) -> List[Vendor]:
    ids = list(vendor_ids)
    if not ids:
        return []
    session = session or get_db()
    vendors = session.execute(select(Vendor).where(Vendor.id.in_(ids))).scalars().all()
    if len(vendors) != len(set(ids)):
        raise ValidationFailed('One or more vendors not found')
    return sorted(vendors, key=lambda v: v.id)


def load_materials(material_ids: Iterable[int], session=None) -> List[Material]:
    ids = list(material_ids)
    if not ids:
        return []
    session = session or get_db()
    materials = session.execute(select(Material).where(Material.id.in_(ids))).scalars().all()
    if len(materials) != len(set(ids)):
        raise ValidationFailed('One or more materials not found')
    return sorted(materials, key=lambda m: m.id)


def sync_material_vendors(material: Material, vendor_ids: Any, session=None) -> List[int]:
    """Make ``vendor_ids`` the exact vendor set of ``material``; idempotent."""
    ids = ensure_id_list(vendor_ids, 'vendorIds')
    material.vendors = load_vendors(ids, session)
    return material.vendor_ids


def sync_vendor_materials(vendor: Vendor, material_ids: Any, session=None) -> List[int]:
    """Make ``material_ids`` the exact material set of ``vendor``; idempotent."""
    ids = ensure_id_list(material_ids, 'materialsSupplied')
    vendor.materials = load_materials(ids, session)
    return vendor.material_ids


def assert_vendor_deletable(vendor: Vendor, session=None):
    session = session or get_db()
    if session.execute(select(func.count(Voucher.id)).where(Voucher.vendor_id == vendor.id)).scalar_one():
        raise StateConflict('Vendor is referenced by vouchers')


def assert_material_deletable(material: Material, session=None):
    session = session or get_db()
    if session.execute(select(func.count(VoucherItem.id)).where(VoucherItem.material_id == material.id)).scalar_one():
        raise StateConflict('Material is referenced by vouchers')


def normalize_items(raw_items: Any) -> List[Dict[str, Any]]:
    """Validate line items; quantities and unit prices must be non-negative numbers."""
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationFailed('items must be a non-empty array')
    items = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationFailed(f'items[{idx}] must be an object')
        material_id = raw.get('materialId')
        if material_id is None or material_id == '':
            raise ValidationFailed(f'items[{idx}].materialId required')
        try:
            material_id = int(material_id)
        except (TypeError, ValueError):
            raise ValidationFailed(f'items[{idx}].materialId invalid')
        items.append({
            'material_id': material_id,
            'quantity': ensure_non_negative(raw.get('quantity'), 'quantity'),
            'price_per_unit': ensure_non_negative(raw.get('pricePerUnit'), 'pricePerUnit'),
            'comment': raw.get('comment') or '',
        })
    return items


def validate_vendor_material_mapping(vendor: Vendor, items: List[Dict[str, Any]], session=None):
    materials = load_materials({i['material_id'] for i in items}, session)
    for material in materials:
        if vendor.id not in material.vendor_ids:
            raise ValidationFailed(f'Material {material.name} not mapped to vendor')


def resolve_vendor(vendor_id: Any, session=None) -> Vendor:
    """Voucher vendor reference; a missing vendor is a bad payload, not a 404."""
    session = session or get_db()
    try:
        vendor = session.get(Vendor, int(vendor_id))
    except (TypeError, ValueError):
        vendor = None
    if not vendor:
        raise ValidationFailed('Vendor not found')
    return vendor


def pricing_terms(data: Dict[str, Any], voucher: Optional[Voucher] = None) -> Dict[str, Any]:
    """taxPercent/discountType/discountValue from the payload, falling back to the stored voucher."""
    tax = data.get('taxPercent', voucher.tax_percent if voucher else 0)
    discount_type = data.get('discountType', voucher.discount_type if voucher else DiscountType.NONE.value)
    discount_value = data.get('discountValue', voucher.discount_value if voucher else 0)
    return {
        'tax_percent': ensure_non_negative(tax or 0, 'taxPercent'),
        'discount_type': validate_status(discount_type or DiscountType.NONE.value, DISCOUNT_TYPES, 'discountType'),
        'discount_value': ensure_non_negative(discount_value or 0, 'discountValue'),
    }


def apply_items_and_totals(voucher: Voucher, items: List[Dict[str, Any]], terms: Dict[str, Any]):
    voucher.items = [VoucherItem(position=pos, **item) for pos, item in enumerate(items)]
    totals = calculate_totals(items, terms['tax_percent'], terms['discount_type'], terms['discount_value'])
    voucher.tax_percent = terms['tax_percent']
    voucher.discount_type = terms['discount_type']
    voucher.discount_value = terms['discount_value']
    voucher.sub_total = totals['sub_total']
    voucher.tax_amount = totals['tax_amount']
    voucher.final_amount = totals['final_amount']


def stored_items(voucher: Voucher) -> List[Dict[str, Any]]:
    return [
        {'material_id': i.material_id, 'quantity': i.quantity, 'price_per_unit': i.price_per_unit, 'comment': i.comment or ''}
        for i in voucher.items
    ]


def apply_payment_status(voucher: Voucher, status: str, actor_name: Optional[str], now: datetime) -> bool:
    """Set payment status; stamps who/when only on an actual change. Returns whether it changed."""
    validate_status(status, PAYMENT_STATUSES, 'paymentStatus')
    if voucher.payment_status == status:
        return False
    voucher.payment_status = status
    voucher.status_updated_by_name = actor_name or ''
    voucher.status_updated_at = now
    return True


__all__ = [
    'load_vendors', 'load_materials', 'sync_material_vendors', 'sync_vendor_materials',
    'assert_vendor_deletable', 'assert_material_deletable', 'normalize_items',
    'validate_vendor_material_mapping', 'resolve_vendor', 'pricing_terms', 'apply_items_and_totals',
    'stored_items', 'apply_payment_status',
]
