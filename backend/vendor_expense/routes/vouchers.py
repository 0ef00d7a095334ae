from __future__ import annotations
from flask import Blueprint, request, current_app
from vendor_expense import get_db
from vendor_expense.constants.permissions import PAYMENT_STATUSES
from vendor_expense.models.voucher import Voucher
from vendor_expense.decorators.auth import require_permission
from vendor_expense.decorators.audit import audit_log
from vendor_expense.errors import ValidationFailed
from vendor_expense.services.audit import add_audit
from vendor_expense.services.policy import current_user
from vendor_expense.services.purchasing import (
    resolve_vendor, normalize_items, validate_vendor_material_mapping, pricing_terms,
    apply_items_and_totals, stored_items, apply_payment_status,
)
from vendor_expense.utils.clock import utcnow, to_iso
from vendor_expense.utils.filters import apply_filters
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, validate_status, ensure_datetime, ensure_string

vouchers_bp = Blueprint('vouchers', __name__)


@vouchers_bp.get('/vouchers')
@require_permission('vouchers', 'view')
def list_vouchers():
    q = get_db().query(Voucher)
    filter_specs = {
        'vendorId': {'coerce': int, 'op': lambda qu, v: qu.filter(Voucher.vendor_id == v)},
        'paymentStatus': {'op': lambda qu, v: qu.filter(Voucher.payment_status == v), 'validate': lambda v: v in PAYMENT_STATUSES},
        'start': {'coerce': lambda v: ensure_datetime(v, 'start'), 'op': lambda qu, v: qu.filter(Voucher.date_of_purchase >= v)},
        'end': {'coerce': lambda v: ensure_datetime(v, 'end'), 'op': lambda qu, v: qu.filter(Voucher.date_of_purchase <= v)},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'date_of_purchase': Voucher.date_of_purchase,
        'final_amount': Voucher.final_amount,
        'payment_status': Voucher.payment_status,
        'updated_at': Voucher.updated_at,
        'id': Voucher.id,
    }
    # newest purchases first unless told otherwise
    q = apply_multi_sort(q, request.args.get('sort') or '-date_of_purchase', allowed, Voucher.id)
    return respond_list(q, _voucher_json)


@vouchers_bp.get('/vouchers/<int:voucher_id>')
@require_permission('vouchers', 'view')
def get_voucher(voucher_id: int):
    v = get_or_404(Voucher, voucher_id, 'Voucher')
    return respond_entity(v, _voucher_json(v))


@vouchers_bp.post('/vouchers')
@require_permission('vouchers', 'create')
@audit_log('VOUCHER.CREATE', entity='Voucher', entity_id_key='id', meta_keys=['vendorId', 'finalAmount', 'paymentStatus'])
def create_voucher():
    session = get_db()
    data = request.json or {}
    require_fields(data, ['vendorId', 'items', 'dateOfPurchase', 'paymentMethod', 'paymentStatus'])
    vendor = resolve_vendor(data['vendorId'])
    items = normalize_items(data['items'])
    validate_vendor_material_mapping(vendor, items)
    terms = pricing_terms(data)
    actor = current_user()
    now = utcnow()
    v = Voucher(
        vendor_id=vendor.id,
        date_of_purchase=ensure_datetime(data['dateOfPurchase'], 'dateOfPurchase'),
        payment_method=ensure_string(data['paymentMethod'], 'paymentMethod'),
        payment_status=validate_status(data['paymentStatus'], PAYMENT_STATUSES, 'paymentStatus'),
        payment_date=ensure_datetime(data.get('paymentDate'), 'paymentDate'),
        paid_by_mode=ensure_string(data.get('paidByMode'), 'paidByMode'),
        payment_comments=ensure_string(data.get('paymentComments'), 'paymentComments'),
        created_by_name=actor.name,
        status_updated_by_name=actor.name,
        status_updated_at=now,
    )
    apply_items_and_totals(v, items, terms)
    session.add(v)
    session.commit()
    current_app.logger.info('voucher %s created for vendor %s: %.2f', v.id, vendor.id, v.final_amount)
    return _voucher_json(v), 201


@vouchers_bp.put('/vouchers/<int:voucher_id>')
@require_permission('vouchers', 'edit')
@audit_log('VOUCHER.UPDATE', entity='Voucher', entity_id_key='id',
           diff_keys=['vendorId', 'dateOfPurchase', 'items', 'taxPercent', 'discountType', 'discountValue', 'finalAmount', 'paymentMethod'],
           pre_fetch=lambda a, kw: _prefetch_voucher(kw.get('voucher_id')))
def update_voucher(voucher_id: int):
    session = get_db()
    v = get_or_404(Voucher, voucher_id, 'Voucher')
    data = request.json or {}
    vendor = resolve_vendor(data['vendorId']) if data.get('vendorId') is not None else v.vendor
    items = normalize_items(data['items']) if 'items' in data else stored_items(v)
    validate_vendor_material_mapping(vendor, items)
    terms = pricing_terms(data, v)
    v.vendor_id = vendor.id
    v.vendor = vendor
    apply_items_and_totals(v, items, terms)
    if data.get('dateOfPurchase'):
        v.date_of_purchase = ensure_datetime(data['dateOfPurchase'], 'dateOfPurchase')
    if 'paymentMethod' in data:
        payment_method = ensure_string(data['paymentMethod'], 'paymentMethod')
        if not payment_method:
            raise ValidationFailed('paymentMethod cannot be empty')
        v.payment_method = payment_method
    _apply_payment_fields(v, data)
    session.commit()
    return _voucher_json(v)


@vouchers_bp.post('/vouchers/<int:voucher_id>/payment-status')
@require_permission('vouchers', 'edit')
def change_payment_status(voucher_id: int):
    session = get_db()
    v = get_or_404(Voucher, voucher_id, 'Voucher')
    data = request.json or {}
    require_fields(data, ['paymentStatus'])
    _apply_payment_fields(v, data)
    session.commit()
    return _voucher_json(v)


@vouchers_bp.delete('/vouchers/<int:voucher_id>')
@require_permission('vouchers', 'delete')
@audit_log('VOUCHER.DELETE', entity='Voucher', entity_id_arg='voucher_id')
def delete_voucher(voucher_id: int):
    session = get_db()
    v = get_or_404(Voucher, voucher_id, 'Voucher')
    session.delete(v)
    session.commit()
    current_app.logger.info('voucher %s deleted', voucher_id)
    return {'ok': True, 'id': voucher_id}


def _apply_payment_fields(v: Voucher, data: dict):
    """paymentStatus plus its companion fields; status changes are stamped and audited."""
    if data.get('paymentStatus'):
        before = v.payment_status
        actor = current_user()
        if apply_payment_status(v, data['paymentStatus'], actor.name, utcnow()):
            add_audit('VOUCHER.PAYMENT_STATUS', 'Voucher', v.id, {'before': before, 'after': v.payment_status, 'by': actor.name})
            current_app.logger.info('voucher %s payment status %s -> %s by %s', v.id, before, v.payment_status, actor.name)
    if 'paymentDate' in data:
        v.payment_date = ensure_datetime(data['paymentDate'], 'paymentDate')
    if 'paidByMode' in data:
        v.paid_by_mode = ensure_string(data['paidByMode'], 'paidByMode')
    if 'paymentComments' in data:
        v.payment_comments = ensure_string(data['paymentComments'], 'paymentComments')


def _item_json(i):
    return {
        'materialId': i.material_id,
        'materialName': i.material.name if i.material else None,
        'quantity': i.quantity,
        'pricePerUnit': i.price_per_unit,
        'comment': i.comment or '',
    }


def _voucher_json(v: Voucher):
    return {
        'id': v.id,
        'vendorId': v.vendor_id,
        'vendorName': v.vendor.name if v.vendor else None,
        'dateOfPurchase': to_iso(v.date_of_purchase),
        'items': [_item_json(i) for i in v.items],
        'subTotal': v.sub_total,
        'taxPercent': v.tax_percent,
        'taxAmount': v.tax_amount,
        'discountType': v.discount_type,
        'discountValue': v.discount_value,
        'finalAmount': v.final_amount,
        'paymentMethod': v.payment_method,
        'paymentStatus': v.payment_status,
        'paymentDate': to_iso(v.payment_date),
        'paidByMode': v.paid_by_mode or '',
        'paymentComments': v.payment_comments or '',
        'createdByName': v.created_by_name or '',
        'statusUpdatedByName': v.status_updated_by_name or '',
        'statusUpdatedAt': to_iso(v.status_updated_at),
        'updatedAt': to_iso(v.updated_at),
    }


def _prefetch_voucher(voucher_id: int):
    v = get_db().get(Voucher, voucher_id)
    return _voucher_json(v) if v else {}
