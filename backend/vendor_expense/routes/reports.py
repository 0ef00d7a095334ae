from __future__ import annotations
from flask import Blueprint, request
from sqlalchemy import func, and_
from vendor_expense.decorators.auth import require_permission
from vendor_expense import get_db
from vendor_expense.models.material import Material
from vendor_expense.models.vendor import Vendor
from vendor_expense.models.voucher import Voucher, VoucherItem
from vendor_expense.utils.validation import ensure_datetime

rpt_bp = Blueprint('reports', __name__)

TOP_N = 5


def _date_window():
    """start/end query params bounding Voucher.date_of_purchase (inclusive)."""
    start = ensure_datetime(request.args.get('start'), 'start')
    end = ensure_datetime(request.args.get('end'), 'end')
    filters = []
    if start:
        filters.append(Voucher.date_of_purchase >= start)
    if end:
        filters.append(Voucher.date_of_purchase <= end)
    return filters


def _vendor_expenses(filters, limit=None):
    session = get_db()
    spend = func.coalesce(func.sum(Voucher.final_amount), 0)
    q = session.query(Vendor.id, Vendor.name, spend.label('total_spend'), func.count(Voucher.id))
    q = q.join(Voucher, Voucher.vendor_id == Vendor.id)
    if filters:
        q = q.filter(and_(*filters))
    q = q.group_by(Vendor.id, Vendor.name).order_by(spend.desc(), Vendor.id.asc())
    if limit:
        q = q.limit(limit)
    return [
        {'vendorId': vid, 'vendorName': name, 'totalSpend': float(total), 'voucherCount': int(count)}
        for vid, name, total, count in q.all()
    ]


def _material_summary(filters, limit=None):
    session = get_db()
    spend = func.coalesce(func.sum(VoucherItem.quantity * VoucherItem.price_per_unit), 0)
    q = session.query(Material.id, Material.name, Material.unit, func.coalesce(func.sum(VoucherItem.quantity), 0), spend.label('total_spend'))
    q = q.join(VoucherItem, VoucherItem.material_id == Material.id).join(Voucher, Voucher.id == VoucherItem.voucher_id)
    if filters:
        q = q.filter(and_(*filters))
    q = q.group_by(Material.id, Material.name, Material.unit).order_by(spend.desc(), Material.id.asc())
    if limit:
        q = q.limit(limit)
    return [
        {'materialId': mid, 'materialName': name, 'unit': unit or '', 'totalQuantity': float(qty), 'totalSpend': float(total)}
        for mid, name, unit, qty, total in q.all()
    ]


def _expense_summary(filters):
    session = get_db()
    q = session.query(
        func.coalesce(func.sum(Voucher.final_amount), 0),
        func.coalesce(func.sum(Voucher.tax_amount), 0),
        func.count(Voucher.id),
    )
    if filters:
        q = q.filter(and_(*filters))
    total_spend, total_tax, count = q.one()
    return {'totalSpend': float(total_spend), 'totalTax': float(total_tax), 'voucherCount': int(count)}


def _grouped_totals(column, filters):
    session = get_db()
    q = session.query(column, func.coalesce(func.sum(Voucher.final_amount), 0), func.count(Voucher.id))
    if filters:
        q = q.filter(and_(*filters))
    q = q.group_by(column).order_by(column.asc())
    return [{'key': key, 'total': float(total), 'count': int(count)} for key, total, count in q.all()]


@rpt_bp.get('/vendor-expenses')
@require_permission('reports', 'view')
def vendor_expenses():
    return {'data': _vendor_expenses(_date_window())}


@rpt_bp.get('/material-summary')
@require_permission('reports', 'view')
def material_summary():
    return {'data': _material_summary(_date_window())}


@rpt_bp.get('/expenses')
@require_permission('reports', 'view')
def expenses():
    return _expense_summary(_date_window())


@rpt_bp.get('/tax-payments')
@require_permission('reports', 'view')
def tax_payments():
    filters = _date_window()
    summary = _expense_summary(filters)
    return {
        'tax': {'totalTax': summary['totalTax'], 'totalPayable': summary['totalSpend']},
        'paymentStatus': _grouped_totals(Voucher.payment_status, filters),
        'paymentMethod': _grouped_totals(Voucher.payment_method, filters),
    }


@rpt_bp.get('/dashboard')
@require_permission('dashboard', 'view')
def dashboard():
    filters = _date_window()
    return {
        'expenses': _expense_summary(filters),
        'topVendors': _vendor_expenses(filters, TOP_N),
        'topMaterials': _material_summary(filters, TOP_N),
    }
