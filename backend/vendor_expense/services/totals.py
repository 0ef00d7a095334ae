from __future__ import annotations
"""Voucher totals.

Pure arithmetic over already-validated line items; no rounding is applied,
display rounding belongs to the client.
"""
from typing import Any, Dict, Iterable, Mapping

from vendor_expense.constants.permissions import DiscountType


def _field(item: Any, *names: str) -> float:
    for name in names:
        if isinstance(item, Mapping):
            if name in item:
                return float(item[name])
        elif hasattr(item, name):
            return float(getattr(item, name))
    raise KeyError(names[0])


def calculate_totals(items: Iterable[Any], tax_percent: float, discount_type: str = DiscountType.NONE.value, discount_value: float = 0) -> Dict[str, float]:
    """Return ``{'sub_total', 'tax_amount', 'final_amount'}``.

    Items may be mappings (``quantity``/``price_per_unit`` or the camelCase
    ``pricePerUnit``) or objects exposing ``quantity`` and ``price_per_unit``.
    The final amount never drops below zero.
    """
    sub_total = sum(
        _field(item, 'quantity') * _field(item, 'price_per_unit', 'pricePerUnit')
        for item in items
    )
    tax_amount = sub_total * (float(tax_percent) / 100)
    discounted = sub_total + tax_amount
    if discount_type == DiscountType.PERCENT.value:
        discounted -= discounted * (float(discount_value) / 100)
    elif discount_type == DiscountType.FLAT.value:
        discounted -= float(discount_value)
    return {
        'sub_total': sub_total,
        'tax_amount': tax_amount,
        'final_amount': max(0.0, discounted),
    }


__all__ = ['calculate_totals']
