from __future__ import annotations
from vendor_expense import get_db
from vendor_expense.errors import NotFound


def get_or_404(model, ident: int, label: str = None, session=None):
    """Primary-key lookup raising NotFound('<Label> not found')."""
    session = session or get_db()
    obj = session.get(model, ident)
    if obj is None:
        raise NotFound(f'{label or model.__name__} not found')
    return obj
