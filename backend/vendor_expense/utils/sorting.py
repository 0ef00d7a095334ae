from __future__ import annotations
import re
from vendor_expense.errors import ValidationFailed

_CAMEL = re.compile(r'(?<!^)(?=[A-Z])')


def sort_key(token: str) -> str:
    """Payloads are camelCase; sort keys are column names. Accept either spelling."""
    return _CAMEL.sub('_', token).lower()


def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker):
    """Order ``query`` by a comma-separated sort expression.

    Each token names a key of ``allowed`` (``date_of_purchase`` or ``dateOfPurchase``),
    optionally prefixed with '-' for descending. ``tie_breaker`` is always appended
    so pages are stable.
    """
    if not sort_expr:
        return query.order_by(tie_breaker.asc())
    clauses, seen = [], set()
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            col = allowed.get(sort_key(key))
        if col is None:
            raise ValidationFailed(f'Invalid sort field {key}')
        if sort_key(key) in seen:
            raise ValidationFailed(f'Duplicate sort field {key}')
        seen.add(sort_key(key))
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)
