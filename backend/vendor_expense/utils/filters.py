from __future__ import annotations
from typing import Any, Dict
from vendor_expense.errors import ValidationFailed

def apply_filters(query, specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]):
    """Generic filter builder.

    specs: { param_name: { 'op': callable(query, value)->query, 'coerce': type/func, 'validate': callable(optional) } }
    """
    for name, meta in specs.items():
        if name not in params or params[name] is None or params[name] == '':
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError, ValidationFailed):
                raise ValidationFailed(f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            raise ValidationFailed(f'{name} invalid')
        query = meta['op'](query, val)
    return query
