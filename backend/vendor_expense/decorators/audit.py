from __future__ import annotations
"""Audit logging decorator to reduce repetitive add_audit() calls in route handlers.

Usage examples:

@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='id', meta_keys=['name'])
def create_vendor():
    ... return {'id': v.id, 'name': v.name}, 201

@audit_log('STAGE.UPDATE', entity='Stage', entity_id_key='id', diff_keys=['intervalDays'],
           pre_fetch=lambda a, kw: _prefetch_stage(kw.get('stage_id')))
def update_stage(stage_id): ...

Parameters:
  action: required audit action code (e.g. ROLE.CREATE)
  entity: optional entity label (Role, User, Vendor, Stage)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  meta_builder: callable returning a meta dict; receives (data, original_return_value, args, kwargs). If provided it overrides meta_keys.
  diff_keys/pre_fetch: snapshot taken before the handler runs; changed keys land in meta['changes'] as before/after.

The entry is only written when the handler returns normally; domain errors propagate
to the error handler, which rolls the session back.
"""

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from flask import current_app

from vendor_expense.services.audit import add_audit
from vendor_expense import get_db


def _extract_payload(rv: Any):
    """Return (data, original_rv) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        data = rv[0]
        return data, rv
    return rv, rv


def _diff(before: Dict[str, Any], after: Dict[str, Any], keys: Iterable[str]) -> Dict[str, Any]:
    changes = {}
    for k in keys:
        if k in before and k in after and before.get(k) != after.get(k):
            changes[k] = {'before': before.get(k), 'after': after.get(k)}
    return changes


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if (diff_keys and pre_fetch) else None
            rv = fn(*args, **kwargs)
            data, _ = _extract_payload(rv)
            if not isinstance(data, dict):  # nothing to inspect
                add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
            else:
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta = None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {k: data.get(k) for k in meta_keys if k in data}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = _diff(before_snapshot, data, diff_keys)
                    if changes:
                        meta = dict(meta or {})
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
            get_db().commit()
            current_app.logger.info('audit %s entity=%s', action, entity)
            return rv
        return wrapper
    return outer
