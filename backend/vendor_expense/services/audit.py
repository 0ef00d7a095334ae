from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity
from vendor_expense import get_db
from vendor_expense.models.audit import AuditLog
from vendor_expense.models.authz import User
from vendor_expense.utils.clock import to_iso


def _actor():
    try:
        ident = get_jwt_identity()
    except RuntimeError:
        # outside a verified JWT context (seed script, bootstrap endpoint)
        return 0, None
    if ident is None:
        return 0, None
    user = get_db().get(User, int(ident))
    return int(ident), (user.name if user else None)


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. ROLE.CREATE, STAGE.MOVE, VOUCHER.PAYMENT_STATUS
      entity: optional entity name (Role, User, Voucher, GrowingRoom, ...)
      entity_id: optional primary key string
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    session = get_db()
    actor_id, actor_name = _actor()
    log = AuditLog(
        actor_user_id=actor_id,
        actor_name=actor_name,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log


def audit_json(log: AuditLog) -> Dict[str, Any]:
    return {
        'id': log.id,
        'actorUserId': log.actor_user_id,
        'actorName': log.actor_name,
        'action': log.action,
        'entity': log.entity,
        'entityId': log.entity_id,
        'meta': log.meta or {},
        'createdAt': to_iso(log.created_at),
    }
