from __future__ import annotations
"""Permission resolution.

Roles carry a per-module CRUD map; a user's effective permissions are the
logical OR of every assigned role's map. Users whose primary role is admin
bypass resolution and hold every action on every module.

``resolve_permissions`` is pure over explicit role data. The helpers below it
load that data for the current request; nothing is cached between requests.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from flask import abort
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import select, func

from vendor_expense import get_db
from vendor_expense.constants.permissions import MODULES, ACTIONS, PrimaryRole
from vendor_expense.errors import PermissionDenied, StateConflict, ValidationFailed
from vendor_expense.models.authz import Role, User

PermissionMap = Dict[str, Dict[str, bool]]


def blank_permission() -> Dict[str, bool]:
    return {a: False for a in ACTIONS}


def normalize_permissions(raw: Optional[Mapping]) -> PermissionMap:
    """Return a map holding every module key; absent modules/actions are False.

    Unknown module or action keys are rejected rather than dropped.
    """
    raw = raw or {}
    if not isinstance(raw, Mapping):
        raise ValidationFailed('permissions must be an object keyed by module')
    unknown = sorted(set(raw) - set(MODULES))
    if unknown:
        raise ValidationFailed(f'Unknown permission modules: {unknown}')
    normalized: PermissionMap = {}
    for module in MODULES:
        flags = raw.get(module) or {}
        if not isinstance(flags, Mapping):
            raise ValidationFailed(f'permissions.{module} must be an object')
        bad_actions = sorted(set(flags) - set(ACTIONS))
        if bad_actions:
            raise ValidationFailed(f'Unknown actions for {module}: {bad_actions}')
        normalized[module] = {a: bool(flags.get(a)) for a in ACTIONS}
    return normalized


def resolve_permissions(permission_maps: Iterable[Optional[Mapping]]) -> PermissionMap:
    """OR-merge role permission maps. Order and duplicates do not affect the result."""
    effective: PermissionMap = {}
    for perms in permission_maps:
        for module, flags in (perms or {}).items():
            entry = effective.setdefault(module, blank_permission())
            flags = flags or {}
            for action in ACTIONS:
                entry[action] = entry[action] or bool(flags.get(action))
    return effective


def admin_permissions() -> PermissionMap:
    return {m: {a: True for a in ACTIONS} for m in MODULES}


def is_allowed(perms: Mapping, module: str, action: str) -> bool:
    return bool((perms.get(module) or {}).get(action))


def load_role_permissions(role_ids: Iterable[int], session=None) -> List[Mapping]:
    """Permission maps for the roles that exist; unknown ids are ignored."""
    ids = {int(r) for r in role_ids}
    if not ids:
        return []
    session = session or get_db()
    roles = session.execute(select(Role).where(Role.id.in_(ids))).scalars().all()
    return [r.permissions or {} for r in roles]


@dataclass(frozen=True)
class Identity:
    user_id: int
    primary_role: str
    role_ids: Tuple[int, ...] = field(default_factory=tuple)
    name: str = ''
    email: str = ''

    @property
    def is_admin(self) -> bool:
        return self.primary_role == PrimaryRole.ADMIN.value

    @classmethod
    def from_user(cls, user: User) -> 'Identity':
        return cls(user_id=user.id, primary_role=user.role, role_ids=tuple(user.role_ids), name=user.name, email=user.email)


def effective_permissions(identity: Identity, session=None) -> PermissionMap:
    if identity.is_admin:
        return admin_permissions()
    return resolve_permissions(load_role_permissions(identity.role_ids, session))


def current_user() -> User:
    """User row behind the verified JWT, reloaded on every call."""
    ident = get_jwt_identity()
    session = get_db()
    user = session.get(User, int(ident)) if ident is not None else None
    if not user or not user.is_active:
        abort(401, description='User inactive or no longer exists')
    return user


def current_identity() -> Identity:
    return Identity.from_user(current_user())


def current_permissions() -> PermissionMap:
    return effective_permissions(current_identity())


def has_permission(module: str, action: str) -> bool:
    return is_allowed(current_permissions(), module, action)


def assert_permission(module: str, action: str):
    if not has_permission(module, action):
        raise PermissionDenied(f'Missing permission {module}.{action}')


def assert_any_permission(*pairs: Tuple[str, str]):
    perms = current_permissions()
    if not any(is_allowed(perms, m, a) for m, a in pairs):
        wanted = ', '.join(f'{m}.{a}' for m, a in pairs)
        raise PermissionDenied(f'Requires one of: {wanted}')


def assert_admin():
    if not current_identity().is_admin:
        raise PermissionDenied('Administrator role required')


def validate_role_ids(role_ids: Iterable[int], session=None) -> List[Role]:
    """Load roles for assignment; any unknown id rejects the whole write."""
    ids = list(dict.fromkeys(int(r) for r in role_ids))
    if not ids:
        return []
    session = session or get_db()
    roles = session.execute(select(Role).where(Role.id.in_(ids))).scalars().all()
    missing = set(ids) - {r.id for r in roles}
    if missing:
        raise ValidationFailed(f'Unknown role ids: {sorted(missing)}')
    by_id = {r.id: r for r in roles}
    return [by_id[i] for i in ids]


def count_active_admins(session=None) -> int:
    session = session or get_db()
    return session.execute(
        select(func.count(User.id)).where(User.role == PrimaryRole.ADMIN.value, User.is_active.is_(True))
    ).scalar_one()


def assert_not_removing_last_admin(user: User, new_role: Optional[str] = None, new_active: Optional[bool] = None, deleting: bool = False):
    """Keep at least one active admin after demoting, deactivating or deleting ``user``."""
    if not (user.is_admin and user.is_active):
        return
    stays_admin = (
        not deleting
        and (new_role is None or new_role == PrimaryRole.ADMIN.value)
        and (new_active is None or new_active)
    )
    if stays_admin:
        return
    if count_active_admins() <= 1:
        raise StateConflict('Cannot remove the last active admin')


__all__ = [
    'PermissionMap', 'Identity', 'blank_permission', 'normalize_permissions', 'resolve_permissions',
    'admin_permissions', 'is_allowed', 'load_role_permissions', 'effective_permissions', 'current_user',
    'current_identity', 'current_permissions', 'has_permission', 'assert_permission', 'assert_any_permission',
    'assert_admin', 'validate_role_ids', 'count_active_admins', 'assert_not_removing_last_admin',
]
