"""Test seeding utilities to reduce duplication.

These helpers create users and roles directly in the database and log them in
through the real /iam/auth/login endpoint.
"""
from typing import Dict, Iterable, List, Optional
from vendor_expense import get_db
from vendor_expense.models.authz import User, Role, UserRole
from vendor_expense.services.policy import normalize_permissions


def grant(*codes: str) -> Dict[str, Dict[str, bool]]:
    """Build a role permission map from 'module.action' codes."""
    perms: Dict[str, Dict[str, bool]] = {}
    for code in codes:
        module, action = code.split('.', 1)
        perms.setdefault(module, {})[action] = True
    return normalize_permissions(perms)


def ensure_role(name: str, codes: Iterable[str] = ()) -> Role:
    session = get_db()
    role = session.query(Role).filter_by(name=name).one_or_none()
    if not role:
        role = Role(name=name, description=name, permissions=grant(*codes))
        session.add(role); session.commit()
    return role


def ensure_user(email: str, name: Optional[str] = None, password: str = 'pw', role: str = 'viewer',
                role_ids: Iterable[int] = (), is_active: bool = True) -> User:
    session = get_db()
    u = session.query(User).filter_by(email=email).one_or_none()
    if not u:
        u = User(name=name or email.split('@')[0], email=email, role=role, is_active=is_active, password_hash='')
        u.set_password(password)
        u.user_roles = [UserRole(role_id=r) for r in role_ids]
        session.add(u); session.commit()
    return u


def ensure_admin(email: str = 'admin@example.com', name: str = 'Admin') -> User:
    return ensure_user(email, name=name, role='admin')


def login(client, email: str, password: str = 'pw') -> Dict[str, str]:
    resp = client.post('/iam/auth/login', json={'email': email, 'password': password})
    assert resp.status_code == 200, resp.get_json()
    return {'Authorization': f"Bearer {resp.get_json()['access_token']}"}


def admin_headers(client) -> Dict[str, str]:
    ensure_admin()
    return login(client, 'admin@example.com')


def user_headers(client, email: str, codes: List[str]) -> Dict[str, str]:
    """Non-admin user holding exactly the given permission codes through one role."""
    role = ensure_role(f'role-for-{email}', codes)
    ensure_user(email, role_ids=[role.id])
    return login(client, email)
