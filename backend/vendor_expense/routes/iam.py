from flask import Blueprint, request, abort, current_app
from flask_jwt_extended import create_access_token
from sqlalchemy import select, func
from vendor_expense import get_db
from vendor_expense.constants.permissions import MODULES, ACTIONS, PRIMARY_ROLES, PrimaryRole
from vendor_expense.decorators.audit import audit_log
from vendor_expense.decorators.auth import require_admin, require_login
from vendor_expense.errors import StateConflict, ValidationFailed
from vendor_expense.models.audit import AuditLog
from vendor_expense.models.authz import Role, User, UserRole
from vendor_expense.services.audit import audit_json
from vendor_expense.services.policy import (
    current_user, effective_permissions, Identity, normalize_permissions, validate_role_ids,
    assert_not_removing_last_admin,
)
from vendor_expense.utils.clock import to_iso
from vendor_expense.utils.filters import apply_filters
from vendor_expense.utils.listing import respond_list, respond_entity
from vendor_expense.utils.lookup import get_or_404
from vendor_expense.utils.sorting import apply_multi_sort
from vendor_expense.utils.validation import require_fields, validate_status, ensure_id_list, ensure_string

iam_bp = Blueprint('iam', __name__)


def _token_for(user: User) -> str:
    claims = {'role': user.role, 'name': user.name, 'email': user.email}
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(identity=str(user.id), additional_claims=claims)


@iam_bp.post('/auth/seed')
def seed_first_user():
    session = get_db()
    if session.execute(select(func.count(User.id))).scalar_one() > 0:
        raise StateConflict('Users already exist')
    data = request.json or {}
    require_fields(data, ['name', 'email', 'password'])
    role = validate_status(data.get('role') or PrimaryRole.ADMIN.value, PRIMARY_ROLES, 'role')
    email = ensure_string(data['email'], 'email').strip().lower()
    user = User(name=ensure_string(data['name'], 'name'), email=email, role=role, is_active=True)
    user.set_password(ensure_string(data['password'], 'password'))
    session.add(user)
    session.commit()
    current_app.logger.info('bootstrap user %s created with role %s', user.email, user.role)
    return {'id': user.id, 'email': user.email, 'role': user.role}, 201


@iam_bp.post('/auth/login')
def login():
    data = request.json or {}
    email = ensure_string(data.get('email'), 'email').strip().lower()
    password = ensure_string(data.get('password'), 'password')
    if not email or not password:
        raise ValidationFailed('email and password are required')
    session = get_db()
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if not user or not user.is_active or not user.verify_password(password):
        abort(401, description='Invalid credentials')
    return {'access_token': _token_for(user), 'role': user.role, 'name': user.name}


@iam_bp.get('/auth/me')
@require_login
def me():
    user = current_user()
    body = _user_json(user)
    body['permissions'] = effective_permissions(Identity.from_user(user))
    return body


@iam_bp.get('/modules')
@require_login
def list_modules():
    return {'modules': list(MODULES), 'actions': list(ACTIONS), 'roles': list(PRIMARY_ROLES)}


# ---- Roles ----

@iam_bp.get('/roles')
@require_admin
def list_roles():
    q = get_db().query(Role)
    q = apply_filters(q, {'name': {'op': lambda qu, v: qu.filter(Role.name.ilike(f'%{v}%'))}}, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), {'name': Role.name, 'updated_at': Role.updated_at, 'id': Role.id}, Role.id)
    return respond_list(q, _role_json)


@iam_bp.get('/roles/<int:role_id>')
@require_admin
def get_role(role_id: int):
    role = get_or_404(Role, role_id, 'Role')
    return respond_entity(role, _role_json(role))


@iam_bp.post('/roles')
@require_admin
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['name'])
def create_role():
    data = request.json or {}
    require_fields(data, ['name'])
    name = ensure_string(data['name'], 'name')
    session = get_db()
    if session.execute(select(Role).where(Role.name == name)).scalar_one_or_none():
        raise ValidationFailed('Role name already exists')
    role = Role(name=name, description=ensure_string(data.get('description'), 'description'), permissions=normalize_permissions(data.get('permissions')))
    session.add(role)
    session.commit()
    current_app.logger.info('role %s created', role.name)
    return _role_json(role), 201


@iam_bp.put('/roles/<int:role_id>')
@require_admin
@audit_log('ROLE.UPDATE', entity='Role', entity_id_key='id', diff_keys=['name', 'description', 'permissions'],
           pre_fetch=lambda a, kw: _prefetch(Role, kw.get('role_id'), _role_json))
def update_role(role_id: int):
    session = get_db()
    role = get_or_404(Role, role_id, 'Role')
    data = request.json or {}
    if 'name' in data:
        name = ensure_string(data['name'], 'name')
        if not name:
            raise ValidationFailed('name cannot be empty')
        dup = session.execute(select(Role).where(Role.name == name, Role.id != role.id)).scalar_one_or_none()
        if dup:
            raise ValidationFailed('Role name already exists')
        role.name = name
    if 'description' in data:
        role.description = ensure_string(data['description'], 'description')
    if 'permissions' in data:
        role.permissions = normalize_permissions(data['permissions'])
    session.commit()
    return _role_json(role)


@iam_bp.delete('/roles/<int:role_id>')
@require_admin
@audit_log('ROLE.DELETE', entity='Role', entity_id_arg='role_id')
def delete_role(role_id: int):
    session = get_db()
    role = get_or_404(Role, role_id, 'Role')
    # user_roles cascade detaches the role from every user
    session.delete(role)
    session.commit()
    return {'ok': True, 'id': role_id}


# ---- Users ----

@iam_bp.get('/users')
@require_admin
def list_users():
    q = get_db().query(User)
    filter_specs = {
        'role': {'op': lambda qu, v: qu.filter(User.role == v), 'validate': lambda v: v in PRIMARY_ROLES},
        'email': {'op': lambda qu, v: qu.filter(User.email.ilike(f'%{v}%'))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {'name': User.name, 'email': User.email, 'role': User.role, 'updated_at': User.updated_at, 'id': User.id}
    q = apply_multi_sort(q, request.args.get('sort'), allowed, User.id)
    return respond_list(q, _user_json)


@iam_bp.get('/users/<int:user_id>')
@require_admin
def get_user(user_id: int):
    user = get_or_404(User, user_id, 'User')
    return respond_entity(user, _user_json(user))


@iam_bp.post('/users')
@require_admin
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role', 'roleIds'])
def create_user():
    data = request.json or {}
    require_fields(data, ['name', 'email', 'password'])
    session = get_db()
    email = ensure_string(data['email'], 'email').strip().lower()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        raise ValidationFailed('Email already exists')
    role = validate_status(data.get('role') or PrimaryRole.VIEWER.value, PRIMARY_ROLES, 'role')
    roles = validate_role_ids(ensure_id_list(data.get('roleIds'), 'roleIds'))
    user = User(name=ensure_string(data['name'], 'name'), email=email, role=role, is_active=bool(data.get('isActive', True)))
    user.set_password(ensure_string(data['password'], 'password'))
    user.user_roles = [UserRole(role_id=r.id) for r in roles]
    session.add(user)
    session.commit()
    current_app.logger.info('user %s created with role %s', user.email, user.role)
    return _user_json(user), 201


@iam_bp.put('/users/<int:user_id>')
@require_admin
@audit_log('USER.UPDATE', entity='User', entity_id_key='id', diff_keys=['name', 'email', 'role', 'roleIds', 'isActive'],
           pre_fetch=lambda a, kw: _prefetch(User, kw.get('user_id'), _user_json))
def update_user(user_id: int):
    session = get_db()
    user = get_or_404(User, user_id, 'User')
    data = request.json or {}
    new_role = validate_status(data['role'], PRIMARY_ROLES, 'role') if 'role' in data else None
    new_active = bool(data['isActive']) if 'isActive' in data else None
    assert_not_removing_last_admin(user, new_role=new_role, new_active=new_active)
    if 'name' in data:
        name = ensure_string(data['name'], 'name')
        if not name:
            raise ValidationFailed('name cannot be empty')
        user.name = name
    if 'email' in data:
        email = ensure_string(data['email'], 'email').strip().lower()
        if not email:
            raise ValidationFailed('email cannot be empty')
        dup = session.execute(select(User).where(User.email == email, User.id != user.id)).scalar_one_or_none()
        if dup:
            raise ValidationFailed('Email already exists')
        user.email = email
    if 'password' in data and data['password']:
        user.set_password(ensure_string(data['password'], 'password'))
    if 'roleIds' in data:
        roles = validate_role_ids(ensure_id_list(data['roleIds'], 'roleIds'))
        user.user_roles = _assignments(user, roles)
    if new_role is not None:
        user.role = new_role
    if new_active is not None:
        user.is_active = new_active
    session.commit()
    return _user_json(user)


@iam_bp.delete('/users/<int:user_id>')
@require_admin
@audit_log('USER.DELETE', entity='User', entity_id_arg='user_id')
def delete_user(user_id: int):
    session = get_db()
    user = get_or_404(User, user_id, 'User')
    assert_not_removing_last_admin(user, deleting=True)
    session.delete(user)
    session.commit()
    current_app.logger.info('user %s deleted', user_id)
    return {'ok': True, 'id': user_id}


# ---- Audit ----

@iam_bp.get('/audit/logs')
@require_admin
def list_audit_logs():
    q = get_db().query(AuditLog)
    filter_specs = {
        'actor_user_id': {'coerce': int, 'op': lambda qu, v: qu.filter(AuditLog.actor_user_id == v)},
        'action': {'op': lambda qu, v: qu.filter(AuditLog.action == v)},
        'entity': {'op': lambda qu, v: qu.filter(AuditLog.entity == v)},
        'entity_id': {'op': lambda qu, v: qu.filter(AuditLog.entity_id == v)},
    }
    q = apply_filters(q, filter_specs, request.args)
    q = q.order_by(AuditLog.id.desc())
    return respond_list(q, audit_json)


def _role_json(r: Role):
    return {
        'id': r.id,
        'name': r.name,
        'description': r.description or '',
        'permissions': normalize_permissions(r.permissions),
        'updatedAt': to_iso(r.updated_at),
    }


def _user_json(u: User):
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'role': u.role,
        'roleIds': u.role_ids,
        'isActive': bool(u.is_active),
    }


def _prefetch(model, ident, serialize):
    obj = get_db().get(model, ident)
    return serialize(obj) if obj else {}


def _assignments(user: User, roles):
    # reuse rows for roles already held so the (user_id, role_id) pair is never inserted twice
    held = {ur.role_id: ur for ur in user.user_roles}
    return [held.get(r.id) or UserRole(role_id=r.id) for r in roles]
