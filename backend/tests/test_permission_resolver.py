import pytest
from vendor_expense.constants.permissions import MODULES, ACTIONS
from vendor_expense.errors import ValidationFailed
from vendor_expense.services.policy import (
    resolve_permissions, normalize_permissions, effective_permissions, is_allowed, Identity,
    load_role_permissions,
)
from tests.test_utils_seed import grant, ensure_role


def test_or_merge_grants_union_of_roles():
    vendors_view = {'vendors': {'view': True, 'create': False}}
    vendors_create = {'vendors': {'create': True}}
    merged = resolve_permissions([vendors_view, vendors_create])
    assert merged['vendors'] == {'create': True, 'edit': False, 'view': True, 'delete': False}


def test_merge_is_order_independent_and_idempotent():
    a = grant('vendors.view', 'reports.view')
    b = grant('vouchers.create', 'vendors.delete')
    assert resolve_permissions([a, b]) == resolve_permissions([b, a])
    assert resolve_permissions([a, a, b]) == resolve_permissions([a, b])


def test_false_flag_never_revokes_a_grant():
    granted = {'rooms': {'view': True}}
    denied = {'rooms': {'view': False}}
    assert resolve_permissions([granted, denied])['rooms']['view'] is True
    assert resolve_permissions([denied, granted])['rooms']['view'] is True


def test_no_roles_yields_nothing():
    perms = resolve_permissions([])
    assert not is_allowed(perms, 'vendors', 'view')


def test_admin_identity_bypasses_role_maps(app_context):
    empty = ensure_role('grants-nothing')
    admin = Identity(user_id=1, primary_role='admin', role_ids=(empty.id,))
    perms = effective_permissions(admin)
    for module in MODULES:
        for action in ACTIONS:
            assert is_allowed(perms, module, action)


def test_normalize_fills_every_module():
    perms = normalize_permissions({'reports': {'view': True}})
    assert set(perms) == set(MODULES)
    assert perms['reports']['view'] is True
    assert perms['vendors'] == {'create': False, 'edit': False, 'view': False, 'delete': False}


@pytest.mark.parametrize('raw', [
    {'inventory': {'view': True}},
    {'vendors': {'approve': True}},
    {'vendors': 'all'},
    ['vendors'],
])
def test_normalize_rejects_unknown_keys(raw):
    with pytest.raises(ValidationFailed):
        normalize_permissions(raw)


def test_unknown_role_ids_are_ignored_when_resolving(app_context):
    buyer = ensure_role('buyer', ['vendors.view', 'vouchers.create'])
    assert load_role_permissions([9999]) == []
    viewer = Identity(user_id=1, primary_role='viewer', role_ids=(buyer.id, 9999))
    assert effective_permissions(viewer) == resolve_permissions([buyer.permissions])
    assert is_allowed(effective_permissions(viewer), 'vouchers', 'create')
    assert not is_allowed(effective_permissions(viewer), 'vendors', 'delete')
