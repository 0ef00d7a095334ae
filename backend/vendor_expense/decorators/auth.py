from functools import wraps
from flask_jwt_extended import verify_jwt_in_request
from vendor_expense.services.policy import assert_permission, assert_any_permission, assert_admin, current_user


def require_login(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        current_user()
        return fn(*args, **kwargs)
    return wrapper


def require_permission(module: str, action: str):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            assert_permission(module, action)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_any_permission(*pairs):
    """Pass when the caller holds at least one of the (module, action) pairs."""
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            assert_any_permission(*pairs)
            return fn(*args, **kwargs)
        return wrapper
    return outer


def require_admin(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        assert_admin()
        return fn(*args, **kwargs)
    return wrapper
