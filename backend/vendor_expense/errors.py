"""Domain error taxonomy.

Services and the pure core raise these; the application error handler
renders them with the same JSON shape used for HTTP exceptions:

    {"error": {"status": 400, "title": "Validation Failed", "detail": "..."}}
"""
from __future__ import annotations


class DomainError(Exception):
    """Base class for all business rule violations."""
    status_code = 400
    title = 'Bad Request'

    def __init__(self, detail: str = ''):
        super().__init__(detail)
        self.detail = detail or self.title

    def to_payload(self):
        return {
            'error': {
                'status': self.status_code,
                'title': self.title,
                'detail': self.detail,
            }
        }


class NotFound(DomainError):
    """Referenced entity is absent."""
    status_code = 404
    title = 'Not Found'


class ValidationFailed(DomainError):
    """Missing field, bad number, unknown enum value or duplicate key."""
    status_code = 400
    title = 'Validation Failed'


class PermissionDenied(DomainError):
    """Resolved capability set lacks the required action."""
    status_code = 403
    title = 'Permission Denied'


class StateConflict(ValidationFailed):
    """Operation not legal in the current state (stage cycle, budgets, references)."""
    title = 'State Conflict'


__all__ = ['DomainError', 'NotFound', 'ValidationFailed', 'PermissionDenied', 'StateConflict']
