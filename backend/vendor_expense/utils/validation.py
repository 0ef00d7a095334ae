from __future__ import annotations
"""Reusable validation helpers for request payloads.

Every helper raises ValidationFailed (rendered as 400) and returns the coerced
value so it can be used inline.
"""
import math
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from vendor_expense.errors import ValidationFailed
from vendor_expense.utils.clock import parse_datetime


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed."""
    if new_status not in allowed:
        raise ValidationFailed(f"{field_name} invalid")
    return new_status


def missing_fields(payload: Mapping[str, Any], fields: Iterable[str]) -> List[str]:
    return [f for f in fields if payload.get(f) is None or payload.get(f) == '']


def require_fields(payload: Mapping[str, Any], fields: Iterable[str]):
    missing = missing_fields(payload, fields)
    if missing:
        raise ValidationFailed(f"Missing fields: {', '.join(missing)}")


def ensure_string(value: Any, field_name: str) -> str:
    """Missing values become an empty string; anything that is not text is rejected."""
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ValidationFailed(f"{field_name} must be a string")
    return value


def ensure_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationFailed(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field_name} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationFailed(f"{field_name} must be a number")
    return number


def ensure_non_negative(value: Any, field_name: str) -> float:
    number = ensure_number(value, field_name)
    if number < 0:
        raise ValidationFailed(f"{field_name} must be a non-negative number")
    return number


def ensure_positive_int(value: Any, field_name: str) -> int:
    number = ensure_number(value, field_name)
    if number < 1 or number != int(number):
        raise ValidationFailed(f"{field_name} must be a positive integer")
    return int(number)


def ensure_id_list(value: Any, field_name: str) -> List[int]:
    """Coerce a list of ids, dropping empty entries and duplicates (order kept)."""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationFailed(f"{field_name} must be a list")
    out: List[int] = []
    for raw in value:
        if raw is None or raw == '':
            continue
        try:
            ident = int(raw)
        except (TypeError, ValueError):
            raise ValidationFailed(f"{field_name} must contain integer ids")
        if ident not in out:
            out.append(ident)
    return out


def ensure_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == '':
        return None
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field_name} must be an ISO-8601 date")


__all__ = [
    'validate_status', 'missing_fields', 'require_fields', 'ensure_string', 'ensure_number', 'ensure_non_negative',
    'ensure_positive_int', 'ensure_id_list', 'ensure_datetime',
]
