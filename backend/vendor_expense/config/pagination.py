from vendor_expense.errors import ValidationFailed

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _as_int(raw, field_name: str, default: int) -> int:
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationFailed(f'{field_name} must be an integer')


def normalize_pagination(limit_raw, offset_raw):
    """Out-of-range values are clamped (limit to 1..MAX_LIMIT, offset to >= 0); non-integers are rejected."""
    limit = max(1, min(_as_int(limit_raw, 'limit', DEFAULT_LIMIT), MAX_LIMIT))
    offset = max(0, _as_int(offset_raw, 'offset', 0))
    return limit, offset
