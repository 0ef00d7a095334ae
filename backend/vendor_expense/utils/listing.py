from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, Optional, Tuple
from flask import request, make_response, jsonify
from sqlalchemy.orm import Query
from vendor_expense.config.pagination import normalize_pagination
import hashlib
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)

def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)

def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset

def compute_etag(ids: Iterable[int], total: int, limit: int, offset: int, latest_ts: Optional[str] = '', extra: str = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}|{extra}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]

def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }

def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt, usegmt=True)

def _iso(dt: Optional[datetime]) -> str:
    return dt.isoformat().replace('+00:00', 'Z') if dt else ''

def latest_timestamp(rows: Iterable[Any], attr: str = 'updated_at') -> Optional[datetime]:
    stamps = [canonicalize_timestamp(getattr(r, attr)) for r in rows if isinstance(getattr(r, attr, None), datetime)]
    return max(stamps) if stamps else None

def _stamp_headers(resp, etag: str, latest_ts: Optional[datetime]):
    resp.headers['ETag'] = etag
    if latest_ts:
        latest_c = canonicalize_timestamp(latest_ts)
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_c)
    return resp

def make_cached_list_response(rows: list, total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    ids = [r.get('id') for r in rows]
    latest_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    # body hash covers derived fields (room status) that do not bump updated_at
    body_hash = hashlib.sha256(repr(rows).encode()).hexdigest()[:16]
    etag = compute_etag(ids, total, limit, offset, _iso(latest_c), body_hash)
    resp = make_response(build_list_payload(rows, total, limit, offset))
    return _stamp_headers(resp, etag, latest_c), etag

def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
    except ValueError:
        try:
            dt = parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
    if dt and dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def handle_conditional(etag_value: str, latest_ts: Optional[datetime]):
    """Evaluate conditional request headers.

    Precedence: If-None-Match over If-Modified-Since (per RFC 9110 semantics).
    Returns a 304 response object if conditions satisfied, else None.
    """
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') == etag_value:
            return _stamp_headers(make_response('', 304), etag_value, latest_ts)
        return None
    ims_raw = request.headers.get('If-Modified-Since')
    if ims_raw and latest_ts:
        ims_dt = _parse_if_modified_since(ims_raw)
        if ims_dt and canonicalize_timestamp(latest_ts) <= canonicalize_timestamp(ims_dt) + TIMESTAMP_TOLERANCE:
            return _stamp_headers(make_response('', 304), etag_value, latest_ts)
    return None

def respond_list(q: Query, serialize: Callable[[Any], Dict[str, Any]]):
    """Paginate ``q``, serialize rows and answer with ETag/304 handling (GET and HEAD)."""
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    return respond_rows(rows, serialize, total, limit, offset)

def respond_rows(rows: list, serialize: Callable[[Any], Dict[str, Any]], total: int, limit: int, offset: int):
    rows_json = [serialize(r) for r in rows]
    latest_ts = latest_timestamp(rows)
    resp, etag = make_cached_list_response(rows_json, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp

def respond_entity(obj: Any, body: Dict[str, Any]):
    """Single-entity response with ETag/Last-Modified headers."""
    latest_ts = latest_timestamp([obj])
    etag = compute_etag([body.get('id')], 1, 1, 0, _iso(latest_ts), hashlib.sha256(repr(body).encode()).hexdigest()[:16])
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    resp = _stamp_headers(make_response(jsonify(body)), etag, latest_ts)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp
