from __future__ import annotations
from typing import Iterable, Tuple, Optional
from flask import request, abort, make_response
from sqlalchemy.orm import Query
from mdm.config.pagination import normalize_pagination
import hashlib
import math
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

TIMESTAMP_TOLERANCE = timedelta(seconds=1)

def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds (microseconds removed)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.replace(microsecond=0)

def iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat().replace('+00:00', 'Z')

def apply_pagination(q: Query, limit_arg: str = 'limit') -> Tuple[Query, int, int, int]:
    """Slice a query by the page / limit query args. Returns (query, total, page, limit)."""
    try:
        page, limit = normalize_pagination(request.args.get('page'), request.args.get(limit_arg))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset((page - 1) * limit).limit(limit), total, page, limit

def compute_etag(ids: Iterable, total: int, page: int, limit: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{page}|{limit}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]

def build_list_payload(rows: list, total: int, page: int, limit: int):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'items': rows,
        'page': page,
        'limit': limit,
        'total': total,
        'totalPages': total_pages,
        'hasNext': page < total_pages,
        'hasPrevious': page > 1,
    }

def _http_date(dt: datetime) -> str:
    """Return RFC1123 HTTP-date string in GMT."""
    return format_datetime(dt, usegmt=True)

def make_cached_list_response(rows: list, total: int, page: int, limit: int, latest_ts: Optional[datetime] = None):
    ids = [r.get('id') for r in rows]
    latest_ts_c = canonicalize_timestamp(latest_ts) if isinstance(latest_ts, datetime) else None
    latest_iso = latest_ts_c.isoformat().replace('+00:00','Z') if latest_ts_c else ''
    # Keep ETag seed stable using ISO canonical form
    etag = compute_etag(ids, total, page, limit, latest_iso)
    resp = make_response(build_list_payload(rows, total, page, limit))
    resp.headers['ETag'] = etag
    if latest_ts_c:
        resp.headers['Last-Modified'] = _http_date(latest_ts_c)
        resp.headers['X-Last-Modified-ISO'] = latest_iso
    return resp, etag

def make_cached_item_response(body: dict, latest_ts: Optional[datetime]):
    """Single-resource response with the same validators as list pages."""
    latest_c = canonicalize_timestamp(latest_ts) if latest_ts else None
    etag = compute_etag([body.get('id')], 1, 1, 1, latest_c.isoformat().replace('+00:00','Z') if latest_c else '')
    cond = handle_conditional(etag, latest_ts)
    if cond:
        return cond
    resp = make_response(body)
    resp.headers['ETag'] = etag
    if latest_c:
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = latest_c.isoformat().replace('+00:00','Z')
    return resp

def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    # Try ISO 8601 first
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt
    except ValueError:
        pass
    # Try HTTP-date (RFC 1123)
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
    if inm and inm.strip('"') == etag_value:
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        if latest_ts:
            latest_c = canonicalize_timestamp(latest_ts)
            resp.headers['Last-Modified'] = _http_date(latest_c)
            resp.headers['X-Last-Modified-ISO'] = latest_c.isoformat().replace('+00:00','Z')
        return resp
    # Only evaluate If-Modified-Since if If-None-Match was not a match / absent
    ims_raw = request.headers.get('If-Modified-Since')
    if ims_raw and latest_ts:
        ims_dt = _parse_if_modified_since(ims_raw)
        if ims_dt:
            latest_c = canonicalize_timestamp(latest_ts)
            ims_c = canonicalize_timestamp(ims_dt)
            if latest_c <= ims_c + TIMESTAMP_TOLERANCE:
                resp = make_response('', 304)
                resp.headers['ETag'] = etag_value
                resp.headers['Last-Modified'] = _http_date(latest_c)
                resp.headers['X-Last-Modified-ISO'] = latest_c.isoformat().replace('+00:00','Z')
                return resp
    return None

def latest_of(rows, attr: str = 'updated_at') -> Optional[datetime]:
    stamps = [getattr(r, attr) for r in rows if getattr(r, attr, None) is not None]
    if not stamps:
        return None
    return max(canonicalize_timestamp(s) for s in stamps)
