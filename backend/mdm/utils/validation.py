from __future__ import annotations
"""Reusable validation helpers for request payloads.

Keeps status/flag/number coercion in one place so blueprints share the same
400 error semantics.
"""
from datetime import datetime, timezone
from typing import Iterable, Optional
from flask import abort

_TRUE = {'true', '1', 'yes', 'on'}
_FALSE = {'false', '0', 'no', 'off'}


def validate_status(new_status: str, allowed: Iterable[str], field_name: str = 'status') -> str:
    """Validate that new_status is inside allowed.

    Returns the status (to enable inline usage) or aborts with 400.
    """
    if new_status not in allowed:
        abort(400, description=f"{field_name} invalid")
    return new_status


def parse_bool(raw) -> bool:
    """Query-string boolean; raises ValueError on anything unrecognised."""
    if isinstance(raw, bool):
        return raw
    val = str(raw).strip().lower()
    if val in _TRUE:
        return True
    if val in _FALSE:
        return False
    raise ValueError(f'not a boolean: {raw!r}')


def optional_number(data: dict, key: str, field_name: Optional[str] = None) -> Optional[float]:
    """Return data[key] as float, None when absent/null; 400 when not numeric."""
    if key not in data or data[key] is None or data[key] == '':
        return None
    try:
        return float(data[key])
    except (TypeError, ValueError):
        abort(400, description=f"{field_name or key} must be a number")


def optional_datetime(data: dict, key: str) -> Optional[datetime]:
    """ISO-8601 value of data[key] as an aware datetime (UTC when naive)."""
    raw = data.get(key)
    if raw in (None, ''):
        return None
    try:
        dt = datetime.fromisoformat(str(raw).replace('Z', '+00:00'))
    except ValueError:
        abort(400, description=f"{key} must be an ISO-8601 datetime")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def require_fields(data: dict, *names: str):
    missing = [n for n in names if data.get(n) in (None, '')]
    if missing:
        abort(400, description=f"{', '.join(missing)} required")


__all__ = ['validate_status', 'parse_bool', 'optional_number', 'optional_datetime', 'require_fields']
