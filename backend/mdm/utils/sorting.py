from __future__ import annotations
from flask import abort

def apply_multi_sort(query, sort_expr: str | None, allowed: dict, tie_breaker):
    """Apply multi-field sort to a SQLAlchemy query.
    sort_expr: comma-separated tokens, each optionally prefixed with '-'.
    allowed: mapping of field key -> column object.
    tie_breaker: column to append for deterministic ordering.
    """
    if not sort_expr:
        return query.order_by(tie_breaker.asc())
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        col = allowed.get(key)
        if col is None:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append(col.desc() if desc else col.asc())
    clauses.append(tie_breaker.asc())
    return query.order_by(*clauses)


def apply_sort_by(query, sort_by: str | None, sort_order: str | None, allowed: dict, default: str, tie_breaker):
    """sortBy/sortOrder pair used by the admin list screens.

    Translates into the multi-sort form so both styles share validation.
    """
    key = sort_by or default
    order = (sort_order or 'ASC').upper()
    if order not in ('ASC', 'DESC'):
        abort(400, description='sortOrder must be ASC or DESC')
    return apply_multi_sort(query, ('-' if order == 'DESC' else '') + key, allowed, tie_breaker)
