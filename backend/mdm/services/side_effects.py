from __future__ import annotations
from typing import Any, Callable

from flask import current_app

from mdm import get_db


def best_effort(label: str, fn: Callable[..., Any], *args, **kwargs):
    """Run a post-commit side effect; log and swallow its failure.

    The primary write is already committed, so a failing side channel must
    not change the response. Any partial work of the failed call is rolled
    back so the request session stays usable for the next side effect.
    """
    try:
        return fn(*args, **kwargs)
    except Exception:  # side channels never fail the request
        current_app.logger.warning('Side effect %s failed', label, exc_info=True)
        get_db().rollback()
        return None
