DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# Job endpoints take a plain row cap rather than pages
DEFAULT_JOB_LIMIT = 50
MAX_JOB_LIMIT = 500


def normalize_pagination(page_raw, limit_raw):
    """Coerce page/limit query values: page >= 1, limit clamped to [1, MAX_LIMIT]."""
    try:
        page = int(page_raw) if page_raw not in (None, '') else DEFAULT_PAGE
        limit = int(limit_raw) if limit_raw not in (None, '') else DEFAULT_LIMIT
    except ValueError:
        raise ValueError('page/limit must be int')
    page = max(1, page)
    limit = max(1, min(limit, MAX_LIMIT))
    return page, limit


def normalize_job_limit(limit_raw):
    try:
        limit = int(limit_raw) if limit_raw not in (None, '') else DEFAULT_JOB_LIMIT
    except ValueError:
        raise ValueError('limit must be int')
    return max(1, min(limit, MAX_JOB_LIMIT))
