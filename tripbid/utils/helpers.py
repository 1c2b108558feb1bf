"""
Helper utilities
"""
from flask import current_app


def clamp_window(limit=None, offset=None):
    """
    Normalise a limit/offset pair for list endpoints

    Args:
        limit: Requested page size (defaults to DEFAULT_PAGE_SIZE)
        offset: Number of rows to skip

    Returns:
        tuple: (limit, offset) with limit capped at MAX_PAGE_SIZE
    """
    default = current_app.config.get('DEFAULT_PAGE_SIZE', 50)
    maximum = current_app.config.get('MAX_PAGE_SIZE', 100)

    limit = default if limit is None else limit
    offset = 0 if offset is None else offset

    limit = min(maximum, max(1, limit))
    offset = max(0, offset)
    return limit, offset
