"""Utilities package"""
from .auth import (
    require_auth,
    require_role,
    generate_token,
    identity_from_token,
    bearer_token,
    ensure_profile,
)
from .helpers import clamp_window
from .validators import (
    require_fields,
    parse_number,
    parse_int,
    parse_datetime,
    parse_rating,
    clean_text,
)

__all__ = [
    'require_auth',
    'require_role',
    'generate_token',
    'identity_from_token',
    'bearer_token',
    'ensure_profile',
    'clamp_window',
    'require_fields',
    'parse_number',
    'parse_int',
    'parse_datetime',
    'parse_rating',
    'clean_text',
]
