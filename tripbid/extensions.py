"""
Shared Flask extension instances.

Created as a separate module to avoid circular imports when route
blueprints need access to extensions that are initialised in create_app().
"""

import logging
import os

from flask import request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from tripbid.utils.auth import bearer_token, identity_from_token

logger = logging.getLogger(__name__)


def caller_or_address():
    """
    Rate-limit per authenticated caller, falling back to the client address.

    Limits are checked before require_auth runs, so the token is read here.
    """
    auth_header = request.headers.get('Authorization')
    if auth_header:
        try:
            user_id, _ = identity_from_token(bearer_token(auth_header))
            return f'user:{user_id}'
        except (ValueError, IndexError):
            logger.debug("Rate-limiting an unverified token by address")
    return get_remote_address()


# Use Redis for rate-limit storage when available (production), otherwise
# fall back to in-memory storage (single-process / development).
_storage_uri = os.environ.get("REDIS_URL") or "memory://"

# Limiter is created without an app; init_app() is called in create_app().
limiter = Limiter(
    key_func=caller_or_address,
    storage_uri=_storage_uri,
    default_limits=["100 per minute"],
)
