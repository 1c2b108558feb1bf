"""
Bearer-token identity for incoming requests.

Tokens are issued by the external identity provider; this service only
verifies them and reads the caller id and role.
"""
import jwt
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import request, jsonify, current_app

logger = logging.getLogger(__name__)


def generate_token(user_id: str, role: str, expires_in: timedelta = None) -> str:
    """Generate JWT token with user and role information"""
    now = datetime.now(timezone.utc)
    payload = {
        'sub': user_id,
        'role': role,
        'exp': now + (expires_in or current_app.config['JWT_ACCESS_TOKEN_EXPIRES']),
        'iat': now,
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config['JWT_ALGORITHM']
    )


def decode_token(token: str) -> dict:
    """Decode and verify JWT token"""
    try:
        return jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']]
        )
    except jwt.ExpiredSignatureError:
        raise ValueError('Token has expired')
    except jwt.InvalidTokenError:
        raise ValueError('Invalid token')


def identity_from_token(token: str) -> tuple:
    """Return (user_id, role) from a verified token; raises ValueError."""
    payload = decode_token(token)
    user_id = payload.get('sub') or payload.get('user_id')
    role = payload.get('role')
    if not user_id or not role:
        raise ValueError('Token is missing identity claims')
    return str(user_id), role


def bearer_token(auth_header: str) -> str:
    """Extract token from "Bearer <token>" (a bare token is accepted too)"""
    return auth_header.split(' ')[1] if ' ' in auth_header else auth_header


def ensure_profile(user_id: str, role: str):
    """
    Create the caller's profile on their first authenticated request.

    Trips, bids and bookings reference profiles.id, so every identity the
    provider vouches for needs a row before it can write anything.
    """
    from sqlalchemy.exc import IntegrityError
    from tripbid import db
    from tripbid.models import Profile
    from tripbid.models.profile import PROFILE_ROLES

    if role not in PROFILE_ROLES or db.session.get(Profile, user_id) is not None:
        return

    db.session.add(Profile(id=user_id, role=role))
    try:
        db.session.commit()
    except IntegrityError:
        # A concurrent first request inserted the same profile
        db.session.rollback()
        if db.session.get(Profile, user_id) is None:
            raise
    logger.info("Created profile for %s (%s)", user_id, role)


def require_auth(f):
    """Decorator to require authentication for routes"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return jsonify({'error': 'Missing authorization header'}), 401

        try:
            user_id, role = identity_from_token(bearer_token(auth_header))

            # Attach user info to request
            request.user_id = user_id
            request.user_role = role

        except (ValueError, IndexError) as e:
            return jsonify({'error': str(e)}), 401

        ensure_profile(user_id, role)
        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Decorator to require specific role(s) for routes"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(request, 'user_role'):
                return jsonify({'error': 'Authentication required'}), 401

            if request.user_role not in roles:
                return jsonify({'error': 'Insufficient permissions', 'code': 'forbidden'}), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
