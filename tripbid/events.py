"""
Socket.IO event channel for TripBid.
- New-trip alerts to the drivers room
- Bid and trip status changes to per-trip rooms
- Per-user rooms for direct updates

Publishing is best-effort: a failure to emit is logged and never breaks
the request that triggered it. Clients that cannot hold a socket poll
GET /api/notifications instead.
"""
import logging

from flask import request, session
from flask_socketio import SocketIO, emit, join_room, leave_room

from tripbid import db
from tripbid.models import Trip
from tripbid.utils.auth import identity_from_token

logger = logging.getLogger(__name__)

socketio = SocketIO()

DRIVERS_ROOM = 'drivers'


def user_room(user_id):
    return f'user:{user_id}'


def trip_room(trip_id):
    return f'trip:{trip_id}'


def publish(event, payload, room):
    """Emit an event to a room. Never raises."""
    try:
        socketio.emit(event, payload, to=room)
    except Exception:
        logger.exception("Failed to publish %s to %s", event, room)


@socketio.on('connect')
def handle_connect(auth=None):
    """Authenticate with {token: <jwt>} and join the caller's rooms."""
    token = (auth or {}).get('token')
    if not token:
        return False
    try:
        user_id, role = identity_from_token(token)
    except ValueError:
        return False

    session['user_id'] = user_id
    join_room(user_room(user_id))
    if role == 'driver':
        join_room(DRIVERS_ROOM)
    logger.debug("Socket %s connected as %s (%s)", request.sid, user_id, role)


@socketio.on('join')
def handle_join(data):
    """
    Subscribe to a trip. data = { trip_id: "<trip_id>" }

    Trip rooms carry bid amounts, so only the trip owner and the booked
    driver may join.
    """
    trip_id = (data or {}).get('trip_id')
    if not trip_id:
        return

    trip = db.session.get(Trip, trip_id)
    user_id = session.get('user_id')
    parties = (trip.traveler_id, trip.booking.driver_id if trip.booking else None) if trip else ()
    if not user_id or user_id not in parties:
        logger.info("Socket %s refused trip room %s", request.sid, trip_id)
        emit('join_refused', {'trip_id': trip_id}, to=request.sid)
        return

    room = trip_room(trip_id)
    join_room(room)
    emit('joined', {'room': room}, to=request.sid)


@socketio.on('leave')
def handle_leave(data):
    trip_id = (data or {}).get('trip_id')
    if trip_id:
        leave_room(trip_room(trip_id))
