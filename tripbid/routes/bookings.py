from flask import Blueprint, request, jsonify

from tripbid import db
from tripbid.services import BookingCoordinator
from tripbid.utils import require_auth

bookings_bp = Blueprint('bookings', __name__)


@bookings_bp.route('/mine', methods=['GET'])
@require_auth
def list_my_bookings():
    """
    Bookings where the caller is the driver or the traveler
    GET /api/bookings/mine
    """
    bookings = BookingCoordinator(db.session).list_my_bookings(request.user_id)
    return jsonify({'bookings': [b.to_dict(include_trip=True) for b in bookings]}), 200
