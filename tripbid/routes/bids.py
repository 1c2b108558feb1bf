"""
Bid API routes for TripBid.
Drivers submit offers; the trip owner accepts or rejects them.
"""
from flask import Blueprint, current_app, request, jsonify

from tripbid import db
from tripbid.extensions import limiter
from tripbid.services import BidLedger, BookingCoordinator
from tripbid.utils import require_auth, require_role

bids_bp = Blueprint('bids', __name__)


def _bid_rate_limit():
    return current_app.config.get('BID_RATE_LIMIT', '30 per minute')


@bids_bp.route('', methods=['POST'])
@limiter.limit(_bid_rate_limit)
@require_auth
@require_role('driver')
def submit_bid():
    """
    Submit or update the caller's bid on an open trip
    POST /api/bids
    Body: {
        "trip_id": "uuid",
        "amount": 40,
        "vehicle_type": "van",
        "license_plate": "KDA 123A",
        "vehicle_color": "white",
        "notes": "Can leave earlier"
    }
    """
    data = request.get_json(silent=True) or {}

    bid = BidLedger(db.session).submit_bid(
        request.user_id,
        data.get('trip_id'),
        data.get('amount'),
        vehicle_info={
            'vehicle_type': data.get('vehicle_type'),
            'license_plate': data.get('license_plate'),
            'vehicle_color': data.get('vehicle_color'),
        },
        notes=data.get('notes'),
    )
    return jsonify({'bid': bid.to_dict()}), 201


@bids_bp.route('/mine', methods=['GET'])
@require_auth
@require_role('driver')
def list_my_bids():
    """The caller's bids across trips, each with its trip"""
    bids = BidLedger(db.session).list_my_bids(request.user_id)
    return jsonify({'bids': [bid.to_dict(include_trip=True) for bid in bids]}), 200


@bids_bp.route('/<bid_id>/accept', methods=['POST'])
@require_auth
def accept_bid(bid_id):
    """
    Accept a bid and create the booking
    POST /api/bids/<bid_id>/accept
    Body: {"pickup_time": "2026-11-02T07:30:00"}
    """
    data = request.get_json(silent=True) or {}

    bid, booking = BookingCoordinator(db.session).accept_bid(
        bid_id, request.user_id, data.get('pickup_time')
    )
    return jsonify({
        'bid': bid.to_dict(include_driver=True),
        'booking': booking.to_dict(),
    }), 200


@bids_bp.route('/<bid_id>/reject', methods=['POST'])
@require_auth
def reject_bid(bid_id):
    bid = BidLedger(db.session).reject_bid(bid_id, request.user_id)
    return jsonify({'message': 'Bid rejected', 'bid': bid.to_dict()}), 200
