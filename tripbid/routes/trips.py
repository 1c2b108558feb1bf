"""
Trip API routes for TripBid.
Travelers post and manage trips; drivers browse the open ones.
"""
import logging

from flask import Blueprint, request, jsonify

from tripbid import db
from tripbid.errors import DependencyFailure
from tripbid.services import (
    BidLedger,
    BookingCoordinator,
    CompletionService,
    NotificationFanout,
    TripRepository,
)
from tripbid.utils import clamp_window, require_auth, require_role

trips_bp = Blueprint('trips', __name__)

logger = logging.getLogger(__name__)


def _notify_drivers(trip):
    """Run fanout without letting it fail trip creation. Returns warnings."""
    trip_id = trip.id
    try:
        NotificationFanout(db.session).notify_drivers_of_trip(trip_id)
        return []
    except DependencyFailure as e:
        logger.warning("Driver fanout for trip %s failed: %s", trip_id, e.message)
    except Exception:
        db.session.rollback()
        logger.exception("Driver fanout for trip %s failed unexpectedly", trip_id)
    return [{'code': DependencyFailure.code, 'message': 'Drivers could not be notified about this trip'}]


@trips_bp.route('', methods=['POST'])
@require_auth
@require_role('traveler')
def create_trip():
    """
    Post a new trip
    POST /api/trips
    Body: {
        "origin": "Nairobi",
        "destination": "Mombasa",
        "departure_date": "2026-11-02T08:00:00",
        "seats_needed": 2,
        "max_price": 50,
        "vehicle_type": "van",
        "description": "Two suitcases"
    }
    """
    data = request.get_json(silent=True) or {}

    trip = TripRepository(db.session).create_trip(request.user_id, data)
    warnings = _notify_drivers(trip)

    return jsonify({
        'message': 'Trip created successfully',
        'trip': trip.to_dict(),
        'warnings': warnings,
    }), 201


@trips_bp.route('', methods=['GET'])
@require_auth
def list_open_trips():
    """
    List open trips, newest first
    GET /api/trips?vehicle_type=van&limit=20&offset=0
    """
    limit, offset = clamp_window(
        request.args.get('limit', type=int),
        request.args.get('offset', type=int),
    )
    trips = TripRepository(db.session).list_open_trips(
        vehicle_type=request.args.get('vehicle_type') or None,
        limit=limit,
        offset=offset,
    )
    return jsonify({
        'trips': [trip.to_dict() for trip in trips],
        'limit': limit,
        'offset': offset,
    }), 200


@trips_bp.route('/mine', methods=['GET'])
@require_auth
@require_role('traveler')
def list_my_trips():
    """Every trip the caller posted, whatever its status"""
    trips = TripRepository(db.session).list_my_trips(request.user_id)
    return jsonify({'trips': [trip.to_dict() for trip in trips]}), 200


@trips_bp.route('/<trip_id>', methods=['GET'])
@require_auth
def get_trip(trip_id):
    trip = TripRepository(db.session).get_trip(trip_id)
    return jsonify({'trip': trip.to_dict()}), 200


@trips_bp.route('/<trip_id>', methods=['DELETE'])
@require_auth
def cancel_trip(trip_id):
    """
    Cancel an open trip (kept with status=cancelled)
    DELETE /api/trips/<trip_id>
    DELETE /api/trips/<trip_id>?purge=true removes the row instead
    """
    trips = TripRepository(db.session)

    if request.args.get('purge', '').lower() in ('1', 'true', 'yes'):
        trips.delete_trip(trip_id, request.user_id)
        return jsonify({'message': 'Trip deleted'}), 200

    trip = trips.cancel_trip(trip_id, request.user_id)
    return jsonify({'message': 'Trip cancelled', 'trip': trip.to_dict()}), 200


@trips_bp.route('/<trip_id>/complete', methods=['POST'])
@require_auth
def complete_trip(trip_id):
    """
    Close a booked trip, optionally rating the driver
    POST /api/trips/<trip_id>/complete
    Body (optional, traveler only): {"rating": 5, "comment": "On time"}
    """
    data = request.get_json(silent=True) or {}
    review = None
    if data.get('rating') is not None:
        review = {'rating': data.get('rating'), 'comment': data.get('comment')}

    booking, created = CompletionService(db.session).complete_trip(trip_id, request.user_id, review=review)

    return jsonify({
        'message': 'Trip completed',
        'booking': booking.to_dict(),
        'review': created.to_dict() if created else None,
    }), 200


@trips_bp.route('/<trip_id>/bids', methods=['GET'])
@require_auth
def list_bids_for_trip(trip_id):
    """Bids on the caller's trip with each driver's public profile"""
    bids = BidLedger(db.session).list_bids_for_trip(trip_id, request.user_id)
    return jsonify({'bids': [bid.to_dict(include_driver=True) for bid in bids]}), 200


@trips_bp.route('/<trip_id>/booking', methods=['GET'])
@require_auth
def get_trip_booking(trip_id):
    booking = BookingCoordinator(db.session).get_booking_for_trip(trip_id, request.user_id)
    return jsonify({'booking': booking.to_dict()}), 200
