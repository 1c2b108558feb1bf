"""
Review API routes for TripBid.
Travelers rate the driver who served their trip.
"""
from flask import Blueprint, request, jsonify

from tripbid import db
from tripbid.services import CompletionService
from tripbid.utils import require_auth, require_role

reviews_bp = Blueprint('reviews', __name__)


@reviews_bp.route('', methods=['POST'])
@require_auth
@require_role('traveler')
def create_review():
    """Create a review for a booked or completed trip.

    Body JSON:
        trip_id: str (required)
        reviewee_id: str (required, the booked driver)
        rating: int 1-5 (required)
        comment: str (optional)
    """
    data = request.get_json(silent=True) or {}

    review = CompletionService(db.session).create_review(
        data.get('trip_id'),
        request.user_id,
        data.get('reviewee_id'),
        data.get('rating'),
        comment=data.get('comment'),
    )
    return jsonify({'review': review.to_dict()}), 201
