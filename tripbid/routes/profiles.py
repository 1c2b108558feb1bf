"""
Profile routes for TripBid.
The identity provider owns accounts; these keep the public profile and
a driver's vehicle details in step with it.
"""
from flask import Blueprint, request, jsonify

from tripbid import db
from tripbid.errors import NotFoundError
from tripbid.models import DriverProfile, Profile
from tripbid.utils import clean_text, require_auth, require_role

profiles_bp = Blueprint('profiles', __name__)

PROFILE_FIELDS = ('full_name', 'email', 'phone', 'avatar_url')
VEHICLE_FIELDS = ('vehicle_type', 'vehicle_model', 'license_plate', 'vehicle_color')


def _profile_payload(profile):
    data = profile.to_dict()
    data['driver_details'] = profile.driver_details.to_dict() if profile.driver_details else None
    return data


@profiles_bp.route('/profile', methods=['GET'])
@require_auth
def get_profile():
    profile = db.session.get(Profile, request.user_id)
    if not profile:
        raise NotFoundError('Profile not found')
    return jsonify({'profile': _profile_payload(profile)}), 200


@profiles_bp.route('/profile', methods=['PUT'])
@require_auth
def update_profile():
    """
    Update the caller's public profile
    PUT /api/profile
    Body: {"full_name": "...", "email": "...", "phone": "...", "avatar_url": "..."}
    """
    data = request.get_json(silent=True) or {}

    profile = db.session.get(Profile, request.user_id)
    if not profile:
        raise NotFoundError('Profile not found')

    for field in PROFILE_FIELDS:
        if field in data:
            setattr(profile, field, clean_text(data[field]))

    db.session.commit()
    return jsonify({'profile': _profile_payload(profile)}), 200


@profiles_bp.route('/drivers/me', methods=['PUT'])
@require_auth
@require_role('driver')
def update_driver_details():
    """
    Update the caller's registered vehicle. Verification is set by admins,
    never through this endpoint.
    PUT /api/drivers/me
    """
    data = request.get_json(silent=True) or {}

    profile = db.session.get(Profile, request.user_id)
    if not profile:
        raise NotFoundError('Profile not found')

    details = profile.driver_details
    if not details:
        details = DriverProfile(id=profile.id)
        profile.driver_details = details

    for field in VEHICLE_FIELDS:
        if field in data:
            setattr(details, field, clean_text(data[field], 100))

    db.session.commit()
    return jsonify({'driver': details.public_dict()}), 200
