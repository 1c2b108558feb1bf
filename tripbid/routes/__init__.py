"""
TripBid API Route Blueprints
"""
from .trips import trips_bp
from .bids import bids_bp
from .bookings import bookings_bp
from .notifications import notifications_bp
from .reviews import reviews_bp
from .profiles import profiles_bp

__all__ = [
    'trips_bp',
    'bids_bp',
    'bookings_bp',
    'notifications_bp',
    'reviews_bp',
    'profiles_bp',
]
