"""SQLAlchemy models package"""
from .base import generate_uuid, utcnow
from .profile import Profile, DriverProfile
from .trip import Trip
from .bid import DriverBid
from .booking import Booking
from .notification import DriverNotification
from .review import Review

__all__ = [
    'generate_uuid',
    'utcnow',
    'Profile',
    'DriverProfile',
    'Trip',
    'DriverBid',
    'Booking',
    'DriverNotification',
    'Review',
]
