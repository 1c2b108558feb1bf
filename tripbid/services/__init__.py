"""Domain services. Each takes the SQLAlchemy session it should use."""
from .trips import TripRepository
from .bids import BidLedger
from .bookings import BookingCoordinator
from .notifications import NotificationFanout
from .completion import CompletionService

__all__ = [
    'TripRepository',
    'BidLedger',
    'BookingCoordinator',
    'NotificationFanout',
    'CompletionService',
]
