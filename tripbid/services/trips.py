"""
Trip Repository: create, list, cancel and delete trip requests.

Status writes are guarded updates (``WHERE status = :expected``); a zero
rowcount means another request moved the trip first.
"""
import logging

from sqlalchemy import delete, update

from tripbid.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tripbid.events import publish, trip_room
from tripbid.models import DriverBid, DriverNotification, Trip, utcnow
from tripbid.utils.validators import (
    clean_text,
    parse_datetime,
    parse_int,
    parse_number,
    require_fields,
)

logger = logging.getLogger(__name__)


class TripRepository:
    """Owns trip rows and their status column."""

    def __init__(self, session):
        self.session = session

    def create_trip(self, requester_id, fields):
        """
        Validate and insert an open trip.

        Args:
            requester_id: Traveler's profile id
            fields (dict): origin, destination, departure_date, seats_needed,
                max_price, vehicle_type (optional), description (optional)

        Returns:
            Trip: The committed trip
        """
        if not isinstance(fields, dict):
            raise ValidationError('Request body is required')

        require_fields(fields, ['origin', 'destination', 'departure_date'])
        seats = parse_int(fields.get('seats_needed', 1), 'seats_needed', minimum=1)
        max_price = parse_number(fields.get('max_price'), 'max_price', minimum=0)
        departure = parse_datetime(fields.get('departure_date'), 'departure_date')

        trip = Trip(
            traveler_id=requester_id,
            origin=clean_text(fields['origin'], 255),
            destination=clean_text(fields['destination'], 255),
            departure_date=departure,
            seats_needed=seats,
            max_price=max_price,
            vehicle_type=clean_text(fields.get('vehicle_type'), 50),
            description=clean_text(fields.get('description')),
            status='open',
        )
        self.session.add(trip)
        self.session.commit()

        logger.info("Trip %s created by %s", trip.id, requester_id)
        return trip

    def get_trip(self, trip_id):
        trip = self.session.get(Trip, trip_id)
        if not trip:
            raise NotFoundError('Trip not found')
        return trip

    def list_open_trips(self, vehicle_type=None, limit=50, offset=0):
        """Open trips, newest first, optionally narrowed by vehicle type."""
        query = self.session.query(Trip).filter(Trip.status == 'open')
        if vehicle_type:
            query = query.filter(Trip.vehicle_type == vehicle_type)

        return (
            query.order_by(Trip.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def list_my_trips(self, requester_id):
        return (
            self.session.query(Trip)
            .filter(Trip.traveler_id == requester_id)
            .order_by(Trip.created_at.desc())
            .all()
        )

    def _owned_trip(self, trip_id, caller_id):
        trip = self.get_trip(trip_id)
        if trip.traveler_id != caller_id:
            raise AuthorizationError('Only the trip owner can do this')
        return trip

    def transition(self, trip_id, expected, new_status):
        """
        Guarded status write. Returns True if this call moved the trip.

        Does not commit; callers decide the transaction boundary.
        """
        result = self.session.execute(
            update(Trip)
            .where(Trip.id == trip_id, Trip.status == expected)
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def cancel_trip(self, trip_id, caller_id):
        """Soft delete: open -> cancelled, owner only."""
        trip = self._owned_trip(trip_id, caller_id)

        if not self.transition(trip.id, 'open', 'cancelled'):
            self.session.rollback()
            raise ConflictError('Trip can only be cancelled while open')

        self.session.commit()
        self.session.refresh(trip)
        logger.info("Trip %s cancelled by %s", trip_id, caller_id)
        publish('trip:cancelled', {'trip_id': trip.id}, trip_room(trip.id))
        return trip

    def delete_trip(self, trip_id, caller_id):
        """Hard delete while open. Notification snapshots outlive the trip."""
        trip = self._owned_trip(trip_id, caller_id)
        trip_id = trip.id
        self.session.expunge(trip)

        # Claim the row first so a concurrent accept cannot book it mid-delete
        if not self.transition(trip_id, 'open', 'cancelled'):
            self.session.rollback()
            raise ConflictError('Trip can only be deleted while open')

        self.session.execute(
            update(DriverNotification)
            .where(DriverNotification.trip_id == trip_id)
            .values(trip_id=None)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            delete(DriverBid)
            .where(DriverBid.trip_id == trip_id)
            .execution_options(synchronize_session=False)
        )
        self.session.execute(
            delete(Trip)
            .where(Trip.id == trip_id)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        logger.info("Trip %s deleted by %s", trip_id, caller_id)
