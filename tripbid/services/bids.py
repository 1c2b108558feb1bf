"""
Bid Ledger: one priced offer per (trip, driver).

A resubmission rewrites the existing row and puts it back to pending,
unless the bid was already accepted.
"""
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from tripbid.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tripbid.events import publish, trip_room, user_room
from tripbid.models import DriverBid, DriverProfile, Trip, utcnow
from tripbid.utils.validators import clean_text, parse_number

logger = logging.getLogger(__name__)


class BidLedger:

    def __init__(self, session):
        self.session = session

    def _bid_values(self, driver_id, amount, vehicle_info, notes):
        amount = parse_number(amount, 'amount', strictly_positive=True)
        vehicle_info = vehicle_info or {}

        # Fall back to the vehicle registered on the driver's profile
        details = self.session.get(DriverProfile, driver_id)
        vehicle_type = clean_text(vehicle_info.get('vehicle_type'), 50) or (details and details.vehicle_type)
        license_plate = clean_text(vehicle_info.get('license_plate'), 20) or (details and details.license_plate)
        vehicle_color = clean_text(vehicle_info.get('vehicle_color'), 50) or (details and details.vehicle_color)

        if not vehicle_type:
            raise ValidationError('vehicle_type is required', field='vehicle_type')
        if not license_plate:
            raise ValidationError('license_plate is required', field='license_plate')

        return {
            'amount': amount,
            'vehicle_type': vehicle_type,
            'license_plate': license_plate,
            'vehicle_color': vehicle_color or None,
            'notes': clean_text(notes),
        }

    def _find(self, trip_id, driver_id):
        return (
            self.session.query(DriverBid)
            .filter(DriverBid.trip_id == trip_id, DriverBid.driver_id == driver_id)
            .first()
        )

    def _rewrite(self, bid, values):
        if bid.status == 'accepted':
            raise ConflictError('This bid was already accepted and can no longer be changed')

        result = self.session.execute(
            update(DriverBid)
            .where(DriverBid.id == bid.id, DriverBid.status != 'accepted')
            .values(status='pending', updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise ConflictError('This bid was already accepted and can no longer be changed')

        self.session.commit()
        self.session.refresh(bid)
        return bid

    def submit_bid(self, driver_id, trip_id, amount, vehicle_info=None, notes=None):
        """
        Create or update the caller's bid on an open trip.

        Args:
            driver_id: Bidding driver's profile id
            trip_id: Target trip
            amount: Offered price, must be > 0
            vehicle_info (dict): vehicle_type, license_plate, vehicle_color
            notes (str): Optional message to the traveler

        Returns:
            DriverBid: The pending bid
        """
        values = self._bid_values(driver_id, amount, vehicle_info, notes)

        trip = self.session.get(Trip, trip_id) if trip_id else None
        if not trip or trip.status != 'open':
            raise NotFoundError('Trip not found or no longer open')

        existing = self._find(trip.id, driver_id)
        if existing:
            bid = self._rewrite(existing, values)
        else:
            bid = DriverBid(trip_id=trip.id, driver_id=driver_id, status='pending', **values)
            self.session.add(bid)
            try:
                self.session.commit()
            except IntegrityError:
                # A concurrent submission from the same driver won the insert
                self.session.rollback()
                existing = self._find(trip.id, driver_id)
                if not existing:
                    raise
                bid = self._rewrite(existing, values)

        logger.info("Bid %s on trip %s by driver %s: %.2f", bid.id, trip.id, driver_id, bid.amount)
        publish('bid:submitted', bid.to_dict(), trip_room(trip.id))
        publish('bid:submitted', bid.to_dict(), user_room(trip.traveler_id))
        return bid

    def get_bid(self, bid_id):
        bid = self.session.get(DriverBid, bid_id)
        if not bid:
            raise NotFoundError('Bid not found')
        return bid

    def list_bids_for_trip(self, trip_id, caller_id):
        """All bids on a trip, newest first. Trip owner only."""
        trip = self.session.get(Trip, trip_id)
        if not trip:
            raise NotFoundError('Trip not found')
        if trip.traveler_id != caller_id:
            raise AuthorizationError('Only the trip owner can view its bids')

        return (
            self.session.query(DriverBid)
            .filter(DriverBid.trip_id == trip_id)
            .order_by(DriverBid.created_at.desc())
            .all()
        )

    def list_my_bids(self, driver_id):
        return (
            self.session.query(DriverBid)
            .filter(DriverBid.driver_id == driver_id)
            .order_by(DriverBid.created_at.desc())
            .all()
        )

    def reject_bid(self, bid_id, caller_id):
        """pending -> rejected, trip owner only. The trip is untouched."""
        bid = self.get_bid(bid_id)
        if bid.trip.traveler_id != caller_id:
            raise AuthorizationError('Only the trip owner can reject bids')

        result = self.session.execute(
            update(DriverBid)
            .where(DriverBid.id == bid.id, DriverBid.status == 'pending')
            .values(status='rejected', updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            raise ConflictError('Only pending bids can be rejected')

        self.session.commit()
        self.session.refresh(bid)

        logger.info("Bid %s rejected by %s", bid.id, caller_id)
        publish('bid:rejected', bid.to_dict(), user_room(bid.driver_id))
        return bid
