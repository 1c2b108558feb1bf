"""
Booking Coordinator: turns one accepted bid into a confirmed booking.

The three writes (trip open -> booked, bid pending -> accepted, booking
insert) share one transaction. Each status write is a guarded UPDATE; a
zero rowcount means a concurrent request won and the whole unit is rolled
back. Nothing here retries: the caller re-decides on ConflictError.

Other pending bids on the trip are left pending. The traveler rejects
them explicitly if they want to.
"""
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError

from tripbid.errors import AuthorizationError, ConflictError, NotFoundError
from tripbid.events import publish, trip_room, user_room
from tripbid.models import Booking, DriverBid, Trip, utcnow
from tripbid.utils.validators import parse_datetime

logger = logging.getLogger(__name__)


class BookingCoordinator:

    def __init__(self, session):
        self.session = session

    def _claim_trip(self, trip_id):
        result = self.session.execute(
            update(Trip)
            .where(Trip.id == trip_id, Trip.status == 'open')
            .values(status='booked', updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _accept(self, bid_id):
        """
        Guarded pending -> accepted.

        Returns the amount stored on the accepted row, or None if the bid
        was no longer pending. The in-memory bid may predate a resubmission.
        """
        result = self.session.execute(
            update(DriverBid)
            .where(DriverBid.id == bid_id, DriverBid.status == 'pending')
            .values(status='accepted', updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return self.session.execute(
            select(DriverBid.amount).where(DriverBid.id == bid_id)
        ).scalar_one()

    def _create_booking(self, bid, pickup_time, final_price):
        booking = Booking(
            trip_id=bid.trip_id,
            driver_id=bid.driver_id,
            driver_bid_id=bid.id,
            final_price=final_price,
            pickup_time=pickup_time,
            status='confirmed',
        )
        self.session.add(booking)
        self.session.flush()
        return booking

    def accept_bid(self, bid_id, caller_id, pickup_time):
        """
        Accept a pending bid on the caller's open trip.

        Args:
            bid_id: Bid to accept
            caller_id: Must own the bid's trip
            pickup_time: ISO 8601 string or datetime agreed with the driver

        Returns:
            tuple: (DriverBid, Booking)

        Raises:
            ValidationError: pickup_time missing or malformed
            NotFoundError: bid does not exist
            AuthorizationError: caller does not own the trip
            ConflictError: bid not pending, or trip no longer open
        """
        pickup_time = parse_datetime(pickup_time, 'pickup_time')

        bid = self.session.get(DriverBid, bid_id) if bid_id else None
        if not bid:
            raise NotFoundError('Bid not found')
        if bid.trip.traveler_id != caller_id:
            raise AuthorizationError('Only the trip owner can accept bids')
        if bid.status != 'pending':
            raise ConflictError(f'Bid is already {bid.status}')

        trip_id = bid.trip_id
        try:
            if not self._claim_trip(trip_id):
                raise ConflictError('Trip is no longer open')
            final_price = self._accept(bid.id)
            if final_price is None:
                raise ConflictError('Bid is no longer pending')
            booking = self._create_booking(bid, pickup_time, final_price)
            self.session.commit()
        except ConflictError:
            self.session.rollback()
            logger.info("Accept of bid %s on trip %s lost a race", bid_id, trip_id)
            raise
        except IntegrityError:
            self.session.rollback()
            logger.warning("Booking insert for trip %s violated a constraint", trip_id)
            raise ConflictError('Trip already has a booking')
        except Exception:
            self.session.rollback()
            logger.exception("Accept of bid %s failed; trip %s left open", bid_id, trip_id)
            raise

        self.session.refresh(bid)
        logger.info(
            "Bid %s accepted: trip %s booked with driver %s at %.2f",
            bid.id, trip_id, bid.driver_id, booking.final_price,
        )

        payload = {'bid': bid.to_dict(), 'booking': booking.to_dict()}
        publish('bid:accepted', payload, trip_room(trip_id))
        publish('bid:accepted', payload, user_room(bid.driver_id))
        return bid, booking

    def get_booking_for_trip(self, trip_id, caller_id):
        """The trip's booking, visible to the owner and the booked driver."""
        trip = self.session.get(Trip, trip_id)
        if not trip:
            raise NotFoundError('Trip not found')

        booking = trip.booking
        if not booking:
            raise NotFoundError('Trip has no booking')
        if caller_id not in (trip.traveler_id, booking.driver_id):
            raise AuthorizationError('Not a party to this booking')
        return booking

    def list_my_bookings(self, caller_id):
        """Bookings where the caller is the driver or owns the trip."""
        return (
            self.session.query(Booking)
            .join(Trip, Booking.trip_id == Trip.id)
            .filter(or_(Booking.driver_id == caller_id, Trip.traveler_id == caller_id))
            .order_by(Booking.created_at.desc())
            .all()
        )
