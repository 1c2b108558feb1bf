"""
Completion & Rating: close a booked trip and record the traveler's review.
"""
import logging

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from tripbid.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tripbid.events import publish, trip_room
from tripbid.models import Booking, DriverProfile, Review, Trip, utcnow
from tripbid.services.trips import TripRepository
from tripbid.utils.validators import clean_text, parse_rating

logger = logging.getLogger(__name__)


class CompletionService:

    def __init__(self, session):
        self.session = session
        self.trips = TripRepository(session)

    def _booked_trip(self, trip_id):
        trip = self.session.get(Trip, trip_id) if trip_id else None
        if not trip:
            raise NotFoundError('Trip not found')
        if not trip.booking:
            raise NotFoundError('Trip has no booking')
        return trip, trip.booking

    def _insert_review(self, trip, booking, reviewer_id, rating, comment):
        review = Review(
            trip_id=trip.id,
            reviewer_id=reviewer_id,
            reviewee_id=booking.driver_id,
            rating=rating,
            comment=comment,
        )
        self.session.add(review)
        self.session.flush()

        average = (
            self.session.query(func.avg(Review.rating))
            .filter(Review.reviewee_id == booking.driver_id)
            .scalar()
        )
        self.session.execute(
            update(DriverProfile)
            .where(DriverProfile.id == booking.driver_id)
            .values(average_rating=round(float(average or 0.0), 2), updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return review

    def complete_trip(self, trip_id, caller_id, review=None):
        """
        booking confirmed -> completed and trip booked -> completed.

        Args:
            trip_id: Trip to close
            caller_id: Trip owner or the booked driver
            review (dict): Optional {rating, comment}; traveler only

        Returns:
            tuple: (Booking, Review or None)
        """
        trip, booking = self._booked_trip(trip_id)
        if caller_id not in (trip.traveler_id, booking.driver_id):
            raise AuthorizationError('Only the traveler or the booked driver can complete this trip')

        rating = comment = None
        if review:
            if caller_id != trip.traveler_id:
                raise AuthorizationError('Only the traveler can review the driver')
            rating = parse_rating(review.get('rating'))
            comment = clean_text(review.get('comment'))

        created = None
        try:
            result = self.session.execute(
                update(Booking)
                .where(Booking.id == booking.id, Booking.status == 'confirmed')
                .values(status='completed', completed_at=utcnow(), updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError('Booking is already completed')
            if not self.trips.transition(trip.id, 'booked', 'completed'):
                raise ConflictError('Trip is no longer booked')

            self.session.execute(
                update(DriverProfile)
                .where(DriverProfile.id == booking.driver_id)
                .values(total_trips=DriverProfile.total_trips + 1)
                .execution_options(synchronize_session=False)
            )
            if rating is not None:
                created = self._insert_review(trip, booking, caller_id, rating, comment)

            self.session.commit()
        except ConflictError:
            self.session.rollback()
            raise
        except IntegrityError:
            self.session.rollback()
            raise ConflictError('This trip has already been reviewed')

        self.session.refresh(booking)
        logger.info("Trip %s completed by %s", trip_id, caller_id)
        publish('trip:completed', {'trip_id': trip_id, 'booking': booking.to_dict()}, trip_room(trip_id))
        return booking, created

    def create_review(self, trip_id, reviewer_id, reviewee_id, rating, comment=None):
        """One review per trip, from the traveler about the booked driver."""
        rating = parse_rating(rating)
        if not reviewee_id:
            raise ValidationError('reviewee_id is required', field='reviewee_id')

        trip, booking = self._booked_trip(trip_id)
        if trip.traveler_id != reviewer_id:
            raise AuthorizationError('Only the traveler can review this trip')
        if reviewee_id != booking.driver_id:
            raise ValidationError('reviewee_id must be the booked driver', field='reviewee_id')

        if self.session.query(Review).filter(Review.trip_id == trip.id).first():
            raise ConflictError('This trip has already been reviewed')

        try:
            review = self._insert_review(trip, booking, reviewer_id, rating, clean_text(comment))
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise ConflictError('This trip has already been reviewed')

        logger.info("Review %s (%d stars) on trip %s", review.id, rating, trip.id)
        return review
