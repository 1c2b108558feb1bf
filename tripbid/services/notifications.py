"""
Notification Fanout: one DriverNotification per verified driver when a
trip is posted, plus the driver-side read/archive operations.

Fanout is best-effort. Callers on the trip-creation path catch
DependencyFailure and carry on.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError

from tripbid.errors import AuthorizationError, DependencyFailure, NotFoundError, ValidationError
from tripbid.events import DRIVERS_ROOM, publish
from tripbid.models import DriverNotification, DriverProfile, Trip

logger = logging.getLogger(__name__)

NOTIFICATION_FILTERS = ('unread', 'read', 'archived')


class NotificationFanout:

    def __init__(self, session):
        self.session = session

    def _notification_for(self, driver, trip_id, snapshot):
        return DriverNotification(
            driver_id=driver.id,
            trip_id=trip_id,
            trip_details=dict(snapshot),
            vehicle_match=driver.vehicle_type,
            status='unread',
        )

    def notify_drivers_of_trip(self, trip_id):
        """
        Create an unread notification for every verified driver.

        Each insert runs in its own savepoint; a driver whose insert fails
        is logged and skipped while the rest are still committed.

        Returns:
            int: Number of notifications created (0 when nobody is verified)

        Raises:
            DependencyFailure: the trip or drivers could not be loaded, or
                the inserts could not be committed
        """
        try:
            trip = self.session.get(Trip, trip_id)
            if not trip:
                raise DependencyFailure(f'Trip {trip_id} not found for fanout')

            snapshot = trip.snapshot()
            drivers = (
                self.session.query(DriverProfile)
                .filter(DriverProfile.is_verified.is_(True))
                .all()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Fanout for trip %s could not load its inputs", trip_id)
            raise DependencyFailure('Could not load drivers to notify') from e

        if not drivers:
            logger.info("No verified drivers to notify for trip %s", trip_id)
            return 0

        created = 0
        for driver in drivers:
            driver_id = driver.id
            try:
                with self.session.begin_nested():
                    self.session.add(self._notification_for(driver, trip_id, snapshot))
            except SQLAlchemyError:
                logger.exception("Skipping notification for driver %s on trip %s", driver_id, trip_id)
                continue
            created += 1

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.exception("Failed to save %d notifications for trip %s", created, trip_id)
            raise DependencyFailure('Could not save driver notifications') from e

        logger.info("Notified %d/%d verified drivers of trip %s", created, len(drivers), trip_id)
        publish('trip:created', {'trip_id': trip_id, 'trip_details': snapshot}, DRIVERS_ROOM)
        return created

    def list_notifications(self, driver_id, status=None):
        """Newest first. Archived ones are only returned when asked for."""
        query = self.session.query(DriverNotification).filter(DriverNotification.driver_id == driver_id)

        if status:
            if status not in NOTIFICATION_FILTERS:
                raise ValidationError(
                    f"status must be one of {', '.join(NOTIFICATION_FILTERS)}", field='status'
                )
            query = query.filter(DriverNotification.status == status)
        else:
            query = query.filter(DriverNotification.status != 'archived')

        return query.order_by(DriverNotification.created_at.desc()).all()

    def unread_count(self, driver_id):
        return (
            self.session.query(DriverNotification)
            .filter(DriverNotification.driver_id == driver_id, DriverNotification.status == 'unread')
            .count()
        )

    def _addressed(self, notification_id, caller_id):
        notification = self.session.get(DriverNotification, notification_id)
        if not notification:
            raise NotFoundError('Notification not found')
        if notification.driver_id != caller_id:
            raise AuthorizationError('Notification belongs to another driver')
        return notification

    def mark_read(self, notification_id, caller_id):
        notification = self._addressed(notification_id, caller_id)
        notification.mark_read()
        self.session.commit()
        return notification

    def archive(self, notification_id, caller_id):
        notification = self._addressed(notification_id, caller_id)
        notification.archive()
        self.session.commit()
        return notification
