"""Driver notification model"""
from tripbid import db
from .base import BaseModel, utcnow

NOTIFICATION_STATUSES = ('unread', 'read', 'archived')


class DriverNotification(BaseModel):
    """
    DriverNotification model - in-app alert that a new trip was posted.

    trip_details is a snapshot taken at fanout time so the notification
    stays meaningful after the trip is edited or deleted.
    """
    __tablename__ = 'driver_notifications'

    driver_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='SET NULL'), nullable=True)

    trip_details = db.Column(db.JSON, nullable=False, default=dict)
    vehicle_match = db.Column(db.String(50))

    status = db.Column(db.String(20), nullable=False, default='unread')
    read_at = db.Column(db.DateTime(timezone=True))

    # Indexes
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('unread', 'read', 'archived')",
            name='ck_driver_notifications_status',
        ),
        db.Index('idx_driver_notifications_driver', 'driver_id', 'status', 'created_at'),
    )

    def __repr__(self):
        return f'<DriverNotification trip={self.trip_id} driver={self.driver_id} - {self.status}>'

    def mark_read(self):
        """Mark notification as read"""
        if self.status == 'unread':
            self.status = 'read'
        if not self.read_at:
            self.read_at = utcnow()

    def archive(self):
        self.status = 'archived'
