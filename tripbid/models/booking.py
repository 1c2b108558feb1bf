"""Booking model"""
from sqlalchemy import inspect
from sqlalchemy.orm import validates

from tripbid import db
from .base import BaseModel

BOOKING_STATUSES = ('confirmed', 'completed')


class Booking(BaseModel):
    """
    Booking model - the confirmed contract created when a bid is accepted.

    Exactly one per trip. final_price is copied from the bid at acceptance
    and never changes afterwards.
    """
    __tablename__ = 'bookings'

    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='RESTRICT'), nullable=False, unique=True)
    driver_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='RESTRICT'), nullable=False)
    driver_bid_id = db.Column(db.String(36), db.ForeignKey('driver_bids.id', ondelete='RESTRICT'), nullable=False, unique=True)

    final_price = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='confirmed')
    pickup_time = db.Column(db.DateTime(timezone=True), nullable=False)
    completed_at = db.Column(db.DateTime(timezone=True))

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('confirmed', 'completed')",
            name='ck_bookings_status',
        ),
        db.Index('idx_bookings_driver', 'driver_id', 'created_at'),
    )

    # Relationships
    trip = db.relationship('Trip', back_populates='booking')
    driver = db.relationship('Profile')
    driver_bid = db.relationship('DriverBid')

    def __repr__(self):
        return f'<Booking {self.trip_id} {self.final_price} - {self.status}>'

    @validates('final_price')
    def _freeze_final_price(self, key, value):
        if inspect(self).persistent:
            raise ValueError('final_price cannot change after the booking is created')
        return value

    def to_dict(self, include_trip=False):
        data = super().to_dict()
        if include_trip:
            data['trip'] = self.trip.to_dict() if self.trip else None
        return data
