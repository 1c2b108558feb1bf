"""Trip model"""
from tripbid import db
from .base import BaseModel

TRIP_STATUSES = ('open', 'booked', 'completed', 'cancelled')


class Trip(BaseModel):
    """
    Trip model - a traveler's request for transport with a budget ceiling.

    Status only moves open -> booked -> completed or open -> cancelled.
    """
    __tablename__ = 'trips'

    traveler_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    origin = db.Column(db.String(255), nullable=False)
    destination = db.Column(db.String(255), nullable=False)
    departure_date = db.Column(db.DateTime(timezone=True), nullable=False)
    seats_needed = db.Column(db.Integer, nullable=False, default=1)
    max_price = db.Column(db.Float, nullable=False)
    vehicle_type = db.Column(db.String(50))
    description = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default='open')

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('open', 'booked', 'completed', 'cancelled')",
            name='ck_trips_status',
        ),
        db.CheckConstraint('seats_needed >= 1', name='ck_trips_seats'),
        db.CheckConstraint('max_price >= 0', name='ck_trips_max_price'),
        db.Index('idx_trips_status_created', 'status', 'created_at'),
        db.Index('idx_trips_traveler', 'traveler_id', 'created_at'),
    )

    # Relationships
    traveler = db.relationship('Profile', lazy='joined')
    bids = db.relationship('DriverBid', back_populates='trip', lazy='dynamic', passive_deletes=True)
    booking = db.relationship('Booking', back_populates='trip', uselist=False)

    def __repr__(self):
        return f'<Trip {self.origin} -> {self.destination} - {self.status}>'

    def to_dict(self, include_traveler=True):
        data = super().to_dict()
        if include_traveler:
            data['traveler'] = self.traveler.public_dict() if self.traveler else None
        return data

    def snapshot(self):
        """Denormalized copy stored on driver notifications"""
        return {
            'origin': self.origin,
            'destination': self.destination,
            'departure_date': self.departure_date.isoformat() if self.departure_date else None,
            'seats_needed': self.seats_needed,
            'max_price': self.max_price,
            'traveler_name': self.traveler.full_name if self.traveler else None,
            'traveler_phone': self.traveler.phone if self.traveler else None,
        }
