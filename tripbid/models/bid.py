"""Driver bid model"""
from tripbid import db
from .base import BaseModel

BID_STATUSES = ('pending', 'accepted', 'rejected')


class DriverBid(BaseModel):
    """
    DriverBid model - a driver's priced offer against a trip.

    One row per (trip, driver); resubmission updates the row in place.
    At most one bid per trip may be accepted.
    """
    __tablename__ = 'driver_bids'

    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False)
    driver_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    amount = db.Column(db.Float, nullable=False)
    vehicle_type = db.Column(db.String(50), nullable=False)
    license_plate = db.Column(db.String(20), nullable=False)
    vehicle_color = db.Column(db.String(50))
    notes = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default='pending')

    __table_args__ = (
        db.UniqueConstraint('trip_id', 'driver_id', name='uq_driver_bids_trip_driver'),
        db.CheckConstraint('amount > 0', name='ck_driver_bids_amount'),
        db.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected')",
            name='ck_driver_bids_status',
        ),
        db.Index(
            'uq_driver_bids_one_accepted', 'trip_id', unique=True,
            postgresql_where=db.text("status = 'accepted'"),
            sqlite_where=db.text("status = 'accepted'"),
        ),
        db.Index('idx_driver_bids_driver', 'driver_id', 'created_at'),
    )

    # Relationships
    trip = db.relationship('Trip', back_populates='bids')
    driver = db.relationship('Profile', lazy='joined')

    def __repr__(self):
        return f'<DriverBid {self.amount} on {self.trip_id} - {self.status}>'

    def to_dict(self, include_driver=False, include_trip=False):
        """Convert to dictionary with optional relationships"""
        data = super().to_dict()

        if include_driver:
            if self.driver and self.driver.driver_details:
                data['driver'] = self.driver.driver_details.public_dict()
            else:
                data['driver'] = self.driver.public_dict() if self.driver else None

        if include_trip:
            data['trip'] = self.trip.to_dict() if self.trip else None

        return data
