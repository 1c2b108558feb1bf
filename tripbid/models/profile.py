"""Profile models"""
from tripbid import db
from .base import BaseModel

PROFILE_ROLES = ('traveler', 'driver')


class Profile(BaseModel):
    """
    Profile model - public identity for every caller.

    The id is the identity provider's user id; credentials never live here.
    """
    __tablename__ = 'profiles'

    full_name = db.Column(db.String(255))
    email = db.Column(db.String(255), index=True)
    phone = db.Column(db.String(50))
    avatar_url = db.Column(db.Text)
    role = db.Column(db.String(20), nullable=False, default='traveler')

    __table_args__ = (
        db.CheckConstraint("role IN ('traveler', 'driver')", name='ck_profiles_role'),
    )

    driver_details = db.relationship(
        'DriverProfile', backref='profile', uselist=False, lazy='joined',
        cascade='all, delete-orphan'
    )

    def __repr__(self):
        return f'<Profile {self.id} ({self.role})>'

    def public_dict(self):
        """Fields other parties are allowed to see"""
        return {
            'id': self.id,
            'full_name': self.full_name,
            'phone': self.phone,
            'avatar_url': self.avatar_url,
        }


class DriverProfile(BaseModel):
    """
    DriverProfile model - vehicle details and eligibility for a driver.
    Only verified drivers receive new-trip notifications.
    """
    __tablename__ = 'driver_profiles'

    id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True)

    vehicle_type = db.Column(db.String(50))
    vehicle_model = db.Column(db.String(100))
    license_plate = db.Column(db.String(20))
    vehicle_color = db.Column(db.String(50))

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    average_rating = db.Column(db.Float, nullable=False, default=0.0)
    total_trips = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.Index('idx_driver_profiles_verified', 'is_verified'),
    )

    def __repr__(self):
        return f'<DriverProfile {self.id} verified={self.is_verified}>'

    def public_dict(self):
        data = self.profile.public_dict() if self.profile else {'id': self.id}
        data.update({
            'vehicle_type': self.vehicle_type,
            'vehicle_model': self.vehicle_model,
            'vehicle_color': self.vehicle_color,
            'average_rating': self.average_rating,
            'total_trips': self.total_trips,
            'is_verified': self.is_verified,
        })
        return data
