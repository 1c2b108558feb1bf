"""Review model"""
from tripbid import db
from .base import BaseModel


class Review(BaseModel):
    """
    Review model - a traveler's rating of the driver who served a trip.
    One review per trip.
    """
    __tablename__ = 'reviews'

    trip_id = db.Column(db.String(36), db.ForeignKey('trips.id', ondelete='CASCADE'), nullable=False, unique=True)
    reviewer_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    reviewee_id = db.Column(db.String(36), db.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)

    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.Text)

    __table_args__ = (
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating'),
        db.Index('idx_reviews_reviewee', 'reviewee_id'),
    )

    reviewer = db.relationship('Profile', foreign_keys=[reviewer_id])

    def __repr__(self):
        return f'<Review trip={self.trip_id} rating={self.rating}>'

    def to_dict(self):
        data = super().to_dict(exclude=['updated_at'])
        data['reviewer'] = self.reviewer.public_dict() if self.reviewer else None
        return data
