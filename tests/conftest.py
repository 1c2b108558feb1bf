"""
Pytest configuration and fixtures for TripBid backend tests
"""
import pytest
import os
from datetime import datetime, timedelta
from tripbid import create_app, db
from tripbid.models import Profile, DriverProfile, Trip, DriverBid
from tripbid.utils.auth import generate_token


@pytest.fixture
def app():
    """Create application instance for testing"""
    os.environ['FLASK_ENV'] = 'testing'
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Session shared by the services under test and the request handlers"""
    return db.session


@pytest.fixture
def profile_factory(db_session):
    """Factory for travelers and drivers"""
    counter = {'n': 0}

    def _create_profile(role='traveler', verified=True, **kwargs):
        counter['n'] += 1
        n = counter['n']
        defaults = {
            'role': role,
            'full_name': f'{role.title()} {n}',
            'email': f'{role}{n}@example.com',
            'phone': f'555-01{n:02d}',
        }
        defaults.update(kwargs)

        profile = Profile(**defaults)
        if role == 'driver':
            profile.driver_details = DriverProfile(
                vehicle_type='van',
                vehicle_model='Toyota Hiace',
                license_plate=f'KDA {n:03d}A',
                vehicle_color='white',
                is_verified=verified,
            )
        db_session.add(profile)
        db_session.commit()
        return profile

    return _create_profile


@pytest.fixture
def traveler(profile_factory):
    return profile_factory('traveler', full_name='Alice Traveler', phone='555-1234')


@pytest.fixture
def other_traveler(profile_factory):
    return profile_factory('traveler')


@pytest.fixture
def driver(profile_factory):
    return profile_factory('driver', full_name='Bob Driver')


@pytest.fixture
def other_driver(profile_factory):
    return profile_factory('driver', full_name='Carol Driver')


@pytest.fixture
def unverified_driver(profile_factory):
    return profile_factory('driver', verified=False)


@pytest.fixture
def token_for(app):
    def _token(profile):
        return generate_token(profile.id, profile.role)
    return _token


@pytest.fixture
def headers_for(token_for):
    """Generate auth headers with a JWT for any profile"""
    def _headers(profile):
        return {
            'Authorization': f'Bearer {token_for(profile)}',
            'Content-Type': 'application/json'
        }
    return _headers


@pytest.fixture
def trip_factory(db_session, traveler):
    """Factory for open trips owned by the traveler fixture by default"""
    def _create_trip(owner=None, **kwargs):
        defaults = {
            'traveler_id': (owner or traveler).id,
            'origin': 'Nairobi',
            'destination': 'Mombasa',
            'departure_date': datetime(2026, 11, 2, 8, 0),
            'seats_needed': 2,
            'max_price': 50.0,
            'status': 'open',
        }
        defaults.update(kwargs)

        trip = Trip(**defaults)
        db_session.add(trip)
        db_session.commit()
        return trip

    return _create_trip


@pytest.fixture
def bid_factory(db_session):
    def _create_bid(trip, bidder, amount=40.0, **kwargs):
        defaults = {
            'trip_id': trip.id,
            'driver_id': bidder.id,
            'amount': amount,
            'vehicle_type': 'van',
            'license_plate': 'KDA 001A',
            'status': 'pending',
        }
        defaults.update(kwargs)

        bid = DriverBid(**defaults)
        db_session.add(bid)
        db_session.commit()
        return bid

    return _create_bid


@pytest.fixture
def trip_payload():
    return {
        'origin': 'Nairobi',
        'destination': 'Mombasa',
        'departure_date': (datetime(2026, 11, 2) + timedelta(hours=8)).isoformat(),
        'seats_needed': 2,
        'max_price': 50,
        'vehicle_type': 'van',
        'description': 'Two suitcases',
    }
