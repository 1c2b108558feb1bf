"""
Profile and application-level tests for TripBid
"""
import json

import jwt
import pytest
from sqlalchemy.exc import IntegrityError

from tripbid.extensions import caller_or_address
from tripbid.models import DriverProfile, Profile


class TestProfile:
    """Test the caller's own profile"""

    def test_get_profile(self, client, driver, headers_for):
        response = client.get('/api/profile', headers=headers_for(driver))

        assert response.status_code == 200
        profile = json.loads(response.data)['profile']
        assert profile['full_name'] == 'Bob Driver'
        assert profile['role'] == 'driver'
        assert profile['driver_details']['vehicle_type'] == 'van'

    def test_update_creates_missing_profile(self, app, client, db_session):
        """First call from a new identity creates the profile with the token's role"""
        token = jwt.encode(
            {'user_id': 'new-user-1', 'role': 'traveler'},
            app.config['JWT_SECRET_KEY'],
            algorithm='HS256',
        )

        response = client.put(
            '/api/profile',
            headers={'Authorization': f'Bearer {token}'},
            json={'full_name': 'New Person', 'phone': '555-9999'},
        )

        assert response.status_code == 200
        profile = db_session.get(Profile, 'new-user-1')
        assert profile.full_name == 'New Person'
        assert profile.role == 'traveler'

    def test_update_ignores_role_in_body(self, client, traveler, headers_for, db_session):
        response = client.put('/api/profile', headers=headers_for(traveler), json={'role': 'driver', 'full_name': 'Alice T.'})

        assert response.status_code == 200
        profile = db_session.get(Profile, traveler.id)
        assert profile.role == 'traveler'
        assert profile.full_name == 'Alice T.'

    def test_unknown_profile(self, app, client):
        token = jwt.encode({'sub': 'ghost', 'role': 'admin'}, app.config['JWT_SECRET_KEY'], algorithm='HS256')

        response = client.get('/api/profile', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 404

    def test_first_request_creates_profile(self, app, client, trip_payload, db_session):
        token = jwt.encode({'sub': 'newcomer', 'role': 'traveler'}, app.config['JWT_SECRET_KEY'], algorithm='HS256')

        response = client.post('/api/trips', headers={'Authorization': f'Bearer {token}'}, json=trip_payload)

        assert response.status_code == 201
        assert json.loads(response.data)['trip']['traveler_id'] == 'newcomer'
        assert db_session.get(Profile, 'newcomer').role == 'traveler'

    def test_new_driver_can_bid(self, app, client, trip_factory, db_session):
        trip = trip_factory()
        token = jwt.encode({'sub': 'rookie', 'role': 'driver'}, app.config['JWT_SECRET_KEY'], algorithm='HS256')

        response = client.post(
            '/api/bids',
            headers={'Authorization': f'Bearer {token}'},
            json={'trip_id': trip.id, 'amount': 45, 'vehicle_type': 'sedan'},
        )

        assert response.status_code == 201
        assert db_session.get(Profile, 'rookie').role == 'driver'

    def test_foreign_keys_are_enforced(self, db_session, trip_factory):
        with pytest.raises(IntegrityError):
            trip_factory(traveler_id='nobody')
        db_session.rollback()


class TestDriverDetails:
    """Test vehicle details maintained by drivers"""

    def test_update_vehicle(self, client, driver, headers_for, db_session):
        response = client.put('/api/drivers/me', headers=headers_for(driver), json={
            'vehicle_type': 'sedan',
            'license_plate': 'KCZ 900B',
        })

        assert response.status_code == 200
        details = db_session.get(DriverProfile, driver.id)
        assert details.vehicle_type == 'sedan'
        assert details.license_plate == 'KCZ 900B'

    def test_cannot_self_verify(self, client, unverified_driver, headers_for, db_session):
        client.put('/api/drivers/me', headers=headers_for(unverified_driver), json={'is_verified': True})

        assert db_session.get(DriverProfile, unverified_driver.id).is_verified is False

    def test_travelers_have_no_vehicle(self, client, traveler, headers_for):
        response = client.put('/api/drivers/me', headers=headers_for(traveler), json={'vehicle_type': 'van'})

        assert response.status_code == 403


class TestApplication:
    """Test app wiring"""

    def test_health_check(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert json.loads(response.data)['status'] == 'healthy'

    def test_request_id_is_echoed(self, client):
        response = client.get('/health', headers={'X-Request-ID': 'req-123'})

        assert response.headers['X-Request-ID'] == 'req-123'

    def test_request_id_is_generated(self, client):
        response = client.get('/health')

        assert response.headers.get('X-Request-ID')

    def test_unknown_route_is_json(self, client):
        response = client.get('/api/nothing-here')

        assert response.status_code == 404
        assert json.loads(response.data)['code'] == 'not_found'

    def test_expired_token(self, app, client):
        token = jwt.encode(
            {'sub': 'someone', 'role': 'driver', 'exp': 1},
            app.config['JWT_SECRET_KEY'],
            algorithm='HS256',
        )

        response = client.get('/api/trips', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401
        assert json.loads(response.data)['error'] == 'Token has expired'

    def test_rate_limit_key_is_the_token_caller(self, app, driver, token_for):
        with app.test_request_context(headers={'Authorization': f'Bearer {token_for(driver)}'}):
            assert caller_or_address() == f'user:{driver.id}'

    def test_rate_limit_key_falls_back_to_address(self, app):
        with app.test_request_context(headers={'Authorization': 'Bearer not-a-jwt'}, environ_base={'REMOTE_ADDR': '10.0.0.7'}):
            assert caller_or_address() == '10.0.0.7'
