"""
Booking coordinator tests for TripBid
Covers bid acceptance, the guarded writes behind it and rollback on failure
"""
import pytest
import json
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from tripbid.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from tripbid.models import Booking, DriverBid, Trip
from tripbid.services import BidLedger, BookingCoordinator, TripRepository

PICKUP = '2026-11-02T07:30:00'


class TestAcceptBid:
    """Test the happy path and its inputs"""

    def test_accept_bid_books_trip(self, db_session, traveler, driver, trip_payload):
        """Trip with 2 seats and max 50, bid 40, accept at pickup T"""
        trip = TripRepository(db_session).create_trip(traveler.id, trip_payload)
        bid = BidLedger(db_session).submit_bid(driver.id, trip.id, 40)

        accepted, booking = BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.get(Trip, trip.id).status == 'booked'
        assert accepted.status == 'accepted'
        assert booking.final_price == 40.0
        assert booking.pickup_time == datetime(2026, 11, 2, 7, 30)
        assert booking.status == 'confirmed'
        assert booking.driver_id == driver.id
        assert booking.driver_bid_id == bid.id

    def test_accept_bid_over_http(self, client, traveler, driver, headers_for, trip_factory, bid_factory):
        trip = trip_factory()
        bid = bid_factory(trip, driver, amount=40)

        response = client.post(
            f'/api/bids/{bid.id}/accept',
            headers=headers_for(traveler),
            json={'pickup_time': PICKUP},
        )

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['bid']['status'] == 'accepted'
        assert data['bid']['driver']['full_name'] == 'Bob Driver'
        assert data['booking']['final_price'] == 40.0
        assert data['booking']['pickup_time'] == PICKUP
        assert data['booking']['trip_id'] == trip.id

    def test_other_pending_bids_stay_pending(self, db_session, traveler, driver, other_driver, trip_factory):
        trip = trip_factory()
        ledger = BidLedger(db_session)
        cheaper = ledger.submit_bid(driver.id, trip.id, 40)
        dearer = ledger.submit_bid(other_driver.id, trip.id, 45)

        BookingCoordinator(db_session).accept_bid(cheaper.id, traveler.id, PICKUP)

        assert db_session.get(DriverBid, dearer.id).status == 'pending'

    @pytest.mark.parametrize('pickup', [None, '', 'tomorrow morning'])
    def test_pickup_time_required(self, db_session, traveler, driver, trip_factory, bid_factory, pickup):
        bid = bid_factory(trip_factory(), driver)

        with pytest.raises(ValidationError) as exc:
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, pickup)

        assert exc.value.field == 'pickup_time'

    def test_unknown_bid(self, db_session, traveler):
        with pytest.raises(NotFoundError):
            BookingCoordinator(db_session).accept_bid('missing', traveler.id, PICKUP)

    def test_non_owner_cannot_accept(self, client, other_traveler, driver, headers_for, trip_factory, bid_factory, db_session):
        trip = trip_factory()
        bid = bid_factory(trip, driver)

        response = client.post(
            f'/api/bids/{bid.id}/accept',
            headers=headers_for(other_traveler),
            json={'pickup_time': PICKUP},
        )

        assert response.status_code == 403
        assert db_session.get(Trip, trip.id).status == 'open'

    def test_accepting_a_rejected_bid_conflicts(self, db_session, traveler, driver, trip_factory, bid_factory):
        bid = bid_factory(trip_factory(), driver, status='rejected')

        with pytest.raises(ConflictError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)


class TestAcceptRaces:
    """Guarded updates keep one accepted bid and one booking per trip"""

    def test_second_accept_of_same_bid_conflicts(self, client, traveler, driver, headers_for, trip_factory, bid_factory, db_session):
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        url = f'/api/bids/{bid.id}/accept'

        first = client.post(url, headers=headers_for(traveler), json={'pickup_time': PICKUP})
        second = client.post(url, headers=headers_for(traveler), json={'pickup_time': PICKUP})

        assert first.status_code == 200
        assert second.status_code == 409
        assert json.loads(second.data)['code'] == 'conflict'
        assert db_session.query(Booking).filter_by(trip_id=trip.id).count() == 1

    def test_accepts_on_two_bids_of_one_trip(self, db_session, traveler, driver, other_driver, trip_factory, bid_factory):
        trip = trip_factory()
        first = bid_factory(trip, driver, amount=40)
        second = bid_factory(trip, other_driver, amount=45)
        coordinator = BookingCoordinator(db_session)

        coordinator.accept_bid(first.id, traveler.id, PICKUP)
        with pytest.raises(ConflictError):
            coordinator.accept_bid(second.id, traveler.id, PICKUP)

        assert db_session.query(DriverBid).filter_by(trip_id=trip.id, status='accepted').count() == 1
        assert db_session.get(DriverBid, second.id).status == 'pending'
        assert db_session.query(Booking).filter_by(trip_id=trip.id).count() == 1

    def test_trip_cancelled_between_listing_and_accept(self, db_session, traveler, driver, trip_factory, bid_factory):
        """The traveler listed bids, then the trip was cancelled elsewhere"""
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        BidLedger(db_session).list_bids_for_trip(trip.id, traveler.id)

        TripRepository(db_session).cancel_trip(trip.id, traveler.id)

        with pytest.raises(ConflictError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.query(Booking).count() == 0
        assert db_session.get(DriverBid, bid.id).status == 'pending'

    @pytest.mark.parametrize('status', ['booked', 'completed', 'cancelled'])
    def test_trip_moved_by_another_request(self, db_session, traveler, driver, trip_factory, bid_factory, status):
        """The bid still reads pending but the trip row changed underneath"""
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        db_session.query(Trip).filter_by(id=trip.id).update({'status': status})
        db_session.commit()

        with pytest.raises(ConflictError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.get(Trip, trip.id).status == status
        assert db_session.query(Booking).count() == 0

    def test_resubmission_before_accept_sets_final_price(self, db_session, traveler, driver, trip_factory, bid_factory, monkeypatch):
        """The driver updated the amount after the traveler loaded the bid"""
        trip = trip_factory()
        bid = bid_factory(trip, driver, amount=40)
        real_claim = BookingCoordinator._claim_trip

        def claim_after_resubmission(self, trip_id):
            self.session.execute(
                update(DriverBid)
                .where(DriverBid.id == bid.id)
                .values(amount=45.0)
                .execution_options(synchronize_session=False)
            )
            return real_claim(self, trip_id)

        monkeypatch.setattr(BookingCoordinator, '_claim_trip', claim_after_resubmission)

        accepted, booking = BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert accepted.amount == 45.0
        assert booking.final_price == 45.0
        assert db_session.get(Booking, booking.id).final_price == accepted.amount

    def test_bid_withdrawn_after_trip_claim_rolls_back(self, db_session, traveler, driver, trip_factory, bid_factory, monkeypatch):
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        monkeypatch.setattr(BookingCoordinator, '_accept', lambda self, bid_id: None)

        with pytest.raises(ConflictError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.get(Trip, trip.id).status == 'open'


class TestAcceptRollback:
    """A failure after the guarded updates leaves nothing half-applied"""

    def test_booking_insert_failure_restores_trip_and_bid(self, db_session, traveler, driver, trip_factory, bid_factory, monkeypatch):
        trip = trip_factory()
        bid = bid_factory(trip, driver)

        def broken_insert(self, bid, pickup_time, final_price):
            raise SQLAlchemyError('store unavailable')

        monkeypatch.setattr(BookingCoordinator, '_create_booking', broken_insert)

        with pytest.raises(SQLAlchemyError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.get(Trip, trip.id).status == 'open'
        assert db_session.get(DriverBid, bid.id).status == 'pending'
        assert db_session.query(Booking).count() == 0

    def test_existing_booking_maps_to_conflict(self, db_session, traveler, driver, other_driver, trip_factory, bid_factory):
        """A stray booking row for the trip trips the unique constraint"""
        trip = trip_factory()
        stale = bid_factory(trip, other_driver, status='rejected')
        db_session.add(Booking(
            trip_id=trip.id,
            driver_id=other_driver.id,
            driver_bid_id=stale.id,
            final_price=30.0,
            pickup_time=datetime(2026, 11, 2, 7, 0),
        ))
        db_session.commit()
        bid = bid_factory(trip, driver)

        with pytest.raises(ConflictError):
            BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        assert db_session.get(Trip, trip.id).status == 'open'
        assert db_session.get(DriverBid, bid.id).status == 'pending'


class TestBookingRecord:
    """Test booking reads and the frozen price"""

    def test_final_price_is_immutable(self, db_session, traveler, driver, trip_factory, bid_factory):
        bid = bid_factory(trip_factory(), driver, amount=40)
        _, booking = BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        with pytest.raises(ValueError):
            booking.final_price = 10.0

        assert db_session.get(Booking, booking.id).final_price == 40.0

    def test_both_parties_see_the_booking(self, client, traveler, driver, headers_for, trip_factory, bid_factory):
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        client.post(f'/api/bids/{bid.id}/accept', headers=headers_for(traveler), json={'pickup_time': PICKUP})

        for caller in (traveler, driver):
            response = client.get(f'/api/trips/{trip.id}/booking', headers=headers_for(caller))
            assert response.status_code == 200
            assert json.loads(response.data)['booking']['driver_id'] == driver.id

    def test_outsider_cannot_see_booking(self, db_session, traveler, driver, other_driver, trip_factory, bid_factory):
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        BookingCoordinator(db_session).accept_bid(bid.id, traveler.id, PICKUP)

        with pytest.raises(AuthorizationError):
            BookingCoordinator(db_session).get_booking_for_trip(trip.id, other_driver.id)

    def test_list_my_bookings(self, client, traveler, driver, other_driver, headers_for, trip_factory, bid_factory):
        trip = trip_factory()
        bid = bid_factory(trip, driver)
        client.post(f'/api/bids/{bid.id}/accept', headers=headers_for(traveler), json={'pickup_time': PICKUP})

        for caller, expected in ((traveler, 1), (driver, 1), (other_driver, 0)):
            response = client.get('/api/bookings/mine', headers=headers_for(caller))
            bookings = json.loads(response.data)['bookings']
            assert len(bookings) == expected

        response = client.get('/api/bookings/mine', headers=headers_for(driver))
        assert json.loads(response.data)['bookings'][0]['trip']['id'] == trip.id
