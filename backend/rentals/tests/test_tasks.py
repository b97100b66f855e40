from datetime import timedelta

import pytest
from django.utils import timezone

from rentals.models import Rental
from rentals.tasks import sync_on_rent_flags

pytestmark = pytest.mark.django_db


def _ref(rental, role="renter", status=None):
    return {
        "rental_id": rental.pk,
        "booking_date": rental.booking_date.isoformat(),
        "booking_hour": rental.booking_hour,
        "role": role,
        "status": status or rental.status,
    }


def test_sync_marks_refs_of_finished_rentals_stale(renter_user, rental_factory):
    rental = rental_factory(status=Rental.Status.CANCELLED)
    renter_user.active_bookings = [_ref(rental, status="confirmed")]
    renter_user.save(update_fields=["active_bookings"])

    assert sync_on_rent_flags() == 1

    renter_user.refresh_from_db()
    assert renter_user.active_bookings[0]["status"] == "cancelled"
    assert renter_user.active_bookings[0]["stale"] is True


def test_sync_sets_on_rent_for_today(renter_user, rental_factory):
    today = timezone.localdate()
    rental = rental_factory(booking_date=today, booking_hour=20)
    renter_user.active_bookings = [_ref(rental)]
    renter_user.save(update_fields=["active_bookings"])

    sync_on_rent_flags()

    renter_user.refresh_from_db()
    assert renter_user.is_on_rent


def test_sync_clears_on_rent_when_nothing_is_today(renter_user, rental_factory):
    rental = rental_factory(booking_date=timezone.localdate() + timedelta(days=2))
    renter_user.active_bookings = [_ref(rental)]
    renter_user.is_on_rent = True
    renter_user.save(update_fields=["active_bookings", "is_on_rent"])

    sync_on_rent_flags()

    renter_user.refresh_from_db()
    assert not renter_user.is_on_rent
    assert "stale" not in renter_user.active_bookings[0]


def test_sync_marks_missing_rentals_stale(renter_user):
    renter_user.active_bookings = [
        {"rental_id": 424242, "booking_date": "2024-06-01", "booking_hour": 9, "status": "confirmed"}
    ]
    renter_user.save(update_fields=["active_bookings"])

    sync_on_rent_flags()

    renter_user.refresh_from_db()
    assert renter_user.active_bookings[0]["stale"] is True


def test_sync_leaves_consistent_users_alone(renter_user, rental_factory):
    rental = rental_factory()
    renter_user.active_bookings = [_ref(rental)]
    renter_user.save(update_fields=["active_bookings"])

    assert sync_on_rent_flags() == 0
