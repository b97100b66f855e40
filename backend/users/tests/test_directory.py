from datetime import timedelta

import pytest
from django.core.management import call_command
from django.db.models import Q
from django.utils import timezone

from users.directory import DjangoUserDirectory, has_active_ref_on
from users.models import User

pytestmark = pytest.mark.django_db


@pytest.fixture
def directory():
    return DjangoUserDirectory()


def test_new_users_start_with_default_credits(user_factory, settings):
    settings.USER_DEFAULT_CREDITS = 5

    user = user_factory()

    assert user.credits_balance == 5
    assert user.credits_spent == 0


def test_get_unknown_or_blank_returns_none(directory):
    assert directory.get(None) is None
    assert directory.get("") is None
    assert directory.get(424242) is None
    assert directory.get("not-a-number") is None


def test_debit_moves_balance_to_spent(directory, renter_user):
    assert directory.debit_credits(renter_user.pk, 2) is True

    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 1
    assert renter_user.credits_spent == 2


def test_debit_never_overdraws(directory, renter_user):
    assert directory.debit_credits(renter_user.pk, 4) is False

    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 3
    assert renter_user.credits_spent == 0


def test_debit_zero_checks_existence(directory, renter_user):
    assert directory.debit_credits(renter_user.pk, 0) is True
    assert directory.debit_credits(424242, 0) is False


def test_refund_restores_balance(directory, renter_user):
    directory.debit_credits(renter_user.pk, 3)
    directory.refund_credits(renter_user.pk, 2)

    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 2
    assert renter_user.credits_spent == 1


def test_list_city_users_pages_in_id_order(directory, renter_user, user_factory):
    others = [user_factory(city="kochi") for _ in range(3)]
    user_factory(city="Delhi")

    first = directory.list_city_users("Kochi", exclude_id=renter_user.pk, limit=2)
    second = directory.list_city_users("Kochi", exclude_id=renter_user.pk, limit=2, offset=2)

    assert [u.pk for u in first + second] == [u.pk for u in others]


def test_iter_users_skips_inactive_and_excluded(directory, user_factory):
    kept = user_factory()
    skipped = user_factory()
    user_factory(is_active=False)

    found = list(directory.iter_users(Q(city__iexact="kochi"), exclude_ids=[skipped.pk, None]))

    assert [u.pk for u in found] == [kept.pk]


def test_push_booking_ref_replaces_same_rental(directory, renter_user):
    ref = {"rental_id": 7, "booking_date": "2030-01-05", "status": "confirmed"}

    directory.push_booking_ref(renter_user.pk, ref, on_rent=False)
    directory.push_booking_ref(renter_user.pk, {**ref, "booking_hour": 9}, on_rent=True)

    renter_user.refresh_from_db()
    assert renter_user.active_bookings == [{**ref, "booking_hour": 9}]
    assert renter_user.is_on_rent


def test_update_booking_ref_marks_stale_and_clears_on_rent(directory, renter_user):
    today = timezone.localdate().isoformat()
    directory.push_booking_ref(
        renter_user.pk, {"rental_id": 3, "booking_date": today, "status": "confirmed"}, on_rent=True
    )

    directory.update_booking_ref(renter_user.pk, 3, "cancelled")

    renter_user.refresh_from_db()
    assert renter_user.active_bookings[0]["status"] == "cancelled"
    assert renter_user.active_bookings[0]["stale"] is True
    assert not renter_user.is_on_rent


def test_has_active_ref_on_ignores_other_days():
    today = timezone.localdate()
    refs = [{"status": "confirmed", "booking_date": (today + timedelta(days=1)).isoformat()}]

    assert not has_active_ref_on(refs, today)
    assert has_active_ref_on(refs, today + timedelta(days=1))


def test_user_profile_helpers(user_factory):
    user = user_factory(
        availability={"monday": [9, "10", "bad", 30]},
        preset_locations=[{"id": 5, "name": " Lulu Mall "}, "junk"],
        images=["a.jpg", "b.jpg"],
    )

    assert user.hours_available_on("monday") == {9, 10}
    assert user.hours_available_on("tuesday") == set()
    assert user.has_preset_location(location_id="5")
    assert user.has_preset_location(name="lulu mall")
    assert not user.has_preset_location(name="Marine Drive")
    assert user.primary_image == "a.jpg"


def test_populate_users_seeds_matchable_profiles():
    call_command("populate_users", count=4, city="Kochi", credits=2)

    seeded = User.objects.filter(username__startswith="seeduser")
    assert seeded.count() == 4
    assert all(user.city == "Kochi" and user.credits_balance == 2 for user in seeded)
    assert all(user.availability and user.preset_locations for user in seeded)
