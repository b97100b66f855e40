"""Tests for the rental state machine and its credit/slot bookkeeping."""

from __future__ import annotations

from datetime import datetime, time

import pytest
from django.utils import timezone

from rentals import errors, ledger as ledger_module
from rentals.ledger import BookingLedger
from rentals.models import Rental, RentalEvent, RentalSlot
from users.directory import DjangoUserDirectory

pytestmark = pytest.mark.django_db


@pytest.fixture
def confirm(renter_user, host_user, booking_day):
    def _confirm(ledger=None, **overrides):
        params = {
            "renter_id": renter_user.pk,
            "host_id": host_user.pk,
            "scheduled_at": timezone.make_aware(datetime.combine(booking_day, time(14))),
            "booking_date": booking_day,
            "booking_hour": 14,
            "duration_hours": 1,
            "credits_used": 1,
            "location": {"city": "Kochi", "preset_location_id": "loc-1"},
        }
        params.update(overrides)
        return (ledger or BookingLedger()).confirm(**params)

    return _confirm


def test_confirm_creates_confirmed_rental_and_debits(confirm, renter_user, host_user):
    rental = confirm(credits_used=2)

    renter_user.refresh_from_db()
    assert rental.status == Rental.Status.CONFIRMED
    assert renter_user.credits_balance == 1
    assert renter_user.credits_spent == 2
    assert rental.location == {"city": "Kochi", "preset_location_id": "loc-1"}
    assert rental.secondary_warnings == []
    assert set(RentalSlot.objects.filter(rental=rental).values_list("user_id", flat=True)) == {
        renter_user.pk,
        host_user.pk,
    }


def test_confirm_issues_three_numeric_otps(confirm):
    rental = confirm()

    for code in (rental.renter_otp, rental.host_otp, rental.common_otp):
        assert len(code) == 4
        assert code.isdigit()
    assert not rental.otp_verified


def test_confirm_pushes_booking_refs(confirm, renter_user, host_user):
    rental = confirm()

    renter_user.refresh_from_db()
    host_user.refresh_from_db()
    assert renter_user.active_bookings[0]["rental_id"] == rental.pk
    assert renter_user.active_bookings[0]["role"] == "renter"
    assert host_user.active_bookings[0]["role"] == "host"
    assert not renter_user.is_on_rent


def test_confirm_today_sets_on_rent(confirm, renter_user, host_user):
    today = timezone.localdate()
    confirm(booking_date=today, booking_hour=23)

    renter_user.refresh_from_db()
    host_user.refresh_from_db()
    assert renter_user.is_on_rent
    assert host_user.is_on_rent


def test_confirm_queues_otp_notification(confirm, monkeypatch):
    queued = []
    monkeypatch.setattr(
        ledger_module.notification_tasks.send_rental_otps, "delay", lambda pk: queued.append(pk)
    )

    rental = confirm()

    assert queued == [rental.pk]


def test_confirm_rejects_same_renter_and_host(confirm, renter_user):
    with pytest.raises(errors.ValidationError):
        confirm(host_id=renter_user.pk)


def test_confirm_unknown_host(confirm):
    with pytest.raises(errors.NotFound) as exc_info:
        confirm(host_id=999999)

    assert exc_info.value.msg == "Host not found"


def test_confirm_insufficient_credits_creates_nothing(confirm, renter_user):
    renter_user.credits_balance = 2
    renter_user.save(update_fields=["credits_balance"])

    with pytest.raises(errors.InsufficientCredits) as exc_info:
        confirm(credits_used=5)

    assert exc_info.value.payload() == {"balance": 2, "required": 5}
    assert not Rental.objects.exists()
    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 2


def test_second_confirm_conflicts_on_renter(confirm, user_factory):
    confirm()
    other_host = user_factory()

    with pytest.raises(errors.BookingConflict) as exc_info:
        confirm(host_id=other_host.pk)

    assert exc_info.value.party == "renter"
    assert Rental.objects.count() == 1


def test_confirm_conflicts_on_host(confirm, host_user, user_factory):
    confirm()
    other_renter = user_factory(gender="male")

    with pytest.raises(errors.BookingConflict) as exc_info:
        confirm(renter_id=other_renter.pk)

    assert exc_info.value.party == "host"


def test_slot_constraint_closes_check_then_write_race(confirm, renter_user, monkeypatch):
    confirm()
    # Simulate a concurrent request that passed the read-side check.
    monkeypatch.setattr(ledger_module, "find_conflicting_party", lambda *args: None)

    with pytest.raises(errors.BookingConflict) as exc_info:
        confirm()

    assert exc_info.value.party == "renter"
    assert Rental.objects.count() == 1
    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 2


def test_debit_failure_rolls_back_rental(confirm, renter_user, monkeypatch):
    monkeypatch.setattr(DjangoUserDirectory, "debit_credits", lambda self, user_id, amount: False)

    with pytest.raises(errors.InsufficientCredits):
        confirm()

    assert not Rental.objects.exists()
    assert not RentalSlot.objects.exists()


def test_secondary_write_failure_is_reported(confirm, monkeypatch):
    def _boom(self, *args, **kwargs):
        raise RuntimeError("refs unavailable")

    monkeypatch.setattr(DjangoUserDirectory, "push_booking_ref", _boom)

    rental = confirm()

    assert Rental.objects.filter(pk=rental.pk).exists()
    assert rental.secondary_warnings == [
        "active_bookings update failed for renter",
        "active_bookings update failed for host",
    ]


def test_verify_otp_accepts_host_code(confirm, renter_user, host_user):
    rental = confirm()

    verified = BookingLedger().verify_otp(rental.pk, rental.host_otp)

    assert verified.status == Rental.Status.IN_PROGRESS
    assert verified.otp_verified
    assert verified.otp_verified_at is not None
    assert RentalEvent.objects.filter(rental=rental, type=RentalEvent.Type.OTP_VERIFIED).exists()
    host_user.refresh_from_db()
    assert host_user.active_bookings[0]["status"] == "in-progress"


def test_verify_otp_rejects_wrong_code(rental_factory):
    rental = rental_factory()

    with pytest.raises(errors.InvalidOtp):
        BookingLedger().verify_otp(rental.pk, "9999")

    rental.refresh_from_db()
    assert rental.status == Rental.Status.CONFIRMED


def test_verify_otp_twice_is_idempotent(confirm, renter_user):
    rental = confirm()
    ledger = BookingLedger()

    first = ledger.verify_otp(rental.pk, rental.common_otp)
    second = ledger.verify_otp(rental.pk, rental.renter_otp)

    renter_user.refresh_from_db()
    assert first.otp_verified_at == second.otp_verified_at
    assert second.status == Rental.Status.IN_PROGRESS
    assert renter_user.credits_spent == 1
    assert RentalEvent.objects.filter(type=RentalEvent.Type.OTP_VERIFIED).count() == 1


def test_verify_otp_checks_participant(rental_factory, user_factory):
    rental = rental_factory()
    stranger = user_factory()

    with pytest.raises(errors.NotParticipant):
        BookingLedger().verify_otp(rental.pk, "1111", user_id=stranger.pk)


def test_verify_otp_on_cancelled_rental(rental_factory):
    rental = rental_factory(status=Rental.Status.CANCELLED)

    with pytest.raises(errors.InvalidTransition):
        BookingLedger().verify_otp(rental.pk, "1111")


def test_verify_otp_unknown_rental():
    with pytest.raises(errors.NotFound):
        BookingLedger().verify_otp(424242, "1111")


def test_cancel_releases_slot_and_keeps_credits(confirm, renter_user, host_user, user_factory):
    rental = confirm()

    cancelled = BookingLedger().cancel(rental.pk, reason="  changed plans ")

    assert cancelled.status == Rental.Status.CANCELLED
    assert cancelled.cancel_reason == "changed plans"
    assert cancelled.cancelled_at is not None
    assert not RentalSlot.objects.filter(rental=rental, is_active=True).exists()
    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 2
    assert renter_user.active_bookings[0]["stale"] is True

    # The slot is free again for both participants.
    again = confirm(host_id=host_user.pk)
    assert again.pk != rental.pk


def test_cancel_refunds_unverified_rental_when_enabled(confirm, renter_user, settings):
    settings.RENTAL_REFUND_ON_CANCEL = True
    rental = confirm(credits_used=2)

    BookingLedger().cancel(rental.pk)

    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 3
    assert renter_user.credits_spent == 0
    assert RentalEvent.objects.filter(
        rental=rental, type=RentalEvent.Type.CREDITS_REFUNDED, payload__amount=2
    ).exists()


def test_cancel_does_not_refund_verified_rental(confirm, renter_user, settings):
    settings.RENTAL_REFUND_ON_CANCEL = True
    rental = confirm(credits_used=2)
    ledger = BookingLedger()
    ledger.verify_otp(rental.pk, rental.renter_otp)

    ledger.cancel(rental.pk)

    renter_user.refresh_from_db()
    assert renter_user.credits_balance == 1


def test_cancel_is_idempotent(rental_factory):
    rental = rental_factory(status=Rental.Status.CANCELLED)

    again = BookingLedger().cancel(rental.pk)

    assert again.status == Rental.Status.CANCELLED
    assert not RentalEvent.objects.filter(rental=rental).exists()


def test_cannot_cancel_completed(rental_factory):
    rental = rental_factory(status=Rental.Status.COMPLETED)

    with pytest.raises(errors.InvalidTransition):
        BookingLedger().cancel(rental.pk)


def test_complete_from_in_progress(rental_factory, renter_user):
    rental = rental_factory(status=Rental.Status.IN_PROGRESS, otp_verified=True)

    completed = BookingLedger().complete(rental.pk, actor=renter_user)

    assert completed.status == Rental.Status.COMPLETED
    assert completed.completed_at is not None
    assert not RentalSlot.objects.filter(rental=rental, is_active=True).exists()
    event = RentalEvent.objects.get(rental=rental)
    assert event.actor == renter_user
    assert event.payload == {"from": "in-progress", "to": "completed"}


def test_completed_cannot_reenter_active_states(rental_factory):
    rental = rental_factory(status=Rental.Status.COMPLETED)

    with pytest.raises(errors.InvalidTransition):
        BookingLedger().mark_confirmed(rental.pk)


def test_mark_confirmed_from_pending(confirm):
    rental = confirm(initial_status=Rental.Status.PENDING)

    confirmed = BookingLedger().mark_confirmed(rental.pk)

    assert confirmed.status == Rental.Status.CONFIRMED
    assert RentalSlot.objects.filter(rental=rental, is_active=True).count() == 2
