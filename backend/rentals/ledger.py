"""Authoritative state machine for a single rental.

Primary writes (the rental row, both participants' slot rows and the credit
debit) commit together in one transaction. Everything after that commit is a
secondary write: ``active_bookings`` refs on the user rows, audit events and
notification hand-off. Those may fail independently; each failure is logged
and appended to ``rental.secondary_warnings`` instead of failing the call.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from notifications import tasks as notification_tasks
from users.directory import UserDirectory, get_default_directory

from . import errors
from .domain import (
    assert_can_transition,
    booking_ref,
    find_conflicting_party,
    issue_otps,
    mark_cancelled,
    mark_completed,
    otp_matches,
    validate_slot,
)
from .models import Rental, RentalEvent, RentalSlot

logger = logging.getLogger(__name__)


class BookingLedger:
    def __init__(
        self,
        directory: UserDirectory | None = None,
        *,
        otp_digits: int | None = None,
    ) -> None:
        self.directory = directory or get_default_directory()
        self.otp_digits = otp_digits or getattr(settings, "RENTAL_OTP_DIGITS", 4)

    # --- creation -----------------------------------------------------------------

    def confirm(
        self,
        *,
        renter_id: Any,
        host_id: Any,
        scheduled_at: datetime,
        booking_date: date,
        booking_hour: int,
        duration_hours: int = 1,
        credits_used: int = 0,
        location: dict | None = None,
        initial_status: str = Rental.Status.CONFIRMED,
        actor=None,
    ) -> Rental:
        """
        Reserve the slot for both participants and debit the renter.

        Checks run in order: participants exist, renter can pay, neither
        participant already holds the date/hour.
        """
        location = location or {}
        city = (location.get("city") or "").strip()
        if not city:
            raise errors.ValidationError("location.city is required", field="location")
        if str(renter_id) == str(host_id):
            raise errors.ValidationError("renter and host must be different users", field="host_id")
        validate_slot(booking_date, booking_hour)
        if duration_hours is None or int(duration_hours) < 1:
            raise errors.ValidationError("duration_hours must be at least 1", field="duration_hours")
        credits_used = int(credits_used or 0)
        if credits_used < 0:
            raise errors.ValidationError("credits_used cannot be negative", field="credits_used")
        if initial_status not in (Rental.Status.PENDING, Rental.Status.CONFIRMED):
            raise errors.ValidationError("rentals start as pending or confirmed", field="status")

        renter = self.directory.get(renter_id)
        if renter is None:
            raise errors.NotFound("Renter not found")
        host = self.directory.get(host_id)
        if host is None:
            raise errors.NotFound("Host not found")

        if renter.credits_balance < credits_used:
            raise errors.InsufficientCredits(
                balance=renter.credits_balance, required=credits_used
            )

        party = find_conflicting_party(renter.pk, host.pk, booking_date, booking_hour)
        if party:
            raise errors.BookingConflict(party)

        codes = issue_otps(self.otp_digits)
        with transaction.atomic():
            rental = Rental.objects.create(
                renter=renter,
                host=host,
                city=city,
                preset_location_id=str(location.get("preset_location_id") or ""),
                preset_location_name=str(location.get("preset_location_name") or ""),
                booking_date=booking_date,
                booking_hour=booking_hour,
                scheduled_at=scheduled_at,
                duration_hours=duration_hours,
                credits_used=credits_used,
                status=initial_status,
                **codes,
            )
            self._claim_slot(rental, renter.pk, RentalSlot.Role.RENTER)
            self._claim_slot(rental, host.pk, RentalSlot.Role.HOST)
            if not self.directory.debit_credits(renter.pk, credits_used):
                fresh = self.directory.get(renter.pk)
                raise errors.InsufficientCredits(
                    balance=getattr(fresh, "credits_balance", 0), required=credits_used
                )

        logger.info(
            "rentals: rental %s confirmed for renter %s and host %s",
            rental.pk,
            renter.pk,
            host.pk,
        )

        warnings: list[str] = []
        on_rent = booking_date == timezone.localdate()
        for user_id, role in ((renter.pk, "renter"), (host.pk, "host")):
            try:
                self.directory.push_booking_ref(user_id, booking_ref(rental, role), on_rent=on_rent)
            except Exception:
                logger.warning(
                    "rentals: could not push active_bookings ref for %s",
                    role,
                    exc_info=True,
                    extra={"rental_id": rental.pk, "user_id": user_id},
                )
                warnings.append(f"active_bookings update failed for {role}")

        self._record_event(
            rental,
            type_value=RentalEvent.Type.STATUS_CHANGE,
            payload={"from": None, "to": rental.status, "credits_used": credits_used},
            actor=actor,
            warnings=warnings,
        )
        try:
            notification_tasks.send_rental_otps.delay(rental.pk)
        except Exception:
            logger.info(
                "notifications: could not queue send_rental_otps",
                exc_info=True,
                extra={"rental_id": rental.pk},
            )
            warnings.append("otp notification could not be queued")

        rental.secondary_warnings = warnings
        return rental

    # --- transitions --------------------------------------------------------------

    def verify_otp(self, rental_id: Any, submitted_otp: str, *, user_id: Any = None) -> Rental:
        """
        Accept any one of the three codes and move the rental to in-progress.

        Re-verifying an already verified rental with a valid code is a no-op.
        """
        rental = self.get(rental_id)
        if user_id is not None and rental.role_of(_as_pk(user_id)) is None:
            raise errors.NotParticipant()
        if not otp_matches(rental, submitted_otp):
            logger.info("rentals: invalid OTP submitted", extra={"rental_id": rental.pk})
            raise errors.InvalidOtp()
        if rental.otp_verified:
            rental.secondary_warnings = []
            return rental

        with transaction.atomic():
            rental = self._get_locked(rental.pk)
            if rental.otp_verified:
                rental.secondary_warnings = []
                return rental
            prev_status = rental.status
            if prev_status != Rental.Status.IN_PROGRESS:
                assert_can_transition(rental, Rental.Status.IN_PROGRESS)
            rental.otp_verified = True
            rental.otp_verified_at = timezone.now()
            rental.status = Rental.Status.IN_PROGRESS
            rental.save(update_fields=["otp_verified", "otp_verified_at", "status", "updated_at"])

        warnings: list[str] = []
        self._record_event(
            rental,
            type_value=RentalEvent.Type.OTP_VERIFIED,
            payload={"from": prev_status, "to": rental.status},
            actor=None,
            warnings=warnings,
        )
        self._sync_refs(rental, warnings)
        rental.secondary_warnings = warnings
        return rental

    def mark_confirmed(self, rental_id: Any, *, actor=None) -> Rental:
        """Move a pending rental to confirmed (operator flow)."""
        return self._transition(rental_id, Rental.Status.CONFIRMED, actor=actor)

    def cancel(self, rental_id: Any, reason: str | None = None, *, actor=None) -> Rental:
        return self._transition(rental_id, Rental.Status.CANCELLED, actor=actor, reason=reason)

    def complete(self, rental_id: Any, *, actor=None) -> Rental:
        return self._transition(rental_id, Rental.Status.COMPLETED, actor=actor)

    def get(self, rental_id: Any) -> Rental:
        try:
            return Rental.objects.select_related("renter", "host").get(pk=rental_id)
        except (Rental.DoesNotExist, ValueError, TypeError):
            raise errors.NotFound("Rental not found")

    # --- internals ----------------------------------------------------------------

    def _transition(
        self,
        rental_id: Any,
        target: str,
        *,
        actor=None,
        reason: Optional[str] = None,
    ) -> Rental:
        refunded = 0
        with transaction.atomic():
            rental = self._get_locked(rental_id)
            if rental.status == target:
                rental.secondary_warnings = []
                return rental
            assert_can_transition(rental, target)
            prev_status = rental.status
            update_fields = ["status", "updated_at"]
            if target == Rental.Status.CANCELLED:
                mark_cancelled(rental, reason=(reason or "").strip() or None)
                update_fields += ["cancelled_at", "cancel_reason"]
                refunded = self._refund_amount(rental)
                if refunded:
                    self.directory.refund_credits(rental.renter_id, refunded)
            elif target == Rental.Status.COMPLETED:
                mark_completed(rental)
                update_fields.append("completed_at")
            else:
                rental.status = target
            rental.save(update_fields=update_fields)
            if not rental.is_active():
                RentalSlot.objects.filter(rental=rental, is_active=True).update(is_active=False)

        logger.info(
            "rentals: rental %s moved %s -> %s",
            rental.pk,
            prev_status,
            rental.status,
        )

        warnings: list[str] = []
        payload: dict[str, Any] = {"from": prev_status, "to": rental.status}
        if rental.cancel_reason and target == Rental.Status.CANCELLED:
            payload["reason"] = rental.cancel_reason
        self._record_event(
            rental,
            type_value=RentalEvent.Type.STATUS_CHANGE,
            payload=payload,
            actor=actor,
            warnings=warnings,
        )
        if refunded:
            self._record_event(
                rental,
                type_value=RentalEvent.Type.CREDITS_REFUNDED,
                payload={"amount": refunded},
                actor=actor,
                warnings=warnings,
            )
        self._sync_refs(rental, warnings)
        try:
            notification_tasks.send_rental_status_update.delay(rental.pk, rental.status)
        except Exception:
            logger.info(
                "notifications: could not queue send_rental_status_update",
                exc_info=True,
                extra={"rental_id": rental.pk},
            )
            warnings.append("status notification could not be queued")
        rental.secondary_warnings = warnings
        return rental

    def _refund_amount(self, rental: Rental) -> int:
        if not getattr(settings, "RENTAL_REFUND_ON_CANCEL", False):
            return 0
        if rental.otp_verified:
            return 0
        return rental.credits_used

    def _get_locked(self, rental_id: Any) -> Rental:
        try:
            return Rental.objects.select_for_update().get(pk=rental_id)
        except (Rental.DoesNotExist, ValueError, TypeError):
            raise errors.NotFound("Rental not found")

    def _claim_slot(self, rental: Rental, user_id: Any, role: str) -> None:
        try:
            with transaction.atomic():
                RentalSlot.objects.create(
                    rental=rental,
                    user_id=user_id,
                    role=role,
                    booking_date=rental.booking_date,
                    booking_hour=rental.booking_hour,
                )
        except IntegrityError:
            raise errors.BookingConflict(role)

    def _sync_refs(self, rental: Rental, warnings: list[str]) -> None:
        for user_id, role in ((rental.renter_id, "renter"), (rental.host_id, "host")):
            try:
                self.directory.update_booking_ref(user_id, rental.pk, rental.status)
            except Exception:
                logger.warning(
                    "rentals: could not update active_bookings ref for %s",
                    role,
                    exc_info=True,
                    extra={"rental_id": rental.pk, "user_id": user_id},
                )
                warnings.append(f"active_bookings update failed for {role}")

    def _record_event(
        self,
        rental: Rental,
        *,
        type_value: str,
        payload: dict,
        actor,
        warnings: list[str],
    ) -> None:
        try:
            RentalEvent.objects.create(
                rental=rental,
                actor=actor,
                type=type_value,
                payload=payload,
            )
        except Exception:
            logger.exception(
                "rental_event: failed to record %s", type_value, extra={"rental_id": rental.pk}
            )
            warnings.append(f"event {type_value} not recorded")


def _as_pk(value: Any) -> Any:
    try:
        return int(value)
    except (TypeError, ValueError):
        return value
