"""Domain helpers for rental scheduling, OTPs and state transitions."""

from __future__ import annotations

import secrets
from datetime import date, datetime
from typing import Optional

from django.db.models import Q
from django.utils import timezone

from users.models import WEEKDAYS

from . import errors
from .models import Rental

# Statuses that hold a participant's date/hour slot.
ACTIVE_RENTAL_STATUSES = (
    Rental.Status.PENDING,
    Rental.Status.CONFIRMED,
    Rental.Status.IN_PROGRESS,
)

# Forward-only lifecycle; cancelled is reachable from every active status.
ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Rental.Status.PENDING: frozenset(
        {
            Rental.Status.CONFIRMED,
            Rental.Status.IN_PROGRESS,
            Rental.Status.COMPLETED,
            Rental.Status.CANCELLED,
        }
    ),
    Rental.Status.CONFIRMED: frozenset(
        {Rental.Status.IN_PROGRESS, Rental.Status.COMPLETED, Rental.Status.CANCELLED}
    ),
    Rental.Status.IN_PROGRESS: frozenset({Rental.Status.COMPLETED, Rental.Status.CANCELLED}),
    Rental.Status.COMPLETED: frozenset(),
    Rental.Status.CANCELLED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def assert_can_transition(rental: Rental, target: str) -> None:
    if not can_transition(rental.status, target):
        raise errors.InvalidTransition(
            f"Cannot move rental from {rental.status} to {target}",
            current=rental.status,
            target=target,
        )


def weekday_key(day: date) -> str:
    """Return the availability key (lowercase English weekday) for ``day``."""
    return WEEKDAYS[day.weekday()]


def validate_slot(booking_date: Optional[date], booking_hour: Optional[int]) -> None:
    if booking_date is None:
        raise errors.ValidationError("booking_date is required", field="booking_date")
    if booking_hour is None or not 0 <= int(booking_hour) <= 23:
        raise errors.ValidationError(
            "booking_hour must be between 0 and 23", field="booking_hour"
        )


def generate_otp(digits: int = 4) -> str:
    """Return a zero-padded numeric code of ``digits`` length."""
    digits = max(int(digits), 1)
    return f"{secrets.randbelow(10**digits):0{digits}d}"


def issue_otps(digits: int = 4) -> dict[str, str]:
    """Generate the three independent codes for a rental's OTP stage."""
    return {
        "renter_otp": generate_otp(digits),
        "host_otp": generate_otp(digits),
        "common_otp": generate_otp(digits),
    }


def otp_matches(rental: Rental, submitted: str | None) -> bool:
    """True when ``submitted`` equals any one of the rental's three codes."""
    candidate = (submitted or "").strip()
    if not candidate:
        return False
    matched = False
    for code in (rental.renter_otp, rental.host_otp, rental.common_otp):
        if code and secrets.compare_digest(candidate.encode(), code.encode()):
            matched = True
    return matched


def active_rentals_at(booking_date: date, booking_hour: int):
    return Rental.objects.filter(
        booking_date=booking_date,
        booking_hour=booking_hour,
        status__in=ACTIVE_RENTAL_STATUSES,
    )


def user_has_active_rental(user_id, booking_date: date, booking_hour: int) -> bool:
    return (
        active_rentals_at(booking_date, booking_hour)
        .filter(Q(renter_id=user_id) | Q(host_id=user_id))
        .exists()
    )


def find_conflicting_party(
    renter_id, host_id, booking_date: date, booking_hour: int
) -> Optional[str]:
    """Return "renter" or "host" for the first participant already booked, else None."""
    if user_has_active_rental(renter_id, booking_date, booking_hour):
        return "renter"
    if user_has_active_rental(host_id, booking_date, booking_hour):
        return "host"
    return None


def busy_user_ids(booking_date: date, booking_hour: int) -> set:
    """Ids of every user holding an active rental at the given date/hour."""
    busy: set = set()
    for renter_id, host_id in active_rentals_at(booking_date, booking_hour).values_list(
        "renter_id", "host_id"
    ):
        busy.add(renter_id)
        busy.add(host_id)
    return busy


def booking_ref(rental: Rental, role: str) -> dict:
    """Denormalized entry stored on each participant's ``active_bookings`` list."""
    return {
        "rental_id": rental.pk,
        "booking_date": str(rental.booking_date),
        "booking_hour": rental.booking_hour,
        "role": role,
        "status": rental.status,
    }


def mark_cancelled(
    rental: Rental, *, reason: str | None = None, now: datetime | None = None
) -> None:
    """Mutate the provided rental instance into a cancelled state."""
    rental.status = Rental.Status.CANCELLED
    rental.cancelled_at = now or timezone.now()
    if reason:
        rental.cancel_reason = reason[:255]


def mark_completed(rental: Rental, *, now: datetime | None = None) -> None:
    rental.status = Rental.Status.COMPLETED
    rental.completed_at = now or timezone.now()
