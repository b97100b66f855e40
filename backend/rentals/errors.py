"""Failures raised by the matching and rental services."""

from __future__ import annotations

from typing import Any


class RentalError(Exception):
    """Base class; API views render these into the status/msg envelope."""

    status_code = 400
    default_msg = "Rental request failed"

    def __init__(self, msg: str | None = None, **context: Any) -> None:
        self.msg = msg or self.default_msg
        self.context = context
        super().__init__(self.msg)

    def payload(self) -> dict[str, Any]:
        return dict(self.context)


class ValidationError(RentalError):
    """A required filter or field is missing or malformed."""

    default_msg = "Validation failed"

    def __init__(self, msg: str | None = None, *, field: str | None = None, **context: Any):
        if field:
            context["field"] = field
        super().__init__(msg, **context)


class NotFound(RentalError):
    status_code = 404
    default_msg = "Not found"


class InsufficientCredits(RentalError):
    default_msg = "Insufficient credits"

    def __init__(self, msg: str | None = None, *, balance: int, required: int | None = None):
        context: dict[str, Any] = {"balance": balance}
        if required is not None:
            context["required"] = required
        super().__init__(msg, **context)


class BookingConflict(RentalError):
    status_code = 409
    default_msg = "Slot already booked"

    def __init__(self, party: str, msg: str | None = None):
        self.party = party
        super().__init__(
            msg or f"The {party} already has an active rental at this date and hour",
            party=party,
        )


class InvalidOtp(RentalError):
    status_code = 401
    default_msg = "Invalid OTP"


class InvalidTransition(RentalError):
    status_code = 409
    default_msg = "Rental cannot move to the requested status"


class NotParticipant(RentalError):
    status_code = 403
    default_msg = "Only the renter or host can act on this rental"
