from __future__ import annotations

import logging
from typing import Optional

from celery import shared_task
from django.contrib.auth import get_user_model

from notifications.models import NotificationLog

logger = logging.getLogger(__name__)
User = get_user_model()


def _get_rental(rental_id: int):
    from rentals.models import Rental

    try:
        return Rental.objects.select_related("renter", "host").get(pk=rental_id)
    except Rental.DoesNotExist:
        logger.warning("notifications: rental %s no longer exists", rental_id)
        return None


def _log_notification(
    kind: str,
    status: str,
    *,
    rental,
    user: Optional[User],
    phone: str = "",
    rental_status: str = "",
    error: str = "",
) -> None:
    try:
        NotificationLog.objects.create(
            kind=kind,
            status=status,
            rental=rental,
            user=user,
            phone=phone or "",
            rental_status=rental_status,
            error=(error or "")[:500],
        )
    except Exception:
        logger.exception(
            "notifications: failed to log %s notification",
            kind,
            extra={"rental_id": getattr(rental, "pk", None), "user_id": getattr(user, "pk", None)},
        )


def _send_sms_logged(
    kind: str,
    *,
    rental,
    user: Optional[User],
    body: str,
    rental_status: str = "",
) -> bool:
    """
    Hand a message to the SMS channel and record the attempt.

    Delivery is a log line; a provider hook-up replaces the ``logger.info`` call.
    """
    to_phone = getattr(user, "phone", None)
    if not to_phone:
        _log_notification(
            kind,
            NotificationLog.Status.FAILED,
            rental=rental,
            user=user,
            rental_status=rental_status,
            error="missing destination phone",
        )
        logger.warning(
            "notifications: cannot send SMS without destination",
            extra={"rental_id": rental.pk, "user_id": getattr(user, "pk", None)},
        )
        return False

    logger.info("notifications: sms %s to %s: %s", kind, to_phone, body)
    _log_notification(
        kind,
        NotificationLog.Status.SENT,
        rental=rental,
        user=user,
        phone=to_phone,
        rental_status=rental_status,
    )
    return True


@shared_task(queue="sms")
def send_rental_otps(rental_id: int):
    """Send each participant their own code plus the shared one."""
    rental = _get_rental(rental_id)
    if rental is None:
        return
    when = f"{rental.booking_date} {rental.booking_hour:02d}:00"
    _send_sms_logged(
        NotificationLog.Kind.RENTAL_OTP,
        rental=rental,
        user=rental.renter,
        body=(
            f"Your meetup with {rental.host.display_name} at {when} is confirmed. "
            f"Your code: {rental.renter_otp}. Shared code: {rental.common_otp}."
        ),
    )
    _send_sms_logged(
        NotificationLog.Kind.RENTAL_OTP,
        rental=rental,
        user=rental.host,
        body=(
            f"{rental.renter.display_name} booked you for {when}. "
            f"Your code: {rental.host_otp}. Shared code: {rental.common_otp}."
        ),
    )


@shared_task(queue="sms")
def send_rental_status_update(rental_id: int, status: str):
    rental = _get_rental(rental_id)
    if rental is None:
        return
    body = f"Your meetup on {rental.booking_date} is now {status}."
    if status == "cancelled" and rental.cancel_reason:
        body = f"{body} Reason: {rental.cancel_reason}"
    for user in (rental.renter, rental.host):
        _send_sms_logged(
            NotificationLog.Kind.RENTAL_STATUS,
            rental=rental,
            user=user,
            body=body,
            rental_status=status,
        )
