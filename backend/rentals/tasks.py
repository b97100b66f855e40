"""Celery tasks for rentals."""

from __future__ import annotations

import logging
from datetime import date

from celery import shared_task
from django.db import transaction
from django.utils import timezone

from users.directory import ACTIVE_REF_STATUSES, has_active_ref_on
from users.models import User

from .models import Rental

logger = logging.getLogger(__name__)


@shared_task(name="rentals.sync_on_rent_flags")
def sync_on_rent_flags() -> int:
    """
    Reconcile every user's ``active_bookings`` refs with the rental rows.

    Refs whose rental left the active set (or no longer exists) get the current
    status and are marked stale; ``is_on_rent`` is recomputed for today.
    Returns the number of users updated.
    """
    today: date = timezone.localdate()
    updated_count = 0
    candidates = [
        user_id
        for user_id, on_rent, refs in User.objects.order_by("id").values_list(
            "id", "is_on_rent", "active_bookings"
        )
        if on_rent or refs
    ]
    for user_id in candidates:
        try:
            if _sync_user(user_id, today):
                updated_count += 1
        except Exception:
            logger.exception("rentals: on-rent sync failed", extra={"user_id": user_id})
    logger.info("rentals: on-rent sync updated %s users", updated_count)
    return updated_count


def _sync_user(user_id: int, today: date) -> bool:
    with transaction.atomic():
        user = User.objects.select_for_update().get(pk=user_id)
        refs = list(user.active_bookings or [])
        rental_ids = [ref.get("rental_id") for ref in refs if ref.get("rental_id") is not None]
        statuses = dict(
            Rental.objects.filter(pk__in=rental_ids).values_list("id", "status")
        )

        synced = []
        for ref in refs:
            status = statuses.get(ref.get("rental_id"))
            if status is None:
                ref = {**ref, "stale": True}
            elif status != ref.get("status") or status not in ACTIVE_REF_STATUSES:
                ref = {**ref, "status": status}
                if status not in ACTIVE_REF_STATUSES:
                    ref["stale"] = True
            synced.append(ref)

        on_rent = has_active_ref_on(synced, today)
        if synced == refs and on_rent == user.is_on_rent:
            return False
        user.active_bookings = synced
        user.is_on_rent = on_rent
        user.save(update_fields=["active_bookings", "is_on_rent"])
        return True
