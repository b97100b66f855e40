"""Per-user rental history split into active / finished / past buckets."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from django.db.models import Q, QuerySet
from django.utils import timezone

from .domain import ACTIVE_RENTAL_STATUSES
from .matching import page_bounds
from .models import Rental

BUCKETS = ("active", "finished", "past")


def bucket_querysets(user_id: Any, *, today: Optional[date] = None) -> dict[str, QuerySet]:
    """
    ``active``: still running and dated today or later.
    ``finished``: completed.
    ``past``: cancelled, or never completed and dated before today.
    """
    today = today or timezone.localdate()
    base = Rental.objects.filter(Q(renter_id=user_id) | Q(host_id=user_id)).select_related(
        "renter", "host"
    )
    return {
        "active": base.filter(
            status__in=ACTIVE_RENTAL_STATUSES, booking_date__gte=today
        ).order_by("booking_date", "booking_hour", "id"),
        "finished": base.filter(status=Rental.Status.COMPLETED).order_by(
            "-completed_at", "-id"
        ),
        "past": base.filter(
            Q(status=Rental.Status.CANCELLED)
            | Q(status__in=ACTIVE_RENTAL_STATUSES, booking_date__lt=today)
        ).order_by("-booking_date", "-booking_hour", "-id"),
    }


def user_order_buckets(
    user_id: Any, *, step: Any = 1, limit: Any = 10, today: Optional[date] = None
) -> tuple[dict[str, list[Rental]], dict[str, int]]:
    """Return one page of each bucket (same 1-based ``step``) and the bucket totals."""
    offset, limit = page_bounds(step, limit)
    pages: dict[str, list[Rental]] = {}
    counts: dict[str, int] = {}
    for name, qs in bucket_querysets(user_id, today=today).items():
        counts[name] = qs.count()
        pages[name] = list(qs[offset : offset + limit])
    return pages, counts
