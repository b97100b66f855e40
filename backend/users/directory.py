"""User directory used by the matching and rental services.

Components receive a directory at construction time instead of reaching for the
model registry, so tests and alternate stores can substitute their own.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Iterator, Optional, Protocol

from django.db import transaction
from django.db.models import F, Q, Value
from django.db.models.functions import Greatest
from django.utils import timezone

from .models import User

ACTIVE_REF_STATUSES = frozenset({"pending", "confirmed", "in-progress"})


class UserDirectory(Protocol):
    def get(self, user_id: Any) -> Optional[User]: ...

    def debit_credits(self, user_id: Any, amount: int) -> bool: ...

    def refund_credits(self, user_id: Any, amount: int) -> None: ...

    def list_city_users(
        self, city: str, *, exclude_id: Any, limit: int, offset: int = 0
    ) -> list[User]: ...

    def iter_users(
        self, predicate: Q, *, exclude_ids: Iterable[Any] = (), ordering: Iterable[Any] = ()
    ) -> Iterator[User]: ...

    def push_booking_ref(self, user_id: Any, ref: dict, *, on_rent: bool) -> None: ...

    def update_booking_ref(self, user_id: Any, rental_id: Any, status: str) -> None: ...


class DjangoUserDirectory:
    """ORM-backed directory over ``users.User``."""

    def get(self, user_id: Any) -> Optional[User]:
        if user_id in (None, ""):
            return None
        try:
            return User.objects.get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError):
            return None

    def debit_credits(self, user_id: Any, amount: int) -> bool:
        """
        Move ``amount`` credits from balance to spent in one conditional UPDATE.

        Returns False when the balance no longer covers the amount; nothing is
        written in that case.
        """
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if amount == 0:
            return User.objects.filter(pk=user_id).exists()
        updated = User.objects.filter(pk=user_id, credits_balance__gte=amount).update(
            credits_balance=F("credits_balance") - amount,
            credits_spent=F("credits_spent") + amount,
        )
        return updated == 1

    def refund_credits(self, user_id: Any, amount: int) -> None:
        if amount <= 0:
            return
        User.objects.filter(pk=user_id).update(
            credits_balance=F("credits_balance") + amount,
            credits_spent=Greatest(F("credits_spent") - amount, Value(0)),
        )

    def list_city_users(
        self, city: str, *, exclude_id: Any, limit: int, offset: int = 0
    ) -> list[User]:
        qs = User.objects.filter(city__iexact=city, is_active=True).order_by("id")
        if exclude_id is not None:
            qs = qs.exclude(pk=exclude_id)
        return list(qs[offset : offset + limit])

    def iter_users(
        self, predicate: Q, *, exclude_ids: Iterable[Any] = (), ordering: Iterable[Any] = ()
    ) -> Iterator[User]:
        qs = User.objects.filter(predicate, is_active=True)
        exclude_ids = [pk for pk in exclude_ids if pk is not None]
        if exclude_ids:
            qs = qs.exclude(pk__in=exclude_ids)
        qs = qs.order_by(*(list(ordering) or ["id"]))
        return qs.iterator(chunk_size=200)

    def push_booking_ref(self, user_id: Any, ref: dict, *, on_rent: bool) -> None:
        with transaction.atomic():
            user = User.objects.select_for_update().get(pk=user_id)
            refs = [
                existing
                for existing in (user.active_bookings or [])
                if str(existing.get("rental_id")) != str(ref.get("rental_id"))
            ]
            refs.append(ref)
            user.active_bookings = refs
            update_fields = ["active_bookings"]
            if on_rent and not user.is_on_rent:
                user.is_on_rent = True
                update_fields.append("is_on_rent")
            user.save(update_fields=update_fields)

    def update_booking_ref(self, user_id: Any, rental_id: Any, status: str) -> None:
        """Record the new status on the ref and mark it stale once inactive."""
        today = timezone.localdate()
        with transaction.atomic():
            user = User.objects.select_for_update().get(pk=user_id)
            refs = []
            for ref in user.active_bookings or []:
                if str(ref.get("rental_id")) == str(rental_id):
                    ref = {**ref, "status": status}
                    if status not in ACTIVE_REF_STATUSES:
                        ref["stale"] = True
                refs.append(ref)
            user.active_bookings = refs
            user.is_on_rent = has_active_ref_on(refs, today)
            user.save(update_fields=["active_bookings", "is_on_rent"])


def has_active_ref_on(refs: list[dict], day: date) -> bool:
    day_str = day.isoformat()
    return any(
        ref.get("status") in ACTIVE_REF_STATUSES
        and not ref.get("stale")
        and ref.get("booking_date") == day_str
        for ref in refs
    )


def get_default_directory() -> DjangoUserDirectory:
    return DjangoUserDirectory()
