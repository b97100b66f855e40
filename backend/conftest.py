"""Shared pytest configuration and fixtures."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from itertools import count
from typing import Callable

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from rentals.domain import ACTIVE_RENTAL_STATUSES
from rentals.models import Rental, RentalSlot
from users.models import WEEKDAYS

User = get_user_model()

_sequence = count(1)


def every_hour(hours=range(0, 24)) -> dict:
    """Availability with the same hours on every weekday."""
    return {day: list(hours) for day in WEEKDAYS}


def next_weekday(name: str, *, start: date | None = None) -> date:
    """First date on or after ``start`` (default: tomorrow) falling on ``name``."""
    start = start or timezone.localdate() + timedelta(days=1)
    offset = (WEEKDAYS.index(name) - start.weekday()) % 7
    return start + timedelta(days=offset)


@pytest.fixture
def api_client():
    """DRF API client for request/response helpers."""
    return APIClient()


@pytest.fixture
def user_factory() -> Callable[..., User]:
    def _create_user(**fields) -> User:
        n = next(_sequence)
        fields.setdefault("username", f"user{n}")
        fields.setdefault("phone", f"+9190000{n:05d}")
        fields.setdefault("name", fields["username"].title())
        fields.setdefault("city", "Kochi")
        fields.setdefault("gender", "female")
        fields.setdefault("age", 25)
        fields.setdefault("availability", every_hour())
        password = fields.pop("password", "testpass")
        return User.objects.create_user(password=password, **fields)

    return _create_user


@pytest.fixture
def renter_user(user_factory):
    return user_factory(
        username="renter",
        gender="male",
        age=28,
        preferred_gender=["female"],
        preferred_age_min=20,
        preferred_age_max=35,
        credits_balance=3,
    )


@pytest.fixture
def host_user(user_factory):
    return user_factory(
        username="host",
        gender="female",
        age=26,
        preset_locations=[{"id": "loc-1", "name": "Marine Drive"}],
        availability=every_hour(range(9, 21)),
    )


@pytest.fixture
def booking_day() -> date:
    return next_weekday("saturday")


@pytest.fixture
def rental_factory(renter_user, host_user, booking_day) -> Callable[..., Rental]:
    """Create a rental row directly, with slot rows while its status is active."""

    def _create_rental(
        *,
        renter=None,
        host=None,
        booking_date=None,
        booking_hour=14,
        status=Rental.Status.CONFIRMED,
        **extra_fields,
    ) -> Rental:
        renter = renter or renter_user
        host = host or host_user
        booking_date = booking_date or booking_day
        extra_fields.setdefault("city", "Kochi")
        extra_fields.setdefault("renter_otp", "1111")
        extra_fields.setdefault("host_otp", "2222")
        extra_fields.setdefault("common_otp", "3333")
        extra_fields.setdefault(
            "scheduled_at",
            timezone.make_aware(datetime.combine(booking_date, time(hour=booking_hour))),
        )
        rental = Rental.objects.create(
            renter=renter,
            host=host,
            booking_date=booking_date,
            booking_hour=booking_hour,
            status=status,
            **extra_fields,
        )
        if status in ACTIVE_RENTAL_STATUSES:
            for user, role in ((renter, RentalSlot.Role.RENTER), (host, RentalSlot.Role.HOST)):
                RentalSlot.objects.create(
                    rental=rental,
                    user=user,
                    role=role,
                    booking_date=booking_date,
                    booking_hour=booking_hour,
                )
        return rental

    return _create_rental
