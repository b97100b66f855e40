from __future__ import annotations

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def default_credit_balance() -> int:
    return getattr(settings, "USER_DEFAULT_CREDITS", 3)


class User(AbstractUser):
    """Account plus the profile fields the matching and rental flows read."""

    phone = models.CharField(
        max_length=32,
        unique=True,
        null=True,
        blank=True,
        help_text="Mobile number used for OTP login.",
    )
    name = models.CharField(max_length=120, blank=True, default="")
    bio = models.TextField(blank=True, default="")
    gender = models.CharField(max_length=32, blank=True, default="")
    age = models.PositiveSmallIntegerField(null=True, blank=True)
    city = models.CharField(max_length=120, blank=True, default="", db_index=True)
    images = models.JSONField(default=list, blank=True)
    interests = models.JSONField(default=list, blank=True)

    preferred_gender = models.JSONField(
        default=list,
        blank=True,
        help_text="Genders this user wants to be matched with.",
    )
    preferred_age_min = models.PositiveSmallIntegerField(null=True, blank=True)
    preferred_age_max = models.PositiveSmallIntegerField(null=True, blank=True)
    preset_locations = models.JSONField(
        default=list,
        blank=True,
        help_text="List of {id, name} meeting spots the user accepts.",
    )
    availability = models.JSONField(
        default=dict,
        blank=True,
        help_text="Lowercase weekday name -> list of hours (0-23).",
    )

    credits_balance = models.PositiveIntegerField(default=default_credit_balance)
    credits_spent = models.PositiveIntegerField(default=0)

    is_on_rent = models.BooleanField(default=False)
    active_bookings = models.JSONField(
        default=list,
        blank=True,
        help_text="Denormalized refs to the user's rentals, maintained best-effort.",
    )
    last_seen = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta(AbstractUser.Meta):
        constraints = [
            models.CheckConstraint(
                condition=models.Q(credits_balance__gte=0),
                name="user_credits_balance_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["city", "gender"], name="user_city_gender_idx"),
        ]

    def __str__(self) -> str:
        return self.display_name

    @property
    def display_name(self) -> str:
        return (self.name or self.get_full_name() or self.username or "").strip()

    @property
    def primary_image(self) -> str:
        images = self.images or []
        return images[0] if images else ""

    def hours_available_on(self, weekday: str) -> set[int]:
        """Return the hours listed for ``weekday``; malformed entries are ignored."""
        raw = (self.availability or {}).get(weekday) or []
        hours: set[int] = set()
        for value in raw:
            try:
                hour = int(value)
            except (TypeError, ValueError):
                continue
            if 0 <= hour <= 23:
                hours.add(hour)
        return hours

    def has_preset_location(
        self, *, location_id: str | None = None, name: str | None = None
    ) -> bool:
        for entry in self.preset_locations or []:
            if not isinstance(entry, dict):
                continue
            if location_id is not None and str(entry.get("id", "")) == str(location_id):
                return True
            if name is not None:
                entry_name = str(entry.get("name", "")).strip().lower()
                if entry_name == name.strip().lower():
                    return True
        return False
