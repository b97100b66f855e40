"""Database models for meetup rentals."""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q


class Rental(models.Model):
    """A paid, scheduled meeting between a renter and a host at one date/hour."""

    class Status(models.TextChoices):
        PENDING = "pending", "pending"
        CONFIRMED = "confirmed", "confirmed"
        IN_PROGRESS = "in-progress", "in-progress"
        COMPLETED = "completed", "completed"
        CANCELLED = "cancelled", "cancelled"

    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="rentals_as_renter",
        on_delete=models.CASCADE,
    )
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="rentals_as_host",
        on_delete=models.CASCADE,
    )
    city = models.CharField(max_length=120)
    preset_location_id = models.CharField(max_length=64, blank=True, default="")
    preset_location_name = models.CharField(max_length=255, blank=True, default="")
    booking_date = models.DateField()
    booking_hour = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(0), MaxValueValidator(23)],
        help_text="Hour of the day in 24-hour format (0-23).",
    )
    scheduled_at = models.DateTimeField()
    duration_hours = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    credits_used = models.PositiveIntegerField(default=0)
    status = models.CharField(
        max_length=16,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    renter_otp = models.CharField(max_length=12, blank=True, default="")
    host_otp = models.CharField(max_length=12, blank=True, default="")
    common_otp = models.CharField(max_length=12, blank=True, default="")
    otp_verified = models.BooleanField(default=False)
    otp_verified_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["renter", "status"], name="rental_renter_status_idx"),
            models.Index(fields=["host", "status"], name="rental_host_status_idx"),
            models.Index(fields=["booking_date", "booking_hour"], name="rental_slot_time_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~Q(renter=F("host")),
                name="rental_renter_not_host",
            ),
            models.CheckConstraint(
                condition=Q(booking_hour__gte=0) & Q(booking_hour__lte=23),
                name="rental_booking_hour_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Rental #{self.pk} {self.booking_date} {self.booking_hour}:00 ({self.status})"

    @property
    def location(self) -> dict:
        data = {"city": self.city}
        if self.preset_location_id:
            data["preset_location_id"] = self.preset_location_id
        if self.preset_location_name:
            data["preset_location_name"] = self.preset_location_name
        return data

    def is_active(self) -> bool:
        """Return True while the rental holds its slot."""
        return self.status in {
            self.Status.PENDING,
            self.Status.CONFIRMED,
            self.Status.IN_PROGRESS,
        }

    def role_of(self, user_id) -> str | None:
        if user_id == self.renter_id:
            return "renter"
        if user_id == self.host_id:
            return "host"
        return None


class RentalSlot(models.Model):
    """
    One row per participant per rental while the rental is active.

    The partial unique constraint keeps a user to one active rental per date/hour,
    including under concurrent confirmations.
    """

    class Role(models.TextChoices):
        RENTER = "renter", "renter"
        HOST = "host", "host"

    rental = models.ForeignKey(Rental, related_name="slots", on_delete=models.CASCADE)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        related_name="rental_slots",
        on_delete=models.CASCADE,
    )
    role = models.CharField(max_length=8, choices=Role.choices)
    booking_date = models.DateField()
    booking_hour = models.PositiveSmallIntegerField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "booking_date", "booking_hour"],
                condition=Q(is_active=True),
                name="rental_slot_active_unique",
            ),
        ]

    def __str__(self) -> str:
        return f"Slot user={self.user_id} {self.booking_date} {self.booking_hour}:00"


class RentalEvent(models.Model):
    class Type(models.TextChoices):
        STATUS_CHANGE = "status_change", "Status change"
        OTP_VERIFIED = "otp_verified", "OTP verified"
        CREDITS_REFUNDED = "credits_refunded", "Credits refunded"

    rental = models.ForeignKey(Rental, on_delete=models.CASCADE, related_name="events")
    type = models.CharField(max_length=32, choices=Type.choices)
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rental_events",
    )

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["rental", "created_at"], name="rental_event_created_idx"),
        ]

    def __str__(self) -> str:
        return f"RentalEvent {self.pk} for rental {self.rental_id} ({self.type})"
