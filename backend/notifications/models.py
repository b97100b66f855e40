from django.conf import settings
from django.db import models


class NotificationLog(models.Model):
    """One SMS attempt to a rental participant."""

    class Kind(models.TextChoices):
        RENTAL_OTP = "rental_otp", "Rental OTP codes"
        RENTAL_STATUS = "rental_status", "Rental status update"

    class Status(models.TextChoices):
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"

    kind = models.CharField(max_length=32, choices=Kind.choices)
    rental = models.ForeignKey(
        "rentals.Rental",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notification_logs",
    )
    phone = models.CharField(max_length=32, blank=True)
    # Rental status announced by a status update; blank for OTP messages.
    rental_status = models.CharField(max_length=16, blank=True)
    status = models.CharField(max_length=8, choices=Status.choices)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["rental", "created_at"], name="notif_rental_created_idx"),
            models.Index(fields=["kind", "created_at"], name="notif_kind_created_idx"),
        ]
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.kind} rental={self.rental_id} ({self.status})"
