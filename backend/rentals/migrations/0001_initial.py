"""Initial migration for the rentals app."""

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Rental",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("city", models.CharField(max_length=120)),
                ("preset_location_id", models.CharField(blank=True, default="", max_length=64)),
                (
                    "preset_location_name",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("booking_date", models.DateField()),
                (
                    "booking_hour",
                    models.PositiveSmallIntegerField(
                        help_text="Hour of the day in 24-hour format (0-23).",
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(23),
                        ],
                    ),
                ),
                ("scheduled_at", models.DateTimeField()),
                (
                    "duration_hours",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("credits_used", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "pending"),
                            ("confirmed", "confirmed"),
                            ("in-progress", "in-progress"),
                            ("completed", "completed"),
                            ("cancelled", "cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("renter_otp", models.CharField(blank=True, default="", max_length=12)),
                ("host_otp", models.CharField(blank=True, default="", max_length=12)),
                ("common_otp", models.CharField(blank=True, default="", max_length=12)),
                ("otp_verified", models.BooleanField(default=False)),
                ("otp_verified_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.CharField(blank=True, default="", max_length=255)),
                (
                    "host",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rentals_as_host",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "renter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rentals_as_renter",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="RentalSlot",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "role",
                    models.CharField(
                        choices=[("renter", "renter"), ("host", "host")],
                        max_length=8,
                    ),
                ),
                ("booking_date", models.DateField()),
                ("booking_hour", models.PositiveSmallIntegerField()),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "rental",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="slots",
                        to="rentals.rental",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rental_slots",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="RentalEvent",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("status_change", "Status change"),
                            ("otp_verified", "OTP verified"),
                            ("credits_refunded", "Credits refunded"),
                        ],
                        max_length=32,
                    ),
                ),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rental_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "rental",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="rentals.rental",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.AddIndex(
            model_name="rental",
            index=models.Index(fields=["renter", "status"], name="rental_renter_status_idx"),
        ),
        migrations.AddIndex(
            model_name="rental",
            index=models.Index(fields=["host", "status"], name="rental_host_status_idx"),
        ),
        migrations.AddIndex(
            model_name="rental",
            index=models.Index(fields=["booking_date", "booking_hour"], name="rental_slot_time_idx"),
        ),
        migrations.AddConstraint(
            model_name="rental",
            constraint=models.CheckConstraint(
                condition=models.Q(("renter", models.F("host")), _negated=True),
                name="rental_renter_not_host",
            ),
        ),
        migrations.AddConstraint(
            model_name="rental",
            constraint=models.CheckConstraint(
                condition=models.Q(("booking_hour__gte", 0), ("booking_hour__lte", 23)),
                name="rental_booking_hour_range",
            ),
        ),
        migrations.AddConstraint(
            model_name="rentalslot",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_active", True)),
                fields=("user", "booking_date", "booking_hour"),
                name="rental_slot_active_unique",
            ),
        ),
        migrations.AddIndex(
            model_name="rentalevent",
            index=models.Index(fields=["rental", "created_at"], name="rental_event_created_idx"),
        ),
    ]
