import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("rentals", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationLog",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("rental_otp", "Rental OTP codes"),
                            ("rental_status", "Rental status update"),
                        ],
                        max_length=32,
                    ),
                ),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("rental_status", models.CharField(blank=True, max_length=16)),
                ("status", models.CharField(choices=[("sent", "Sent"), ("failed", "Failed")], max_length=8)),
                ("error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "rental",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notifications",
                        to="rentals.rental",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notification_logs",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["rental", "created_at"], name="notif_rental_created_idx"),
                    models.Index(fields=["kind", "created_at"], name="notif_kind_created_idx"),
                ],
            },
        ),
    ]
