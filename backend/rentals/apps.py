"""App configuration for the rentals domain."""

from django.apps import AppConfig


class RentalsConfig(AppConfig):
    """Register the rentals app with sane defaults."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "rentals"
