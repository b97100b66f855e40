from django.apps import AppConfig


class OperatorRentalsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "operator_rentals"
