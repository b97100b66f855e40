import django_filters as filters
from django.db.models import Q

from rentals.domain import ACTIVE_RENTAL_STATUSES
from rentals.models import Rental


class OperatorRentalFilter(filters.FilterSet):
    status = filters.CharFilter(field_name="status", lookup_expr="iexact")
    city = filters.CharFilter(field_name="city", lookup_expr="iexact")
    booking_date = filters.DateFilter(field_name="booking_date")
    booking_date_after = filters.DateFilter(field_name="booking_date", lookup_expr="gte")
    booking_date_before = filters.DateFilter(field_name="booking_date", lookup_expr="lte")
    renter = filters.NumberFilter(field_name="renter_id")
    host = filters.NumberFilter(field_name="host_id")
    preset_location = filters.CharFilter(method="filter_preset_location")
    active = filters.BooleanFilter(method="filter_active")

    class Meta:
        model = Rental
        fields = ["status", "city", "booking_date", "renter", "host", "active"]

    def filter_preset_location(self, queryset, name, value):
        value = (value or "").strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(preset_location_id=value) | Q(preset_location_name__iexact=value)
        )

    def filter_active(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(status__in=ACTIVE_RENTAL_STATUSES)
        return queryset.exclude(status__in=ACTIVE_RENTAL_STATUSES)
