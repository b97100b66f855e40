from django.contrib import admin, messages

from .errors import RentalError
from .ledger import BookingLedger
from .models import Rental, RentalEvent


class RentalEventInline(admin.TabularInline):
    model = RentalEvent
    extra = 0
    can_delete = False
    readonly_fields = ("type", "payload", "actor", "created_at")


@admin.register(Rental)
class RentalAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "renter",
        "host",
        "city",
        "booking_date",
        "booking_hour",
        "status",
        "credits_used",
        "otp_verified",
    )
    list_filter = ("status", "city", "booking_date", "otp_verified")
    search_fields = ("renter__username", "renter__phone", "host__username", "host__phone", "city")
    readonly_fields = (
        "renter_otp",
        "host_otp",
        "common_otp",
        "otp_verified",
        "otp_verified_at",
        "created_at",
        "updated_at",
        "completed_at",
        "cancelled_at",
    )
    inlines = [RentalEventInline]
    actions = ["confirm_rentals", "cancel_rentals", "complete_rentals"]

    def _apply(self, request, queryset, operation: str, label: str):
        ledger = BookingLedger()
        done = 0
        for rental_id in queryset.values_list("id", flat=True):
            try:
                getattr(ledger, operation)(rental_id, actor=request.user)
            except RentalError as exc:
                self.message_user(request, f"Rental {rental_id}: {exc.msg}", messages.WARNING)
            else:
                done += 1
        if done:
            self.message_user(request, f"{label} {done} rental(s).", messages.SUCCESS)

    @admin.action(description="Confirm selected pending rentals")
    def confirm_rentals(self, request, queryset):
        self._apply(request, queryset, "mark_confirmed", "Confirmed")

    @admin.action(description="Cancel selected rentals")
    def cancel_rentals(self, request, queryset):
        self._apply(request, queryset, "cancel", "Cancelled")

    @admin.action(description="Complete selected rentals")
    def complete_rentals(self, request, queryset):
        self._apply(request, queryset, "complete", "Completed")
