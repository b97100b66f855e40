from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = (
        "username",
        "name",
        "phone",
        "city",
        "credits_balance",
        "is_on_rent",
        "is_staff",
        "is_active",
    )
    list_filter = BaseUserAdmin.list_filter + ("is_on_rent", "city")
    search_fields = ("username", "name", "phone", "city")
    fieldsets = BaseUserAdmin.fieldsets + (
        (
            "Profile",
            {
                "fields": (
                    "phone",
                    "name",
                    "bio",
                    "gender",
                    "age",
                    "city",
                    "images",
                    "interests",
                )
            },
        ),
        (
            "Matching",
            {
                "fields": (
                    "preferred_gender",
                    "preferred_age_min",
                    "preferred_age_max",
                    "preset_locations",
                    "availability",
                )
            },
        ),
        (
            "Credits",
            {"fields": ("credits_balance", "credits_spent")},
        ),
        (
            "Rentals",
            {"fields": ("is_on_rent", "active_bookings", "last_seen")},
        ),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Profile", {"fields": ("phone", "name", "city")}),
    )
