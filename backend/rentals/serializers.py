"""Serializers for rental and match API endpoints."""

from __future__ import annotations

from datetime import datetime, time
from typing import Any

from django.conf import settings
from django.utils import timezone
from rest_framework import serializers

from .matching import SearchCriteria
from .models import Rental


class LocationSerializer(serializers.Serializer):
    city = serializers.CharField(max_length=128, required=False, allow_blank=True)
    preset_location_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    preset_location_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )


class AgeRangeSerializer(serializers.Serializer):
    min = serializers.IntegerField(min_value=0, required=False)
    max = serializers.IntegerField(min_value=0, required=False)

    def validate(self, attrs):
        low, high = attrs.get("min"), attrs.get("max")
        if low is not None and high is not None and low > high:
            raise serializers.ValidationError("min cannot be greater than max")
        return attrs


def _build_criteria(
    *,
    location: dict[str, Any] | None,
    age: dict[str, Any] | None,
    genders,
    limit,
    step,
    booking_date=None,
    booking_hour=None,
    booking_hour_start=None,
    booking_hour_end=None,
) -> SearchCriteria:
    location = location or {}
    age = age or {}
    return SearchCriteria(
        city=(location.get("city") or "").strip() or None,
        age_min=age.get("min"),
        age_max=age.get("max"),
        genders=frozenset(genders or ()),
        preset_location_id=(location.get("preset_location_id") or "").strip() or None,
        preset_location_name=(location.get("preset_location_name") or "").strip() or None,
        booking_date=booking_date,
        booking_hour=booking_hour,
        booking_hour_start=booking_hour_start,
        booking_hour_end=booking_hour_end,
        limit=limit,
        step=step or 1,
    )


class InitiateRentalSerializer(serializers.Serializer):
    location = LocationSerializer(required=False)
    booking_date = serializers.DateField(required=False)
    booking_hour = serializers.IntegerField(min_value=0, max_value=23, required=False)
    booking_hour_start = serializers.IntegerField(min_value=0, max_value=23, required=False)
    booking_hour_end = serializers.IntegerField(min_value=0, max_value=23, required=False)
    preferred_age = AgeRangeSerializer(required=False)
    preferred_gender = serializers.ListField(
        child=serializers.CharField(max_length=32), required=False, allow_empty=True
    )
    limit = serializers.IntegerField(min_value=1, required=False)
    step = serializers.IntegerField(required=False)

    def validate(self, attrs):
        has_hour = any(
            attrs.get(key) is not None
            for key in ("booking_hour", "booking_hour_start", "booking_hour_end")
        )
        if has_hour and not attrs.get("booking_date"):
            raise serializers.ValidationError(
                {"booking_date": "booking_date is required with a booking hour."}
            )
        return attrs

    def to_criteria(self) -> SearchCriteria:
        data = self.validated_data
        return _build_criteria(
            location=data.get("location"),
            age=data.get("preferred_age"),
            genders=data.get("preferred_gender"),
            limit=data.get("limit"),
            step=data.get("step"),
            booking_date=data.get("booking_date"),
            booking_hour=data.get("booking_hour"),
            booking_hour_start=data.get("booking_hour_start"),
            booking_hour_end=data.get("booking_hour_end"),
        )


class TopMatchesQuerySerializer(serializers.Serializer):
    """Query-string filters for the un-metered match preview."""

    city = serializers.CharField(max_length=128, required=False, allow_blank=True)
    age_min = serializers.IntegerField(min_value=0, required=False)
    age_max = serializers.IntegerField(min_value=0, required=False)
    gender = serializers.CharField(max_length=128, required=False, allow_blank=True)
    preset_location_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
    preset_location_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
    limit = serializers.IntegerField(min_value=1, required=False)
    step = serializers.IntegerField(required=False)

    def validate(self, attrs):
        low, high = attrs.get("age_min"), attrs.get("age_max")
        if low is not None and high is not None and low > high:
            raise serializers.ValidationError({"age_min": "age_min cannot exceed age_max."})
        return attrs

    def to_criteria(self) -> SearchCriteria:
        data = self.validated_data
        genders = [part.strip() for part in (data.get("gender") or "").split(",") if part.strip()]
        return _build_criteria(
            location={
                "city": data.get("city"),
                "preset_location_id": data.get("preset_location_id"),
                "preset_location_name": data.get("preset_location_name"),
            },
            age={"min": data.get("age_min"), "max": data.get("age_max")},
            genders=genders,
            limit=data.get("limit") or getattr(settings, "MATCHES_TOP_LIMIT", 20),
            step=data.get("step"),
        )


class ConfirmRentalSerializer(serializers.Serializer):
    host_id = serializers.IntegerField()
    scheduled_at = serializers.DateTimeField(required=False)
    booking_date = serializers.DateField()
    booking_hour = serializers.IntegerField(min_value=0, max_value=23)
    duration_hours = serializers.IntegerField(min_value=1, required=False, default=1)
    credits_used = serializers.IntegerField(min_value=0, required=False, default=0)
    location = LocationSerializer()

    def validate_location(self, value):
        if not (value.get("city") or "").strip():
            raise serializers.ValidationError("location.city is required.")
        return value

    def validate(self, attrs):
        if not attrs.get("scheduled_at"):
            naive = datetime.combine(attrs["booking_date"], time(hour=attrs["booking_hour"]))
            attrs["scheduled_at"] = timezone.make_aware(naive)
        return attrs


class VerifyOtpSerializer(serializers.Serializer):
    rental_id = serializers.IntegerField()
    otp = serializers.CharField(max_length=12, trim_whitespace=True)


class OrdersQuerySerializer(serializers.Serializer):
    step = serializers.IntegerField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False)


def counterpart_summary(user) -> dict:
    return {
        "user_id": user.pk,
        "name": user.display_name,
        "age": user.age,
        "image": user.primary_image,
    }


class RentalOrderSerializer(serializers.ModelSerializer):
    """A rental as seen by one of its participants (``context["user_id"]``)."""

    role = serializers.SerializerMethodField()
    counterpart = serializers.SerializerMethodField()
    location = serializers.SerializerMethodField()
    otp_codes = serializers.SerializerMethodField()

    class Meta:
        model = Rental
        fields = (
            "id",
            "status",
            "role",
            "counterpart",
            "location",
            "booking_date",
            "booking_hour",
            "scheduled_at",
            "duration_hours",
            "credits_used",
            "otp_verified",
            "otp_codes",
            "created_at",
            "completed_at",
            "cancelled_at",
            "cancel_reason",
        )
        read_only_fields = fields

    def _user_id(self):
        return self.context.get("user_id")

    def get_role(self, obj: Rental):
        return obj.role_of(self._user_id())

    def get_counterpart(self, obj: Rental):
        other = obj.host if obj.renter_id == self._user_id() else obj.renter
        return counterpart_summary(other)

    def get_location(self, obj: Rental):
        return obj.location

    def get_otp_codes(self, obj: Rental):
        """Own and shared codes, only while the rental still awaits verification."""
        if obj.otp_verified or not obj.is_active():
            return None
        role = obj.role_of(self._user_id())
        if role is None:
            return None
        own = obj.renter_otp if role == "renter" else obj.host_otp
        return {"own": own, "common": obj.common_otp}
