from rest_framework import serializers

from rentals.models import Rental, RentalEvent


def _display_name(user) -> str:
    if not user:
        return ""
    name = (getattr(user, "display_name", "") or "").strip()
    if name:
        return name
    if getattr(user, "id", None):
        return f"User {user.id}"
    return ""


class OperatorRentalUserSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.SerializerMethodField()
    phone = serializers.CharField(read_only=True, allow_null=True)
    city = serializers.CharField(read_only=True, allow_blank=True)
    credits_balance = serializers.IntegerField(read_only=True)

    def get_name(self, obj):
        return _display_name(obj)


class OperatorRentalEventSerializer(serializers.ModelSerializer):
    actor = OperatorRentalUserSerializer(read_only=True)

    class Meta:
        model = RentalEvent
        fields = ["id", "type", "payload", "actor", "created_at"]
        read_only_fields = fields


class OperatorRentalListSerializer(serializers.ModelSerializer):
    renter = OperatorRentalUserSerializer(read_only=True)
    host = OperatorRentalUserSerializer(read_only=True)
    location = serializers.SerializerMethodField()

    class Meta:
        model = Rental
        fields = [
            "id",
            "status",
            "renter",
            "host",
            "location",
            "booking_date",
            "booking_hour",
            "scheduled_at",
            "duration_hours",
            "credits_used",
            "otp_verified",
            "otp_verified_at",
            "created_at",
            "completed_at",
            "cancelled_at",
            "cancel_reason",
        ]
        read_only_fields = fields

    def get_location(self, obj: Rental):
        return obj.location


class OperatorRentalDetailSerializer(OperatorRentalListSerializer):
    events = serializers.SerializerMethodField()

    class Meta(OperatorRentalListSerializer.Meta):
        fields = OperatorRentalListSerializer.Meta.fields + ["events"]
        read_only_fields = fields

    def get_events(self, obj: Rental):
        events = obj.events.select_related("actor").order_by("created_at", "id")
        return OperatorRentalEventSerializer(events, many=True).data


class OperatorCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
