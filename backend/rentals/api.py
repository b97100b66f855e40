from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import generics, permissions, status

from core.responses import (
    domain_error_response,
    error_response,
    success_response,
    validation_error_response,
)

from .errors import RentalError
from .ledger import BookingLedger
from .matching import MatchFinder, MatchOutcome
from .orchestrator import BookingOrchestrator
from .orders import BUCKETS, user_order_buckets
from .serializers import (
    ConfirmRentalSerializer,
    InitiateRentalSerializer,
    OrdersQuerySerializer,
    RentalOrderSerializer,
    TopMatchesQuerySerializer,
    VerifyOtpSerializer,
)

logger = logging.getLogger(__name__)

OUTCOME_MESSAGES = {
    MatchOutcome.EXACT: "Matches found",
    MatchOutcome.FALLBACK: "No exact matches; showing other users in the city",
    MatchOutcome.EMPTY: "No users found in this city",
}


class InitiateRentalView(generics.GenericAPIView):
    """Search for hosts; each returned candidate costs one credit."""

    serializer_class = InitiateRentalSerializer
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = BookingOrchestrator().initiate(request.user.pk, serializer.to_criteria())
        except RentalError as exc:
            return domain_error_response(exc)
        return success_response(
            OUTCOME_MESSAGES[result.outcome],
            matches=result.matches,
            outcome=result.outcome.value,
            credits_charged=result.credits_charged,
        )


class ConfirmRentalView(generics.GenericAPIView):
    """Book a host for the caller at a date/hour."""

    serializer_class = ConfirmRentalSerializer
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        try:
            rental = BookingLedger().confirm(
                renter_id=request.user.pk,
                host_id=data["host_id"],
                scheduled_at=data["scheduled_at"],
                booking_date=data["booking_date"],
                booking_hour=data["booking_hour"],
                duration_hours=data["duration_hours"],
                credits_used=data["credits_used"],
                location=data["location"],
                actor=request.user,
            )
        except RentalError as exc:
            return domain_error_response(exc)
        body = {"rental_id": rental.pk}
        if rental.secondary_warnings:
            body["warnings"] = rental.secondary_warnings
        return success_response("Rental confirmed", status=status.HTTP_201_CREATED, **body)


class VerifyRentalOtpView(generics.GenericAPIView):
    serializer_class = VerifyOtpSerializer
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        data = serializer.validated_data
        try:
            rental = BookingLedger().verify_otp(
                data["rental_id"], data["otp"], user_id=request.user.pk
            )
        except RentalError as exc:
            return domain_error_response(exc)
        return success_response(
            "OTP verified", rental_id=rental.pk, rental_status=rental.status
        )


class UserRentalOrdersView(generics.GenericAPIView):
    """Bucketed rental history for a user; visible to that user and staff."""

    serializer_class = RentalOrderSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, user_id: int, *args, **kwargs):
        if request.user.pk != user_id and not request.user.is_staff:
            return error_response(
                "You can only view your own orders", status=status.HTTP_403_FORBIDDEN
            )
        query = OrdersQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return validation_error_response(query.errors)
        pages, counts = user_order_buckets(
            user_id,
            step=query.validated_data.get("step", 1),
            limit=query.validated_data.get(
                "limit", getattr(settings, "RENTAL_ORDERS_PAGE_LIMIT", 10)
            ),
        )
        context = {**self.get_serializer_context(), "user_id": user_id}
        body = {
            name: RentalOrderSerializer(pages[name], many=True, context=context).data
            for name in BUCKETS
        }
        return success_response("Orders fetched", counts=counts, **body)


class TopMatchesView(generics.GenericAPIView):
    """Un-metered preview of the caller's best matches."""

    serializer_class = TopMatchesQuerySerializer
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.query_params)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        try:
            result = MatchFinder().find_matches(request.user.pk, serializer.to_criteria())
        except RentalError as exc:
            return domain_error_response(exc)
        return success_response(
            OUTCOME_MESSAGES[result.outcome],
            matches=result.candidates,
            outcome=result.outcome.value,
        )
