from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics

from core.responses import (
    domain_error_response,
    success_response,
    validation_error_response,
)
from operator_core.api_base import OperatorAPIView, OperatorThrottleMixin
from operator_core.permissions import OPERATOR_ROLES, HasOperatorRole, IsOperator
from operator_rentals.filters import OperatorRentalFilter
from operator_rentals.serializers import (
    OperatorCancelSerializer,
    OperatorRentalDetailSerializer,
    OperatorRentalListSerializer,
)
from rentals.errors import RentalError
from rentals.ledger import BookingLedger
from rentals.models import Rental

logger = logging.getLogger(__name__)

ALLOWED_OPERATOR_ROLES = OPERATOR_ROLES


class OperatorRentalListView(OperatorThrottleMixin, generics.ListAPIView):
    serializer_class = OperatorRentalListSerializer
    permission_classes = [IsOperator, HasOperatorRole.with_roles(ALLOWED_OPERATOR_ROLES)]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OperatorRentalFilter
    http_method_names = ["get"]

    def get_queryset(self):
        return Rental.objects.select_related("renter", "host").order_by("-created_at", "-id")

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        data = self.get_serializer(queryset, many=True).data
        return success_response("Rentals fetched", count=len(data), results=data)


class OperatorRentalDetailView(OperatorThrottleMixin, generics.RetrieveAPIView):
    serializer_class = OperatorRentalDetailSerializer
    permission_classes = [IsOperator, HasOperatorRole.with_roles(ALLOWED_OPERATOR_ROLES)]
    lookup_field = "pk"
    http_method_names = ["get"]

    def get_queryset(self):
        return Rental.objects.select_related("renter", "host")

    def retrieve(self, request, *args, **kwargs):
        rental = self.get_object()
        return success_response("Rental fetched", rental=self.get_serializer(rental).data)


class OperatorRentalActionBase(OperatorAPIView):
    """Confirm/cancel/complete by id straight through the ledger, without metering."""

    permission_classes = [IsOperator, HasOperatorRole.with_roles(ALLOWED_OPERATOR_ROLES)]
    http_method_names = ["post"]
    success_msg = "Rental updated"

    def perform(self, ledger: BookingLedger, pk: int, request):
        raise NotImplementedError

    def post(self, request, pk: int):
        try:
            rental = self.perform(BookingLedger(), pk, request)
        except RentalError as exc:
            return domain_error_response(exc)
        logger.info(
            "operator_rentals: %s applied by operator %s",
            type(self).__name__,
            request.user.pk,
            extra={"rental_id": rental.pk},
        )
        body = {"rental": OperatorRentalListSerializer(rental).data}
        if getattr(rental, "secondary_warnings", None):
            body["warnings"] = rental.secondary_warnings
        return success_response(self.success_msg, **body)


class OperatorRentalConfirmView(OperatorRentalActionBase):
    success_msg = "Rental confirmed"

    def perform(self, ledger, pk, request):
        return ledger.mark_confirmed(pk, actor=request.user)


class OperatorRentalCancelView(OperatorRentalActionBase):
    success_msg = "Rental cancelled"

    def post(self, request, pk: int):
        serializer = OperatorCancelSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)
        self.reason = serializer.validated_data.get("reason") or None
        return super().post(request, pk)

    def perform(self, ledger, pk, request):
        return ledger.cancel(pk, self.reason, actor=request.user)


class OperatorRentalCompleteView(OperatorRentalActionBase):
    success_msg = "Rental completed"

    def perform(self, ledger, pk, request):
        return ledger.complete(pk, actor=request.user)
