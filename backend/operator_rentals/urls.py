from django.urls import path

from operator_rentals.api import (
    OperatorRentalCancelView,
    OperatorRentalCompleteView,
    OperatorRentalConfirmView,
    OperatorRentalDetailView,
    OperatorRentalListView,
)

app_name = "operator_rentals"

urlpatterns = [
    path("", OperatorRentalListView.as_view(), name="operator_rental_list"),
    path("<int:pk>/", OperatorRentalDetailView.as_view(), name="operator_rental_detail"),
    path(
        "<int:pk>/confirm/", OperatorRentalConfirmView.as_view(), name="operator_rental_confirm"
    ),
    path("<int:pk>/cancel/", OperatorRentalCancelView.as_view(), name="operator_rental_cancel"),
    path(
        "<int:pk>/complete/",
        OperatorRentalCompleteView.as_view(),
        name="operator_rental_complete",
    ),
]
