from django.urls import path

from .api import (
    ConfirmRentalView,
    InitiateRentalView,
    UserRentalOrdersView,
    VerifyRentalOtpView,
)

app_name = "rentals"

urlpatterns = [
    path("initiate/", InitiateRentalView.as_view(), name="initiate"),
    path("confirm/", ConfirmRentalView.as_view(), name="confirm"),
    path("otp-verify/", VerifyRentalOtpView.as_view(), name="otp_verify"),
    path("user/<int:user_id>/orders/", UserRentalOrdersView.as_view(), name="user_orders"),
]
