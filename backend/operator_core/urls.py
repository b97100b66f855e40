from django.urls import include, path

from operator_core.api import OperatorMeView

urlpatterns = [
    path("me/", OperatorMeView.as_view(), name="operator_me"),
    path("rentals/", include("operator_rentals.urls")),
]
