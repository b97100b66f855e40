from django.conf import settings
from django.contrib import admin
from django.urls import include, path

from rentals.api import TopMatchesView

urlpatterns = [
    path("api/rentals/", include(("rentals.urls", "rentals"), namespace="rentals")),
    path("api/matches/top/", TopMatchesView.as_view(), name="matches_top"),
]

if settings.ENABLE_DJANGO_ADMIN:
    urlpatterns.insert(0, path("admin/", admin.site.urls))

if settings.ENABLE_OPERATOR:
    urlpatterns.append(path("api/operator/", include("operator_core.urls")))
