"""Realtime URL configuration."""

from django.urls import path

from modules.realtime.views import LocationReportView, RequestLocationsView

urlpatterns = [
    path("driver/location/", LocationReportView.as_view(), name="driver-location"),
    path(
        "admin/tracking/request-locations/",
        RequestLocationsView.as_view(),
        name="admin-request-locations",
    ),
]
