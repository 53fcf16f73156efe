"""Driver URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.drivers.views import AdminDriverViewSet, DriverProfileView, PushTokenView

router = DefaultRouter(trailing_slash=True)
router.register("admin/drivers", AdminDriverViewSet, basename="admin-driver")

urlpatterns = [
    path("driver/profile/", DriverProfileView.as_view(), name="driver-profile"),
    path("driver/push-token/", PushTokenView.as_view(), name="driver-push-token"),
] + router.urls
