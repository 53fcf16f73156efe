"""Role permissions.

Admins are staff accounts; drivers are accounts with a ``DriverProfile``.
"""

from rest_framework import permissions


class IsAdmin(permissions.BasePermission):
    message = "Admin access required."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_staff)


class IsDriver(permissions.BasePermission):
    message = "Driver access required."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return hasattr(user, "driver_profile")
