"""
Custom permission classes for the ReWear donation API.

These only gate who may reach an endpoint. Whether a particular transition is
legal for a particular donation is decided by the matching engine.
"""

from rest_framework import permissions


class IsPlatformAdmin(permissions.BasePermission):
    """
    Permission class that allows only platform administrators (staff users).

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsPlatformAdmin]
    """

    message = 'You do not have permission to perform this action. Administrator privileges required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_staff


class IsDonor(permissions.BasePermission):
    """
    Permission class that allows only donor accounts.

    Staff users are excluded even if their ``user_type`` is donor, since they
    act as administrators.
    """

    message = 'Only donor accounts can perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_donor() and not request.user.is_staff


class IsOrganizationMember(permissions.BasePermission):
    """
    Permission class that allows only accounts linked to an organization.

    Returns 403 Forbidden for:
    - Donor accounts
    - Organization accounts with no linked organization record
    """

    message = 'Only organization accounts can perform this action.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        if not request.user.is_organization_user():
            return False

        return getattr(request.user, 'organization', None) is not None


class CanViewDonation(permissions.BasePermission):
    """
    Object-level permission for donation detail.

    Allowed:
    - The donor who owns the donation
    - Platform administrators
    - The organization currently assigned to the donation
    """

    message = 'You do not have permission to view this donation.'

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if user.is_staff or obj.donor_id == user.pk:
            return True

        organization = getattr(user, 'organization', None)
        return organization is not None and obj.organization_id == organization.pk
