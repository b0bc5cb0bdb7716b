"""
Custom permissions for the race incident backend.

View-level gates only. Whether a given user may act on a given ticket
depends on the ticket's type, status and assignment and is decided by
tickets.workflow, which raises with a specific reason.
"""

from rest_framework import permissions

from .models import UserRole


class IsAuthenticated(permissions.IsAuthenticated):
    """
    Extended IsAuthenticated that also checks user status.
    """

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False

        user = request.user
        if user.is_suspended or not user.is_active:
            return False

        return True


class HasRole(IsAuthenticated):
    """
    Base class for role allow-lists.

    Subclasses set ``allowed_roles``.
    """

    allowed_roles = ()

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        return request.user.role in self.allowed_roles


class IsAdminOrChiefOfControl(HasRole):
    """Oversight roles: full ticket visibility, Excel export."""

    message = "Only Admin or Chief of Control can perform this action."
    allowed_roles = (UserRole.ADMIN, UserRole.CHIEF_OF_CONTROL)


class IsMedicalAssessor(HasRole):
    """Roles allowed to file the medical assessment of a ticket."""

    message = "Only the medical department can submit a medical report."
    allowed_roles = (
        UserRole.MEDICAL_OP_TEAM,
        UserRole.DEPUTY_MEDICAL_OFFICER,
        UserRole.CHIEF_MEDICAL_OFFICER,
        UserRole.ADMIN,
    )
