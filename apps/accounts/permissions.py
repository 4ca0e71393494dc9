# apps/accounts/permissions.py

from rest_framework.permissions import BasePermission

from core.constants import UserRoles


class HasRole(BasePermission):
    """
    Generic role-based permission.
    Subclasses list the roles that may pass.
    """
    required_roles = []

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated and user.is_active):
            return False
        return user.role in self.required_roles


class IsAdminRole(HasRole):
    required_roles = [UserRoles.SUPER_ADMIN, UserRoles.ADMIN]


class IsCashierOrAdmin(HasRole):
    required_roles = [UserRoles.SUPER_ADMIN, UserRoles.ADMIN, UserRoles.CASHIER]


class IsShopStaff(HasRole):
    """Any of the four shop roles"""
    required_roles = list(UserRoles.values)
