"""
Role checks used across the API.

Every staff user carries exactly one role. Superusers that were never given a
role explicitly act as ADMIN so the Django admin account can drive the API.
"""
from rest_framework.permissions import BasePermission

from .models import User

SALES = User.ROLE_SALES
MANAGER = User.ROLE_MANAGER
ADMIN = User.ROLE_ADMIN
BACK_OFFICE = User.ROLE_BACK_OFFICE
ACCOUNTANT = User.ROLE_ACCOUNTANT

VALID_ROLES = [choice[0] for choice in User.ROLE_CHOICES]


def get_user_role(user):
    """Return the effective role of a user, or None for anonymous users"""
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser and user.role == SALES:
        return ADMIN
    return user.role


def has_role(user, *roles):
    return get_user_role(user) in roles


def is_admin_user(user):
    return has_role(user, ADMIN)


def is_manager_or_admin(user):
    return has_role(user, MANAGER, ADMIN)


def can_view_all_inquiries(role):
    return role in (MANAGER, ADMIN)


def can_assign_inquiry(role):
    return role in (SALES, MANAGER, ADMIN)


def can_manage_users(role):
    return role == ADMIN


def can_create_invoice(role):
    return role in (SALES, MANAGER, ADMIN)


def can_approve_invoice(role):
    return role == ADMIN


def can_finalize_invoice(role):
    return role == ADMIN


def can_delete_invoice(role):
    return role == ADMIN


def can_delete_shared_invoice(role):
    return role == ADMIN


def can_reallocate_shared_invoice(role):
    return role in (MANAGER, ADMIN)


def can_edit_invoice(invoice_status, role, is_locked=False):
    """
    Whether a user with ``role`` may edit an invoice.

    Locked and finalized invoices are read-only for everybody, approved
    invoices are editable by admins only.
    """
    if is_locked:
        return False
    if invoice_status == 'FINALIZED':
        return False
    if invoice_status == 'APPROVED' and role != ADMIN:
        return False
    return role in (SALES, MANAGER, ADMIN)


def can_manage_vehicle_stages(role):
    return role in (ADMIN, MANAGER, BACK_OFFICE)


def can_view_transactions(role):
    return role in (ADMIN, MANAGER, ACCOUNTANT)


def can_manage_transactions(role):
    return role in (ADMIN, ACCOUNTANT)


def can_view_wallet(role):
    return role in (ADMIN, MANAGER, ACCOUNTANT)


def can_view_inquiry_stats(role):
    return role in (MANAGER, ADMIN, BACK_OFFICE)


def can_manage_share_tokens(role):
    return role in (MANAGER, ADMIN)


def can_view_all_vehicles(role):
    return role in (ADMIN, MANAGER, BACK_OFFICE)


class HasRole(BasePermission):
    """
    DRF permission allowing only the given roles.

    Usage:
        @permission_classes([IsAuthenticated, HasRole.of(ADMIN, MANAGER)])
    """
    allowed_roles = ()
    message = 'Forbidden'

    def has_permission(self, request, view):
        return get_user_role(request.user) in self.allowed_roles

    @classmethod
    def of(cls, *roles):
        return type(f"HasRole_{'_'.join(roles)}", (cls,), {'allowed_roles': roles})


IsAdminRole = HasRole.of(ADMIN)
