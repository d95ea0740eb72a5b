"""
Role based access checks.

Routes declare the roles they accept; `check_capability` decides and the
`role_required` permission classes plug that decision into DRF so that an
anonymous caller gets 401 and an authenticated caller with the wrong role 403.
"""
from rest_framework.permissions import BasePermission

ADMIN = 'Admin'
SALES = 'Sales'
PURCHASE = 'Purchase'
INVENTORY = 'Inventory'

ALL_ROLES = (ADMIN, SALES, PURCHASE, INVENTORY)


def get_user_role(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    if getattr(user, 'is_superuser', False):
        return ADMIN
    return getattr(user, 'role', None)


def check_capability(user, required_roles):
    """
    Decide whether `user` may perform an operation.

    Args:
        user: the requesting user (may be None or anonymous)
        required_roles: None for anonymous access, an empty tuple for any
            authenticated user, otherwise the roles that are allowed

    Returns:
        bool
    """
    if required_roles is None:
        return True
    if user is None or not getattr(user, 'is_authenticated', False):
        return False
    if not getattr(user, 'is_active', True):
        return False
    if not required_roles:
        return True
    return get_user_role(user) in required_roles


def is_admin(user):
    return check_capability(user, (ADMIN,))


def role_required(*roles, methods=None):
    """
    Build a permission class allowing only `roles`.

    When `methods` is given the check only applies to those HTTP methods,
    which lets one view carry e.g. a stricter DELETE rule.
    """
    allowed = tuple(roles)
    scoped_methods = tuple(m.upper() for m in methods) if methods else None

    class RolePermission(BasePermission):
        message = 'You do not have permission to perform this action'

        def has_permission(self, request, view):
            if scoped_methods and request.method not in scoped_methods:
                return True
            return check_capability(request.user, allowed)

    RolePermission.__name__ = f"RoleRequired_{'_'.join(allowed) or 'Authenticated'}"
    return RolePermission


IsAdminRole = role_required(ADMIN)
