# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    SALES_PERMISSIONS,
    ORDER_PERMISSIONS,
    RETURN_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import ROLE_PERMISSIONS, ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_CUSTOMER, STAFF_ROLES
from .helpers import (
    validate_role_name,
    permissions_for_roles,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "SALES_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "RETURN_PERMISSIONS",
    "USER_PERMISSIONS",
    "ROLE_PERMISSIONS",
    "ROLE_ADMIN",
    "ROLE_EMPLOYEE",
    "ROLE_CUSTOMER",
    "STAFF_ROLES",
    "validate_role_name",
    "permissions_for_roles",
]
