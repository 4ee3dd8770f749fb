# Overview: Role names and the permission set each role grants.

from .definitions import PERMISSION_DEFINITIONS

ROLE_ADMIN = "admin"
ROLE_EMPLOYEE = "employee"
ROLE_CUSTOMER = "customer"

ROLE_PERMISSIONS = {
    ROLE_ADMIN: {perm[0] for perm in PERMISSION_DEFINITIONS},
    ROLE_EMPLOYEE: {
        "VIEW_STOCK_ALERTS",
        "CREATE_SALE",
        "VIEW_SALES",
        "PLACE_ONLINE_ORDER",
        "MANAGE_ORDERS",
        "REQUEST_RETURN",
        "PROCESS_RETURNS",
    },
    ROLE_CUSTOMER: {
        "PLACE_ONLINE_ORDER",
        "VIEW_OWN_ORDERS",
        "REQUEST_RETURN",
    },
}

STAFF_ROLES = {ROLE_ADMIN, ROLE_EMPLOYEE}
