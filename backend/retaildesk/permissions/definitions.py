# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit, deactivate and delete catalog items",
        PermissionCategory.CATALOG,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Apply manual stock corrections and view stock movements",
        PermissionCategory.CATALOG,
    ),
    (
        "VIEW_STOCK_ALERTS",
        "View Stock Alerts",
        "View items at or below their reorder level",
        PermissionCategory.CATALOG,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Record in-person point-of-sale transactions",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales history and receipts",
        PermissionCategory.SALES,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "PLACE_ONLINE_ORDER",
        "Place Online Order",
        "Check out a storefront cart",
        PermissionCategory.ORDERS,
    ),
    (
        "VIEW_OWN_ORDERS",
        "View Own Orders",
        "View the caller's own online orders and return requests",
        PermissionCategory.ORDERS,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "View the online order queue and complete or cancel orders",
        PermissionCategory.ORDERS,
    ),
]


# -- RETURNS --

RETURN_PERMISSIONS = [
    (
        "REQUEST_RETURN",
        "Request Return",
        "Open a return or warranty request against a sale",
        PermissionCategory.RETURNS,
    ),
    (
        "PROCESS_RETURNS",
        "Process Returns",
        "Approve, reject and complete return requests",
        PermissionCategory.RETURNS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_USERS",
        "Manage Users",
        "Assign and remove user roles",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + SALES_PERMISSIONS
    + ORDER_PERMISSIONS
    + RETURN_PERMISSIONS
    + USER_PERMISSIONS
)
