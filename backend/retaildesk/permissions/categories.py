# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    SALES = "SALES"
    ORDERS = "ORDERS"
    RETURNS = "RETURNS"
    USERS = "USERS"
