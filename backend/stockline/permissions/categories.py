# Overview: Permission category constants for grouping related operations.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    CATALOG = "CATALOG"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    ORDERS = "ORDERS"
    CUSTOMERS = "CUSTOMERS"
    DEMAND = "DEMAND"
    LOCATIONS = "LOCATIONS"
    USERS = "USERS"
    REPORTS = "REPORTS"
