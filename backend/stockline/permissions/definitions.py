# Overview: All operation definitions organized by category.
# Each entry is: (code, name, description, category, allowed_roles)

from .categories import PermissionCategory

_ALL = ("admin", "manager", "staff")
_MANAGERS = ("admin", "manager")
_ADMINS = ("admin",)


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "VIEW_CATALOG",
        "View Catalog",
        "View products, vendors, brands, categories and discounts",
        PermissionCategory.CATALOG,
        _ALL,
    ),
    (
        "MANAGE_CATALOG",
        "Manage Catalog",
        "Create, edit and delete products, vendors, brands and categories",
        PermissionCategory.CATALOG,
        _MANAGERS,
    ),
    (
        "MANAGE_DISCOUNTS",
        "Manage Discounts",
        "Create, edit and delete product discounts",
        PermissionCategory.CATALOG,
        _MANAGERS,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock lots, location inventory and alerts",
        PermissionCategory.INVENTORY,
        _ALL,
    ),
    (
        "RECEIVE_STOCK",
        "Receive Stock",
        "Create stock lots at a warehouse or outlet",
        PermissionCategory.INVENTORY,
        _MANAGERS,
    ),
    (
        "ADJUST_STOCK",
        "Adjust Stock",
        "Correct or delete stock lots",
        PermissionCategory.INVENTORY,
        _MANAGERS,
    ),
    (
        "MOVE_STOCK",
        "Move Stock",
        "Transfer stock between warehouses and outlets",
        PermissionCategory.INVENTORY,
        _MANAGERS,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "CREATE_SALE",
        "Create Sale",
        "Finalize sales at an outlet (POS access)",
        PermissionCategory.SALES,
        _ALL,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "List and view sales",
        PermissionCategory.SALES,
        _ALL,
    ),
    (
        "VOID_SALE",
        "Void Sale",
        "Void completed sales and restore their stock",
        PermissionCategory.SALES,
        _MANAGERS,
    ),
    (
        "PROCESS_RETURN",
        "Process Return",
        "Return sold items back to stock",
        PermissionCategory.SALES,
        _MANAGERS,
    ),
]


# -- ORDERS --

ORDER_PERMISSIONS = [
    (
        "VIEW_ORDERS",
        "View Orders",
        "List and view customer orders",
        PermissionCategory.ORDERS,
        _ALL,
    ),
    (
        "CREATE_ORDER",
        "Create Order",
        "Create, edit and pay pending orders",
        PermissionCategory.ORDERS,
        _ALL,
    ),
    (
        "MANAGE_ORDERS",
        "Manage Orders",
        "Change order status, fulfill and delete orders",
        PermissionCategory.ORDERS,
        _MANAGERS,
    ),
]


# -- CUSTOMERS --

CUSTOMER_PERMISSIONS = [
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "List and view customers",
        PermissionCategory.CUSTOMERS,
        _ALL,
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create and edit customers",
        PermissionCategory.CUSTOMERS,
        _ALL,
    ),
    (
        "DELETE_CUSTOMERS",
        "Delete Customers",
        "Delete customers",
        PermissionCategory.CUSTOMERS,
        _MANAGERS,
    ),
]


# -- DEMAND --

DEMAND_PERMISSIONS = [
    (
        "VIEW_DEMAND",
        "View Demand",
        "List and view replenishment demands",
        PermissionCategory.DEMAND,
        _ALL,
    ),
    (
        "CREATE_DEMAND",
        "Create Demand",
        "Raise replenishment demands",
        PermissionCategory.DEMAND,
        _ALL,
    ),
    (
        "MANAGE_DEMAND",
        "Manage Demand",
        "Approve, cancel, convert, generate and delete demands",
        PermissionCategory.DEMAND,
        _MANAGERS,
    ),
]


# -- LOCATIONS --

LOCATION_PERMISSIONS = [
    (
        "VIEW_LOCATIONS",
        "View Locations",
        "List and view outlets and warehouses",
        PermissionCategory.LOCATIONS,
        _ALL,
    ),
    (
        "MANAGE_LOCATIONS",
        "Manage Locations",
        "Create, edit and delete outlets and warehouses",
        PermissionCategory.LOCATIONS,
        _ADMINS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "VIEW_USERS",
        "View Users",
        "List and view user accounts",
        PermissionCategory.USERS,
        _MANAGERS,
    ),
    (
        "MANAGE_USERS",
        "Manage Users",
        "Create, edit, deactivate users and assign roles",
        PermissionCategory.USERS,
        _ADMINS,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        "VIEW_REPORTS",
        "View Reports",
        "View sales, stock, outlet and dashboard statistics",
        PermissionCategory.REPORTS,
        _MANAGERS,
    ),
]


PERMISSION_DEFINITIONS = (
    CATALOG_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + ORDER_PERMISSIONS
    + CUSTOMER_PERMISSIONS
    + DEMAND_PERMISSIONS
    + LOCATION_PERMISSIONS
    + USER_PERMISSIONS
    + REPORT_PERMISSIONS
)

# operation code -> allowed roles
ALLOWED_ROLES = {code: frozenset(roles) for code, _n, _d, _c, roles in PERMISSION_DEFINITIONS}
