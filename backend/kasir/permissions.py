"""
Permission codes and default role mappings.

Codes follow `resource.action.scope`:
- scope "outlet": the action applies to data of an outlet
- scope "tenant": the action applies tenant-wide

All permission codes and role mappings are defined here; the database
tables are seeded from these lists by permission_service.
"""

# Each permission is defined as: (code, description)
PERMISSION_DEFINITIONS = [
    # Users
    ("users.read.outlet", "View users in own outlet"),
    ("users.create.outlet", "Create users"),
    ("users.update.outlet", "Update users"),
    ("users.delete.outlet", "Delete users"),
    # Roles
    ("roles.read.tenant", "View roles"),
    ("roles.create.tenant", "Create roles"),
    ("roles.update.tenant", "Update roles"),
    ("roles.delete.tenant", "Delete roles"),
    # Outlets
    ("outlets.read.tenant", "View outlets"),
    ("outlets.create.tenant", "Create outlets"),
    ("outlets.update.tenant", "Update outlets"),
    ("outlets.delete.tenant", "Delete outlets"),
    # Products
    ("products.read.outlet", "View products"),
    ("products.create.outlet", "Create products"),
    ("products.update.outlet", "Update products and adjust stock"),
    ("products.delete.outlet", "Delete products"),
    # Shifts
    ("shifts.read.outlet", "View shifts"),
    ("shifts.open.outlet", "Open a shift"),
    ("shifts.close.outlet", "Close a shift"),
    # Transactions
    ("transactions.read.outlet", "View transactions"),
    ("transactions.create.outlet", "Create transactions (POS sale)"),
    ("transactions.refund.outlet", "Refund transactions"),
    ("transactions.void.outlet", "Void transactions"),
    # Reports
    ("reports.view.outlet", "View reports"),
    ("reports.export.outlet", "Export reports"),
    # Audit
    ("audit.read.tenant", "View audit logs"),
    # System
    ("system.settings.tenant", "Manage tenant settings"),
    ("system.delete.tenant", "Delete tenant data"),
]

ALL_PERMISSION_CODES = [code for code, _ in PERMISSION_DEFINITIONS]

SUPER_ADMIN = "SUPER_ADMIN"
ADMIN = "ADMIN"
CASHIER = "CASHIER"

DEFAULT_ROLES = [
    (SUPER_ADMIN, "Super Administrator with all permissions"),
    (ADMIN, "Administrator"),
    (CASHIER, "Cashier"),
]

DEFAULT_ROLE_PERMISSIONS = {
    SUPER_ADMIN: list(ALL_PERMISSION_CODES),
    ADMIN: [code for code in ALL_PERMISSION_CODES if code != "system.delete.tenant"],
    CASHIER: [
        "products.read.outlet",
        "shifts.read.outlet",
        "shifts.open.outlet",
        "shifts.close.outlet",
        "transactions.read.outlet",
        "transactions.create.outlet",
        "reports.view.outlet",
    ],
}


def split_code(code: str) -> tuple[str, str, str]:
    """Split "transactions.create.outlet" into (resource, action, scope)."""
    parts = code.split(".")
    if len(parts) != 3:
        raise ValueError(f"Malformed permission code: {code}")
    return parts[0], parts[1], parts[2]
