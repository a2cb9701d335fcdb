from .tenancy import SubscriptionPlan, Tenant, Outlet
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .catalog import Category, Product
from .shifts import Shift
from .transactions import Transaction, TransactionItem, Refund
from .sequences import DocumentSequence
from .audit import AuditLog

__all__ = [
    'SubscriptionPlan', 'Tenant', 'Outlet',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'Category', 'Product',
    'Shift',
    'Transaction', 'TransactionItem', 'Refund',
    'DocumentSequence',
    'AuditLog',
]
