"""
RBAC admin engine

Role-based access control over services, policies, roles, permissions and
users, with role inheritance and bitwise permission codes.
"""

from rbac_admin.permissions import PermissionEngine, RBACAdmin, RBACRepository
from rbac_admin.service import RBACService, create_rbac_service

__version__ = "0.1.0"

__all__ = [
    "PermissionEngine",
    "RBACAdmin",
    "RBACRepository",
    "RBACService",
    "create_rbac_service",
]
