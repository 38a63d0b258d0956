"""
Permissions Package

RBAC permission-resolution engine.

This package provides:
- Bitwise permission-code codec
- Role hierarchy resolution with cycle-safe walks
- Permission aggregation across roles, parents and policies
- First-match authorization engine
- Copy-on-write repository and mutation layer

Public API:
- Types: PermissionFlag, PermissionLevel, AuthCheckResult, HierarchyNode, AncestorWalk
- Hierarchy: LEVEL_NAMES, effective_code, validate_edge, build_hierarchy_tree
- Engine: PermissionEngine
- Storage: RBACRepository
- Admin: RBACAdmin
"""

# types and codec first: schemas depend on them
from .types import PermissionFlag, PermissionLevel, AuthCheckResult, HierarchyNode, AncestorWalk
from . import codec
from .hierarchy import LEVEL_NAMES, effective_code, validate_edge, build_hierarchy_tree
from . import aggregator
from . import schedule
from .engine import PermissionEngine
from .storage import RBACRepository
from .admin import RBACAdmin

__all__ = [
    # Types
    "PermissionFlag",
    "PermissionLevel",
    "AuthCheckResult",
    "HierarchyNode",
    "AncestorWalk",
    # Hierarchy
    "LEVEL_NAMES",
    "effective_code",
    "validate_edge",
    "build_hierarchy_tree",
    # Engine
    "PermissionEngine",
    # Storage / admin
    "RBACRepository",
    "RBACAdmin",
    # Submodules
    "codec",
    "aggregator",
    "schedule",
]
