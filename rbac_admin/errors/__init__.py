"""
Errors Package

Standardized error handling for the RBAC admin engine:
- ErrorType enum for error categories
- Exception classes (RBACError and subclasses)
"""

from rbac_admin.errors.types import (
    ErrorType,
    RBACError,
    NotFoundError,
    InvalidHierarchyEdgeError,
    ValidationError,
    StorageError,
)

__all__ = [
    "ErrorType",
    "RBACError",
    "NotFoundError",
    "InvalidHierarchyEdgeError",
    "ValidationError",
    "StorageError",
]
