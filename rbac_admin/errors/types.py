"""
Error Types - Enums and exception classes for the RBAC admin engine

Contains:
- ErrorType enum (standardized error types)
- Exception classes (RBACError and subclasses)
"""

from typing import Optional, Dict, Any
from enum import Enum

from fastapi import HTTPException, status


class ErrorType(Enum):
    """Standard error types"""
    NOT_FOUND = "not_found"
    INVALID_HIERARCHY_EDGE = "invalid_hierarchy_edge"
    VALIDATION_FAILED = "validation_failed"
    STORAGE_FAILED = "storage_failed"


class RBACError(Exception):
    """Base exception for the RBAC engine"""

    def __init__(
        self,
        message: str,
        error_type: ErrorType,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.error_type.value,
            "message": self.message,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        """Convert to FastAPI HTTPException."""
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class NotFoundError(RBACError):
    """Referenced entity does not exist"""

    def __init__(self, entity: str, entity_id: Optional[str]):
        super().__init__(
            message=f"{entity.capitalize()} not found: {entity_id}",
            error_type=ErrorType.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"entity": entity, "id": entity_id}
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidHierarchyEdgeError(RBACError):
    """Parent assignment would make a role its own ancestor"""

    def __init__(self, role_id: str, parent_role_id: str):
        super().__init__(
            message=f"Role {role_id} cannot have parent {parent_role_id}: would create a cycle",
            error_type=ErrorType.INVALID_HIERARCHY_EDGE,
            status_code=status.HTTP_409_CONFLICT,
            details={"role_id": role_id, "parent_role_id": parent_role_id}
        )


class ValidationError(RBACError):
    """Malformed input"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.VALIDATION_FAILED,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class StorageError(RBACError):
    """State file could not be read or written"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_type=ErrorType.STORAGE_FAILED,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )
