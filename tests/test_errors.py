"""
Tests for rbac_admin/errors/types.py
"""

from fastapi import HTTPException

from rbac_admin.errors import (
    ErrorType,
    InvalidHierarchyEdgeError,
    NotFoundError,
    RBACError,
    StorageError,
    ValidationError,
)


class TestErrorTypes:

    def test_not_found(self):
        error = NotFoundError("role", "role-x")
        assert isinstance(error, RBACError)
        assert str(error) == "Role not found: role-x"
        assert error.to_dict() == {
            "code": "not_found",
            "message": "Role not found: role-x",
            "details": {"entity": "role", "id": "role-x"},
        }

    def test_invalid_edge(self):
        error = InvalidHierarchyEdgeError("role-a", "role-b")
        assert error.error_type == ErrorType.INVALID_HIERARCHY_EDGE
        assert error.status_code == 409

    def test_validation_and_storage(self):
        assert ValidationError("bad").status_code == 400
        assert ValidationError("bad").details == {}
        assert StorageError("disk").error_type == ErrorType.STORAGE_FAILED
        assert StorageError("disk").status_code == 500

    def test_to_http_exception(self):
        exc = NotFoundError("user", "user-9").to_http_exception()
        assert isinstance(exc, HTTPException)
        assert exc.status_code == 404
        assert exc.detail["code"] == "not_found"
