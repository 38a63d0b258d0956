"""
Shared pytest fixtures for the RBAC engine tests.

Provides:
- Default dataset snapshot
- Repository / admin / service over a fresh copy of that snapshot
- Role factory for hand-built hierarchies
- Settings cache reset
"""

import pytest

from rbac_admin.config import get_settings
from rbac_admin.permissions.admin import RBACAdmin
from rbac_admin.permissions.storage import RBACRepository
from rbac_admin.schemas.permission_models import Role
from rbac_admin.seed import default_state
from rbac_admin.service import RBACService


# ========== Dataset Fixtures ==========

@pytest.fixture
def state():
    """Fresh default dataset"""
    return default_state()


@pytest.fixture
def repository(state):
    """Repository seeded with the default dataset"""
    return RBACRepository(state)


@pytest.fixture
def admin(repository):
    return RBACAdmin(repository)


@pytest.fixture
def service(repository):
    return RBACService(repository)


@pytest.fixture
def make_role():
    """Factory for bare roles: make_role("a", parent="b", code=3)"""
    def _make(role_id, parent=None, code=0, permissions=None, policy_ids=None, name=None):
        return Role(
            id=role_id,
            name=name or role_id.upper(),
            parent_role_id=parent,
            permission_code=code,
            permissions=permissions or [],
            policy_ids=policy_ids or [],
        )
    return _make


# ========== Settings Fixtures ==========

@pytest.fixture
def reset_settings():
    """Reset the get_settings cache between tests"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """configure_logging() detaches the package logger from root; undo it after each test"""
    import logging
    logger = logging.getLogger("rbac_admin")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate
