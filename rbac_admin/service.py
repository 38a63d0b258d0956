"""
RBAC Service

Query surface by ID over a repository, plus the mutation layer.
Each query reads exactly one snapshot copy, so it never mixes states across a
concurrent mutation.

Usage:
    service = create_rbac_service()
    if service.can("user-1", "perm-delete", "service-courses"):
        ...
    result = service.explain("user-2", "delete")
    print(result.reason)
"""

import logging
from typing import List, Optional

from rbac_admin.config import RBACSettings, get_settings
from rbac_admin.errors import NotFoundError
from rbac_admin.permissions import aggregator, hierarchy
from rbac_admin.permissions.admin import RBACAdmin
from rbac_admin.permissions.engine import PermissionEngine
from rbac_admin.permissions.storage import RBACRepository
from rbac_admin.permissions.types import AuthCheckResult, HierarchyNode
from rbac_admin.schemas.permission_models import Permission, RBACState, Role, User
from rbac_admin.seed import default_state
from rbac_admin.structured_logger import configure_logging

logger = logging.getLogger(__name__)


class RBACService:
    """
    Library boundary for callers (storage, UI, HTTP layers)

    Queries raise NotFoundError for unknown user/role/policy/service IDs;
    an authorization denial is a normal AuthCheckResult, not an error.
    """

    def __init__(self, repository: RBACRepository, log_denials: bool = True):
        self.repository = repository
        self.admin = RBACAdmin(repository)
        self.log_denials = log_denials

    @property
    def state(self) -> RBACState:
        return self.repository.snapshot()

    def _user(self, state: RBACState, user_id: str) -> User:
        user = state.find_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def _role(self, state: RBACState, role_id: str) -> Role:
        role = state.find_role(role_id)
        if role is None:
            raise NotFoundError("role", role_id)
        return role

    # ===== Authorization =====

    def explain(self, user_id: str, permission_key: str, service_id: Optional[str] = None) -> AuthCheckResult:
        """
        Full authorization decision with its reason

        Raises:
            NotFoundError: Unknown user or service
        """
        state = self.state
        user = self._user(state, user_id)
        if service_id is not None and state.find_service(service_id) is None:
            raise NotFoundError("service", service_id)
        return PermissionEngine(state, log_denials=self.log_denials).check_permission(user, permission_key, service_id)

    def can(self, user_id: str, permission_key: str, service_id: Optional[str] = None) -> bool:
        return self.explain(user_id, permission_key, service_id).allowed

    def has_role(self, user_id: str, role_name: str) -> bool:
        state = self.state
        return PermissionEngine(state).user_has_role(self._user(state, user_id), role_name)

    def has_all_roles(self, user_id: str, role_names: List[str]) -> bool:
        state = self.state
        return PermissionEngine(state).has_all_roles(self._user(state, user_id), role_names)

    def has_any_role(self, user_id: str, role_names: List[str]) -> bool:
        state = self.state
        return PermissionEngine(state).has_any_role(self._user(state, user_id), role_names)

    # ===== Users =====

    def get_user_permissions(self, user_id: str) -> List[Permission]:
        state = self.state
        return aggregator.user_permissions(self._user(state, user_id), state.roles, state.policies, state.permissions)

    def get_user_roles(self, user_id: str) -> List[Role]:
        state = self.state
        return aggregator.user_roles(self._user(state, user_id), state.roles)

    # ===== Roles =====

    def get_role_permissions(self, role_id: str, include_inherited: bool = True) -> List[Permission]:
        state = self.state
        return aggregator.permissions_of_role(self._role(state, role_id), include_inherited, state.roles, state.permissions)

    def get_role_children(self, role_id: str) -> List[Role]:
        state = self.state
        self._role(state, role_id)
        return hierarchy.children_of(role_id, state.roles)

    def get_role_parent(self, role_id: str) -> Optional[Role]:
        state = self.state
        self._role(state, role_id)
        return hierarchy.parent_of(role_id, state.roles)

    def get_role_ancestors(self, role_id: str) -> List[Role]:
        state = self.state
        self._role(state, role_id)
        return hierarchy.ancestors_of(role_id, state.roles)

    def get_effective_code(self, role_id: str) -> int:
        """Own code OR'ed with the parent chain (hierarchy code)"""
        state = self.state
        return hierarchy.effective_code(self._role(state, role_id), state.roles)

    def get_role_permission_code(self, role_id: str) -> int:
        """Derived code including own, inherited and policy-granted permissions"""
        state = self.state
        return aggregator.role_permission_code(self._role(state, role_id), state.roles, state.policies, state.permissions)

    def get_role_hierarchy_tree(self, root_role_id: Optional[str] = None) -> List[HierarchyNode]:
        state = self.state
        if root_role_id is not None:
            self._role(state, root_role_id)
        return hierarchy.build_hierarchy_tree(state.roles, root_role_id)

    def can_set_parent(self, role_id: str, parent_role_id: Optional[str]) -> bool:
        return hierarchy.validate_edge(role_id, parent_role_id, self.state.roles)

    # ===== Policies =====

    def get_roles_by_policy(self, policy_id: str) -> List[Role]:
        state = self.state
        if state.find_policy(policy_id) is None:
            raise NotFoundError("policy", policy_id)
        return aggregator.roles_of_policy(policy_id, state.roles)

    def get_permissions_by_policy(self, policy_id: str) -> List[Permission]:
        state = self.state
        if state.find_policy(policy_id) is None:
            raise NotFoundError("policy", policy_id)
        return aggregator.permissions_of_policy(policy_id, state.policies, state.permissions)


def create_rbac_service(settings: Optional[RBACSettings] = None) -> RBACService:
    """
    Build a service from settings.

    Loads the state file when it exists; otherwise starts from the default
    dataset (seed_defaults) or an empty snapshot.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    state_path = settings.state_path
    repository = RBACRepository(state_path=state_path, autosave=settings.autosave)

    if state_path.exists():
        repository.load()
    elif settings.seed_defaults:
        repository.replace(default_state())
        logger.info("No saved RBAC state; starting from default dataset")

    return RBACService(repository, log_denials=settings.log_denials)
