"""
Core RBAC Authorization Engine

Stateless decision function over one RBACState snapshot.

Decision protocol (first match wins, not highest privilege):
1. User without roles: deny
2. For each role in the user's role order, for each policy attached to the
   role in policy order: if the policy belongs to the requested service and
   holds the permission key, allow
3. Only if no policy matched for any role: for each role in order, check
   the role's own + inherited permissions (service-unscoped); allow on match
4. Otherwise deny

A permission key matches a permission ID directly, or the action of an
existing permission held under that ID (e.g. "delete" matches "perm-delete").
"""

import logging
from typing import Iterable, List, Optional

from .types import AuthCheckResult
from .aggregator import permission_ids_of_role, user_roles
from rbac_admin.schemas.permission_models import RBACState, User

logger = logging.getLogger(__name__)

REASON_NO_ROLES = "User has no roles assigned"
REASON_NOT_FOUND = "User's roles and policies do not contain the required permission"


class PermissionEngine:
    """
    Central authorization engine

    Bound to a single immutable snapshot; build a new engine per snapshot.
    """

    def __init__(self, state: RBACState, log_denials: bool = True):
        self.state = state
        self.log_denials = log_denials
        self._roles = state.roles_by_id()
        self._policies = state.policies_by_id()
        self._permissions = state.permissions_by_id()

    def _grants(self, permission_ids: Iterable[str], permission_key: str) -> bool:
        """True if any of the IDs is the key, or names a permission whose action is the key"""
        for permission_id in permission_ids:
            if permission_id == permission_key:
                return True
            permission = self._permissions.get(permission_id)
            if permission is not None and permission.action == permission_key:
                return True
        return False

    def check_permission(
        self,
        user: User,
        permission_key: str,
        service_id: Optional[str] = None
    ) -> AuthCheckResult:
        """
        Decide whether user holds permission_key, optionally for a service

        Args:
            user: User to check
            permission_key: Permission ID or action name
            service_id: Service the request targets (None = any service)

        Returns:
            AuthCheckResult with allow/deny and the reason
        """
        if not user.role_ids:
            return self._deny(user, permission_key, service_id, REASON_NO_ROLES)

        roles = user_roles(user, self._roles)

        # Step 2: policies, across all roles
        for role in roles:
            for policy_id in role.policy_ids:
                policy = self._policies.get(policy_id)
                if policy is None:
                    continue
                if service_id is not None and policy.service_id != service_id:
                    continue

                if self._grants(policy.permissions, permission_key):
                    return self._allow(
                        user, permission_key, service_id,
                        f"User role '{role.name}' has policy '{policy.name}' with required permission",
                        role_id=role.id,
                        policy_id=policy.id,
                    )

        # Step 3: direct role permissions (own + inherited)
        for role in roles:
            if self._grants(permission_ids_of_role(role, True, self._roles), permission_key):
                return self._allow(
                    user, permission_key, service_id,
                    f"User role '{role.name}' has the required permission directly",
                    role_id=role.id,
                )

        return self._deny(user, permission_key, service_id, REASON_NOT_FOUND)

    def _allow(self, user, permission_key, service_id, reason, role_id=None, policy_id=None) -> AuthCheckResult:
        logger.debug(f"Allowed {permission_key} for {user.id}: {reason}")
        return AuthCheckResult(
            allowed=True,
            reason=reason,
            user_id=user.id,
            required_permission=permission_key,
            found_permission=True,
            service_id=service_id,
            role_id=role_id,
            policy_id=policy_id,
        )

    def _deny(self, user, permission_key, service_id, reason) -> AuthCheckResult:
        if self.log_denials:
            logger.info(f"Denied {permission_key} for {user.id} (service={service_id}): {reason}")
        return AuthCheckResult(
            allowed=False,
            reason=reason,
            user_id=user.id,
            required_permission=permission_key,
            found_permission=False,
            service_id=service_id,
        )

    # ===== Role membership checks =====

    def user_has_role(self, user: User, role_name: str) -> bool:
        return any(role.name == role_name for role in user_roles(user, self._roles))

    def has_all_roles(self, user: User, role_names: List[str]) -> bool:
        return all(self.user_has_role(user, name) for name in role_names)

    def has_any_role(self, user: User, role_names: List[str]) -> bool:
        return any(self.user_has_role(user, name) for name in role_names)
