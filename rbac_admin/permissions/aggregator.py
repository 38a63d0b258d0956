"""
Policy/Permission Aggregator

Collects the permissions a role or user holds: directly, through the
role's parent chain, and through policies attached to the role.
Dangling permission/policy/role IDs are skipped, never errors.
Results are de-duplicated by permission ID in first-seen order.
"""

import logging
from typing import Dict, Iterable, List, Mapping, TypeVar, Union

from .codec import flags_of
from .hierarchy import effective_code, index_roles, walk_ancestors
from rbac_admin.schemas.permission_models import Permission, Policy, Role, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _index(items: Union[Mapping[str, T], Iterable[T]]) -> Dict[str, T]:
    if isinstance(items, Mapping):
        return dict(items)
    return {item.id: item for item in items}


def _resolve(permission_ids: Iterable[str], permissions: Mapping[str, Permission]) -> List[Permission]:
    resolved = []
    for permission_id in dict.fromkeys(permission_ids):
        permission = permissions.get(permission_id)
        if permission is not None:
            resolved.append(permission)
    return resolved


def permission_ids_of_role(role: Role, include_inherited: bool, roles) -> List[str]:
    """Own permission IDs, followed by each ancestor's (nearest first)"""
    ids = list(role.permissions)
    if include_inherited and role.parent_role_id:
        index = index_roles(roles)
        for ancestor_id in walk_ancestors(role, index).ancestors:
            ids.extend(index[ancestor_id].permissions)
    return list(dict.fromkeys(ids))


def permissions_of_role(role: Role, include_inherited: bool, roles, permissions) -> List[Permission]:
    """
    Permissions a role holds directly and, optionally, through its parents.

    Args:
        role: Role to resolve
        include_inherited: Also walk the parent chain
        roles: All roles
        permissions: All permissions

    Returns:
        De-duplicated list of Permission
    """
    return _resolve(permission_ids_of_role(role, include_inherited, roles), _index(permissions))


def permissions_of_policy(policy_id: str, policies, permissions) -> List[Permission]:
    policy = _index(policies).get(policy_id)
    if policy is None:
        return []
    return _resolve(policy.permissions, _index(permissions))


def roles_of_policy(policy_id: str, roles) -> List[Role]:
    """Roles that have the policy attached"""
    return [role for role in index_roles(roles).values() if policy_id in role.policy_ids]


def permissions_of_policy_across_roles(policy_id: str, roles, permissions) -> List[Permission]:
    """Own permissions of every role the policy is attached to"""
    ids: List[str] = []
    for role in roles_of_policy(policy_id, roles):
        ids.extend(role.permissions)
    return _resolve(ids, _index(permissions))


def user_roles(user: User, roles) -> List[Role]:
    """User's roles in assignment order, dangling IDs skipped"""
    index = index_roles(roles)
    return [index[role_id] for role_id in user.role_ids if role_id in index]


def user_permissions(user: User, roles, policies, permissions) -> List[Permission]:
    """
    Every permission a user holds.

    Union over the user's roles of (a) each role's own and inherited
    permissions and (b) the permissions of every policy attached to that
    role. A role reached twice (shared ancestor, or a cycle in corrupted
    data) is expanded only once.
    """
    role_index = index_roles(roles)
    policy_index = _index(policies)
    ids: List[str] = []
    expanded = set()

    for role_id in user.role_ids:
        role = role_index.get(role_id)
        if role is None:
            continue

        current = role
        while current is not None and current.id not in expanded:
            expanded.add(current.id)
            ids.extend(current.permissions)
            current = role_index.get(current.parent_role_id) if current.parent_role_id else None

        for policy_id in role.policy_ids:
            policy = policy_index.get(policy_id)
            if policy is not None:
                ids.extend(policy.permissions)

    return _resolve(ids, _index(permissions))


def role_permission_code(role: Role, roles, policies, permissions) -> int:
    """
    Derived code of a role: its hierarchy code OR'ed with the flags of
    every own, inherited and policy-granted permission.
    """
    index = index_roles(roles)
    permission_index = _index(permissions)
    policy_index = _index(policies)

    granted = permissions_of_role(role, True, index, permission_index)
    for policy_id in role.policy_ids:
        granted.extend(permissions_of_policy(policy_id, policy_index, permission_index))

    return effective_code(role, index) | flags_of(granted)
