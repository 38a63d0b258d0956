"""
Role Hierarchy

Resolves a role's effective permission code by walking its parent chain,
validates hierarchy edits and builds the hierarchy forest.

Every walk carries an explicit visited set and an iteration cap of
len(roles) + 1, so corrupted (cyclic) data ends the walk instead of
recursing forever. A cycle is treated as a dead end and logged.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .types import AncestorWalk, HierarchyNode, PermissionLevel
from rbac_admin.schemas.permission_models import Role

logger = logging.getLogger(__name__)

RoleCollection = Union[Mapping[str, Role], Iterable[Role]]


# Display names by level (higher number = more access)
LEVEL_NAMES = {
    PermissionLevel.BASIC: "Basic",
    PermissionLevel.INTERMEDIATE: "Intermediate",
    PermissionLevel.ADVANCED: "Advanced",
    PermissionLevel.ADMIN: "Admin",
}


def level_name(level: int) -> str:
    return LEVEL_NAMES[PermissionLevel(level)]


def index_roles(roles: RoleCollection) -> Dict[str, Role]:
    """Accept either an id->role mapping or a sequence of roles"""
    if isinstance(roles, Mapping):
        return dict(roles)
    return {role.id: role for role in roles}


def walk_ancestors(role: Role, roles: RoleCollection) -> AncestorWalk:
    """
    Follow parent_role_id links from role up to its root.

    A dangling parent reference ends the walk. Revisiting a role (or
    exceeding the iteration cap) ends it with cycle_detected=True.

    Args:
        role: Starting role (not included in the result)
        roles: All roles

    Returns:
        AncestorWalk with ancestor IDs nearest-first
    """
    index = index_roles(roles)
    walk = AncestorWalk()
    visited = {role.id}
    max_steps = len(index) + 1
    current = role.parent_role_id

    while current:
        if current in visited or len(walk.ancestors) >= max_steps:
            walk.cycle_detected = True
            logger.warning(f"Cycle in role hierarchy above {role.id} at {current}; treating as dead end")
            break

        parent = index.get(current)
        if parent is None:
            break

        visited.add(current)
        walk.ancestors.append(current)
        current = parent.parent_role_id

    return walk


def effective_code(role: Role, roles: RoleCollection) -> int:
    """
    Role's own code OR'ed with the effective code of its parent chain.

    A child never loses a parent bit and never subtracts its own.
    """
    index = index_roles(roles)
    code = role.permission_code
    for ancestor_id in walk_ancestors(role, index).ancestors:
        code |= index[ancestor_id].permission_code
    return code


def validate_edge(role_id: str, proposed_parent_id: Optional[str], roles: RoleCollection) -> bool:
    """
    Check that making proposed_parent_id the parent of role_id keeps the
    hierarchy an acyclic forest.

    Returns:
        False for a self-parent, if role_id is an ancestor of the proposed
        parent, or if the proposed parent's own chain is already cyclic
    """
    if proposed_parent_id is None:
        return True
    if role_id == proposed_parent_id:
        return False

    index = index_roles(roles)
    visited = set()
    current = proposed_parent_id

    while current:
        if current == role_id or current in visited:
            return False
        visited.add(current)

        role = index.get(current)
        if role is None:
            return True
        current = role.parent_role_id

    return True


def children_of(role_id: str, roles: RoleCollection) -> List[Role]:
    return [role for role in index_roles(roles).values() if role.parent_role_id == role_id]


def parent_of(role_id: str, roles: RoleCollection) -> Optional[Role]:
    index = index_roles(roles)
    role = index.get(role_id)
    if role is None or not role.parent_role_id:
        return None
    return index.get(role.parent_role_id)


def ancestors_of(role_id: str, roles: RoleCollection) -> List[Role]:
    """Ancestors nearest-first; empty for unknown or root roles"""
    index = index_roles(roles)
    role = index.get(role_id)
    if role is None:
        return []
    return [index[ancestor_id] for ancestor_id in walk_ancestors(role, index).ancestors]


def build_hierarchy_tree(roles: RoleCollection, root_role_id: Optional[str] = None) -> List[HierarchyNode]:
    """
    Build the role hierarchy forest.

    Roots are roles with no (resolvable) parent, in input order. Each role
    is placed at most once across the whole forest; roles caught in a
    parent cycle have no root and are left out.

    Args:
        roles: All roles
        root_role_id: If given, only the subtree under this role (org chart view)

    Returns:
        List of HierarchyNode roots
    """
    index = index_roles(roles)

    children: Dict[str, List[Role]] = defaultdict(list)
    for role in index.values():
        if role.parent_role_id and role.parent_role_id in index:
            children[role.parent_role_id].append(role)

    if root_role_id is not None:
        roots = [index[root_role_id]] if root_role_id in index else []
    else:
        roots = [
            role for role in index.values()
            if not role.parent_role_id or role.parent_role_id not in index
        ]

    processed = set()
    forest: List[HierarchyNode] = []

    for root in roots:
        if root.id in processed:
            continue
        processed.add(root.id)

        root_node = _make_node(root, effective_code(root, index))
        forest.append(root_node)

        stack = [root_node]
        while stack:
            node = stack.pop()
            for child in children.get(node.id, []):
                if child.id in processed:
                    continue
                processed.add(child.id)
                child_node = _make_node(child, node.effective_code | child.permission_code)
                node.children.append(child_node)
                stack.append(child_node)

    return forest


def _make_node(role: Role, code: int) -> HierarchyNode:
    return HierarchyNode(
        id=role.id,
        name=role.name,
        level=PermissionLevel(role.level),
        level_name=level_name(role.level),
        effective_code=code,
        parent_id=role.parent_role_id,
    )


def flatten_tree(forest: List[HierarchyNode]) -> List[HierarchyNode]:
    """Pre-order listing of every node in the forest"""
    ordered = []
    stack = list(reversed(forest))
    while stack:
        node = stack.pop()
        ordered.append(node)
        stack.extend(reversed(node.children))
    return ordered
