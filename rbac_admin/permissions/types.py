"""
Permission Types

Core type definitions for the RBAC permission system.
"""

from enum import IntEnum
from typing import Optional, List
from dataclasses import dataclass, field


class PermissionFlag(IntEnum):
    """Bitwise permission flags (like chmod: 1=read, 2=write, 4=delete, 8=update)"""
    READ = 1
    WRITE = 2
    DELETE = 4
    UPDATE = 8
    APPROVE = 16
    REJECT = 32


# Canonical decode/display order
CANONICAL_FLAGS = (
    PermissionFlag.READ,
    PermissionFlag.WRITE,
    PermissionFlag.DELETE,
    PermissionFlag.UPDATE,
    PermissionFlag.APPROVE,
    PermissionFlag.REJECT,
)


class PermissionLevel(IntEnum):
    """Permission levels for roles and permissions (higher number = more access)"""
    BASIC = 0
    INTERMEDIATE = 1
    ADVANCED = 2
    ADMIN = 3


@dataclass
class AuthCheckResult:
    """
    Outcome of an authorization check

    Attributes:
        allowed: Whether access is granted
        reason: Human-readable explanation of the decision
        user_id: User the check was made for
        required_permission: Permission key that was requested
        found_permission: Whether any role/policy held the key. Every path
            that finds the key also grants it, so this always equals
            allowed; it stays part of the serialised result shape
        service_id: Service the check was scoped to (None = unscoped)
        role_id: Role that granted access, if any
        policy_id: Policy that granted access, if any
    """
    allowed: bool
    reason: str
    user_id: str
    required_permission: str
    found_permission: bool
    service_id: Optional[str] = None
    role_id: Optional[str] = None
    policy_id: Optional[str] = None


@dataclass
class HierarchyNode:
    """Node of the role hierarchy forest, shared by tree and org-chart views"""
    id: str
    name: str
    level: PermissionLevel
    level_name: str
    effective_code: int
    parent_id: Optional[str] = None
    children: List["HierarchyNode"] = field(default_factory=list)


@dataclass
class AncestorWalk:
    """
    Result of walking a role's parent chain

    Attributes:
        ancestors: Role IDs from nearest parent to the root
        cycle_detected: True if the walk revisited a role and stopped
    """
    ancestors: List[str] = field(default_factory=list)
    cycle_detected: bool = False
