"""
Permission-related Pydantic models for the RBAC admin engine.

These models are the persisted wire contract: attributes are snake_case in
Python and serialise with camelCase aliases (parentRoleId, roleIds, ...).
"""

import re
from datetime import datetime, UTC
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from rbac_admin.permissions.types import PermissionLevel
from rbac_admin.permissions.codec import is_single_flag

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string"""
    return datetime.now(UTC).isoformat()


def _unique(ids: List[str]) -> List[str]:
    """Drop repeated IDs, keeping first occurrence order"""
    return list(dict.fromkeys(ids))


class RBACModel(BaseModel):
    """Base for all persisted entities"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Service(RBACModel):
    """Service model"""
    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class Permission(RBACModel):
    """Permission model carrying one bitwise flag"""
    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = ""
    action: str = ""
    flag: int
    level: PermissionLevel = PermissionLevel.BASIC
    parent_id: Optional[str] = None
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("flag")
    @classmethod
    def flag_single_bit(cls, v: int) -> int:
        if not is_single_flag(v):
            raise ValueError("Permission flag must be a positive power of two")
        return v


class Policy(RBACModel):
    """Service-scoped bundle of permissions"""
    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    service_id: str
    permissions: List[str] = Field(default_factory=list)  # permission IDs
    roles: List[str] = Field(default_factory=list)  # role IDs
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("permissions", "roles")
    @classmethod
    def dedupe_ids(cls, v: List[str]) -> List[str]:
        return _unique(v)


class ScheduledGrant(RBACModel):
    """Time-gated permission grant on a role"""
    permission_id: str
    granted_at: str
    expires_at: Optional[str] = None


class Role(RBACModel):
    """Role model with optional parent for inheritance"""
    id: str
    name: str = Field(..., min_length=1)
    description: str = ""
    level: PermissionLevel = PermissionLevel.BASIC
    permission_code: int = Field(default=0, ge=0)  # own code
    parent_role_id: Optional[str] = None
    permissions: List[str] = Field(default_factory=list)  # own permission IDs
    policy_ids: List[str] = Field(default_factory=list)
    inheritance_schedule: List[ScheduledGrant] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("permissions", "policy_ids")
    @classmethod
    def dedupe_ids(cls, v: List[str]) -> List[str]:
        return _unique(v)


class User(RBACModel):
    """User holding an ordered list of role IDs"""
    id: str
    name: str = Field(..., min_length=1)
    email: str
    type: Literal["guest", "authenticated"] = "authenticated"
    role_ids: List[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    @field_validator("role_ids")
    @classmethod
    def dedupe_ids(cls, v: List[str]) -> List[str]:
        return _unique(v)

    @field_validator("type", mode="before")
    @classmethod
    def legacy_login_type(cls, v):
        """Older snapshots used "login" for signed-in users"""
        return "authenticated" if v == "login" else v

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v


class RBACState(RBACModel):
    """Complete snapshot: the single serializable unit of state"""
    users: List[User] = Field(default_factory=list)
    roles: List[Role] = Field(default_factory=list)
    policies: List[Policy] = Field(default_factory=list)
    permissions: List[Permission] = Field(default_factory=list)
    services: List[Service] = Field(default_factory=list)

    def roles_by_id(self) -> Dict[str, Role]:
        return {role.id: role for role in self.roles}

    def permissions_by_id(self) -> Dict[str, Permission]:
        return {permission.id: permission for permission in self.permissions}

    def policies_by_id(self) -> Dict[str, Policy]:
        return {policy.id: policy for policy in self.policies}

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)

    def find_role(self, role_id: str) -> Optional[Role]:
        return next((r for r in self.roles if r.id == role_id), None)

    def find_policy(self, policy_id: str) -> Optional[Policy]:
        return next((p for p in self.policies if p.id == policy_id), None)

    def find_permission(self, permission_id: str) -> Optional[Permission]:
        return next((p for p in self.permissions if p.id == permission_id), None)

    def find_service(self, service_id: str) -> Optional[Service]:
        return next((s for s in self.services if s.id == service_id), None)
