"""
Default RBAC dataset

Six flag permissions, three services, three service-scoped policies and a
small role hierarchy (Admin -> Content Writer, Support) with sample users.
Used when no persisted state exists and seeding is enabled.
"""

from datetime import datetime, timedelta, UTC
from typing import Optional

from rbac_admin.permissions.types import PermissionFlag, PermissionLevel
from rbac_admin.schemas.permission_models import (
    Permission,
    Policy,
    RBACState,
    Role,
    ScheduledGrant,
    Service,
    User,
)


def default_state(now: Optional[datetime] = None) -> RBACState:
    """
    Build the default snapshot.

    Args:
        now: Reference time for timestamps and scheduled grants

    Returns:
        A fresh RBACState
    """
    now = now or datetime.now(UTC)
    ts = now.isoformat()

    def days(n: int) -> str:
        return (now + timedelta(days=n)).isoformat()

    permissions = [
        Permission(id="perm-read", name="Read", description="Read/View resources", action="read",
                   flag=PermissionFlag.READ, level=PermissionLevel.BASIC, created_at=ts, updated_at=ts),
        Permission(id="perm-write", name="Write", description="Create/Edit resources", action="write",
                   flag=PermissionFlag.WRITE, level=PermissionLevel.INTERMEDIATE, created_at=ts, updated_at=ts),
        Permission(id="perm-delete", name="Delete", description="Delete resources", action="delete",
                   flag=PermissionFlag.DELETE, level=PermissionLevel.ADVANCED, created_at=ts, updated_at=ts),
        Permission(id="perm-update", name="Update", description="Update resource metadata", action="update",
                   flag=PermissionFlag.UPDATE, level=PermissionLevel.INTERMEDIATE, created_at=ts, updated_at=ts),
        Permission(id="perm-approve", name="Approve", description="Approve requests", action="approve",
                   flag=PermissionFlag.APPROVE, level=PermissionLevel.ADVANCED, created_at=ts, updated_at=ts),
        Permission(id="perm-reject", name="Reject", description="Reject requests", action="reject",
                   flag=PermissionFlag.REJECT, level=PermissionLevel.ADVANCED, created_at=ts, updated_at=ts),
    ]

    services = [
        Service(id="service-labs", name="Labs Service",
                description="Laboratory management and resources", created_at=ts, updated_at=ts),
        Service(id="service-courses", name="Courses Service",
                description="Educational content and course management", created_at=ts, updated_at=ts),
        Service(id="service-payment", name="Payment Service",
                description="Payment processing and billing", created_at=ts, updated_at=ts),
    ]

    policies = [
        Policy(id="policy-student-read", name="Student Read Policy",
               description="Allow students to view course materials",
               service_id="service-courses", permissions=["perm-read"],
               roles=["role-support"], created_at=ts, updated_at=ts),
        Policy(id="policy-instructor-full", name="Instructor Full Access",
               description="Full access for instructors", service_id="service-courses",
               permissions=["perm-read", "perm-write", "perm-delete", "perm-update", "perm-approve"],
               roles=["role-admin", "role-content-writer"], created_at=ts, updated_at=ts),
        Policy(id="policy-labs-access", name="Labs Access Policy",
               description="Access to lab resources", service_id="service-labs",
               permissions=["perm-read", "perm-write"],
               roles=["role-admin", "role-user"], created_at=ts, updated_at=ts),
    ]

    roles = [
        Role(id="role-admin", name="Admin", description="Full system access",
             level=PermissionLevel.ADMIN, permission_code=63,
             policy_ids=["policy-instructor-full", "policy-labs-access"],
             permissions=["perm-read", "perm-write", "perm-delete", "perm-update", "perm-approve", "perm-reject"],
             created_at=ts, updated_at=ts),
        Role(id="role-content-writer", name="Content Writer", description="Can create and edit content",
             level=PermissionLevel.ADVANCED, permission_code=11, parent_role_id="role-admin",
             policy_ids=["policy-instructor-full"],
             permissions=["perm-read", "perm-write", "perm-update"],
             inheritance_schedule=[ScheduledGrant(permission_id="perm-delete", granted_at=ts)],
             created_at=ts, updated_at=ts),
        Role(id="role-account-approval", name="Account Approval", description="Can approve accounts",
             level=PermissionLevel.ADVANCED, permission_code=49,
             permissions=["perm-read", "perm-approve", "perm-reject"],
             created_at=ts, updated_at=ts),
        Role(id="role-support", name="Support", description="Support team access",
             level=PermissionLevel.INTERMEDIATE, permission_code=3, parent_role_id="role-admin",
             policy_ids=["policy-student-read"],
             permissions=["perm-read", "perm-write"],
             inheritance_schedule=[
                 ScheduledGrant(permission_id="perm-update", granted_at=ts),
                 ScheduledGrant(permission_id="perm-delete", granted_at=days(30)),
             ],
             created_at=ts, updated_at=ts),
        Role(id="role-user", name="User", description="Regular user",
             level=PermissionLevel.BASIC, permission_code=1,
             policy_ids=["policy-labs-access"],
             permissions=["perm-read"],
             inheritance_schedule=[
                 ScheduledGrant(permission_id="perm-write", granted_at=days(7), expires_at=days(90)),
             ],
             created_at=ts, updated_at=ts),
    ]

    users = [
        User(id="user-1", name="Alice Admin", email="alice@example.com",
             role_ids=["role-admin"], created_at=ts, updated_at=ts),
        User(id="user-2", name="Sam Support", email="sam@example.com",
             role_ids=["role-support", "role-account-approval"], created_at=ts, updated_at=ts),
        User(id="user-3", name="Guest Visitor", email="guest@example.com", type="guest",
             role_ids=[], created_at=ts, updated_at=ts),
    ]

    return RBACState(
        users=users,
        roles=roles,
        policies=policies,
        permissions=permissions,
        services=services,
    )
