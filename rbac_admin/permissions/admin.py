"""
Permission Administration

Create/update/delete operations for services, policies, roles, permissions
and users, plus assignment helpers.

Every operation runs inside one repository transaction: all foreign IDs
are checked before anything changes, and an exception discards the draft
so the committed snapshot stays intact. Deletes clean up every reference
to the removed entity in the same transaction.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

import pydantic

from .codec import add_flag, flags_of, remove_flag
from .hierarchy import validate_edge
from .storage import RBACRepository
from .types import PermissionFlag, PermissionLevel
from rbac_admin.errors import InvalidHierarchyEdgeError, NotFoundError, ValidationError
from rbac_admin.schemas.permission_models import (
    Permission,
    Policy,
    RBACModel,
    RBACState,
    Role,
    ScheduledGrant,
    Service,
    User,
    utc_now,
)
from rbac_admin.structured_logger import log_with_context

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=RBACModel)

IMMUTABLE_FIELDS = {"id", "created_at", "updated_at"}


def new_id(prefix: str) -> str:
    """Generate an entity ID, e.g. role_3f2a9c1d0b4e"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def build_model(model_cls: Type[M], **fields) -> M:
    """Construct a model, surfacing pydantic errors as ValidationError"""
    try:
        return model_cls(**fields)
    except pydantic.ValidationError as e:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid {model_cls.__name__.lower()}", details={"errors": errors}) from e


def apply_updates(model: M, updates: Dict[str, Any]) -> M:
    """Return a re-validated copy of model with updates applied and updated_at refreshed"""
    forbidden = IMMUTABLE_FIELDS.intersection(updates)
    if forbidden:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(forbidden))}")

    unknown = set(updates) - set(type(model).model_fields)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    data = model.model_dump()
    data.update(updates)
    data["updated_at"] = utc_now()
    return build_model(type(model), **data)


def _replace(collection: List[M], entity: M) -> None:
    for i, existing in enumerate(collection):
        if existing.id == entity.id:
            collection[i] = entity
            return


def _require_role(state: RBACState, role_id: str) -> Role:
    role = state.find_role(role_id)
    if role is None:
        raise NotFoundError("role", role_id)
    return role


def _require_user(state: RBACState, user_id: str) -> User:
    user = state.find_user(user_id)
    if user is None:
        raise NotFoundError("user", user_id)
    return user


def _require_policy(state: RBACState, policy_id: str) -> Policy:
    policy = state.find_policy(policy_id)
    if policy is None:
        raise NotFoundError("policy", policy_id)
    return policy


def _require_permission(state: RBACState, permission_id: str) -> Permission:
    permission = state.find_permission(permission_id)
    if permission is None:
        raise NotFoundError("permission", permission_id)
    return permission


def _require_service(state: RBACState, service_id: str) -> Service:
    service = state.find_service(service_id)
    if service is None:
        raise NotFoundError("service", service_id)
    return service


def _require_all(state: RBACState, kind: str, ids: Iterable[str]) -> List[str]:
    finder = {
        "role": state.find_role,
        "policy": state.find_policy,
        "permission": state.find_permission,
    }[kind]
    ids = list(ids)
    for entity_id in ids:
        if finder(entity_id) is None:
            raise NotFoundError(kind, entity_id)
    return ids


def _drop_flag_if_unshared(role: Role, permission: Permission, remaining_ids: Iterable[str], state: RBACState) -> int:
    """Clear permission's bit from the role code unless another remaining own permission carries it"""
    permissions = state.permissions_by_id()
    for permission_id in remaining_ids:
        other = permissions.get(permission_id)
        if other is not None and other.flag == permission.flag:
            return role.permission_code
    return remove_flag(role.permission_code, permission.flag)


def _sync_policy_roles(state: RBACState, role_id: str, old_policy_ids: Iterable[str], new_policy_ids: Iterable[str]) -> None:
    """Mirror a role's policy_ids change onto Policy.roles"""
    old, new = set(old_policy_ids), set(new_policy_ids)
    for policy in list(state.policies):
        if policy.id in new - old and role_id not in policy.roles:
            _replace(state.policies, policy.model_copy(update={"roles": policy.roles + [role_id], "updated_at": utc_now()}))
        elif policy.id in old - new and role_id in policy.roles:
            _replace(state.policies, policy.model_copy(update={
                "roles": [r for r in policy.roles if r != role_id], "updated_at": utc_now()
            }))


def _sync_role_policies(state: RBACState, policy_id: str, old_role_ids: Iterable[str], new_role_ids: Iterable[str]) -> None:
    """Mirror a policy's roles change onto Role.policy_ids"""
    old, new = set(old_role_ids), set(new_role_ids)
    for role in list(state.roles):
        if role.id in new - old and policy_id not in role.policy_ids:
            _replace(state.roles, role.model_copy(update={"policy_ids": role.policy_ids + [policy_id], "updated_at": utc_now()}))
        elif role.id in old - new and policy_id in role.policy_ids:
            _replace(state.roles, role.model_copy(update={
                "policy_ids": [p for p in role.policy_ids if p != policy_id], "updated_at": utc_now()
            }))


class RBACAdmin:
    """
    Mutation layer over an RBACRepository

    All methods return a copy of the created/updated entity; the committed
    snapshot is never handed out for in-place editing.
    """

    def __init__(self, repository: RBACRepository):
        self.repository = repository

    # ===== Services =====

    def create_service(self, name: str, description: str = "") -> Service:
        with self.repository.transaction() as draft:
            service = build_model(Service, id=new_id("service"), name=name, description=description)
            draft.services.append(service)
        logger.debug(f"Created service {service.id}")
        return service.model_copy(deep=True)

    def update_service(self, service_id: str, **updates) -> Service:
        with self.repository.transaction() as draft:
            service = apply_updates(_require_service(draft, service_id), updates)
            _replace(draft.services, service)
        logger.debug(f"Updated service {service_id}")
        return service.model_copy(deep=True)

    def delete_service(self, service_id: str) -> None:
        """Delete a service together with its policies and every role reference to them"""
        with self.repository.transaction() as draft:
            _require_service(draft, service_id)
            removed = {p.id for p in draft.policies if p.service_id == service_id}

            draft.services = [s for s in draft.services if s.id != service_id]
            draft.policies = [p for p in draft.policies if p.id not in removed]
            draft.roles = [
                r.model_copy(update={"policy_ids": [p for p in r.policy_ids if p not in removed], "updated_at": utc_now()})
                if removed.intersection(r.policy_ids) else r
                for r in draft.roles
            ]
        logger.info(f"Deleted service {service_id} and {len(removed)} policies")

    # ===== Permissions =====

    def create_permission(
        self,
        name: str,
        flag: int,
        action: Optional[str] = None,
        description: str = "",
        category: str = "",
        level: int = PermissionLevel.BASIC,
        parent_id: Optional[str] = None
    ) -> Permission:
        """
        Create a permission carrying a single bitwise flag.

        Args:
            action: Defaults to the flag's name ("read", "write", ...) for known flags
            parent_id: Optional parent permission (must exist)
        """
        if action is None:
            try:
                action = PermissionFlag(flag).name.lower()
            except ValueError:
                action = ""

        with self.repository.transaction() as draft:
            if parent_id is not None:
                _require_permission(draft, parent_id)
            permission = build_model(
                Permission,
                id=new_id("perm"),
                name=name,
                flag=flag,
                action=action,
                description=description,
                category=category,
                level=level,
                parent_id=parent_id,
            )
            draft.permissions.append(permission)
        logger.debug(f"Created permission {permission.id} (flag={permission.flag})")
        return permission.model_copy(deep=True)

    def update_permission(self, permission_id: str, **updates) -> Permission:
        """Update a permission; a flag change is carried into the codes of roles holding it"""
        with self.repository.transaction() as draft:
            old = _require_permission(draft, permission_id)

            parent_id = updates.get("parent_id")
            if parent_id is not None:
                if parent_id == permission_id:
                    raise ValidationError("Permission cannot be its own parent")
                _require_permission(draft, parent_id)

            permission = apply_updates(old, updates)
            _replace(draft.permissions, permission)

            if permission.flag != old.flag:
                for role in list(draft.roles):
                    if permission_id not in role.permissions:
                        continue
                    others = [p for p in role.permissions if p != permission_id]
                    code = add_flag(_drop_flag_if_unshared(role, old, others, draft), permission.flag)
                    _replace(draft.roles, role.model_copy(update={"permission_code": code, "updated_at": utc_now()}))
        logger.debug(f"Updated permission {permission_id}")
        return permission.model_copy(deep=True)

    def delete_permission(self, permission_id: str) -> None:
        """Delete a permission and remove it from roles, policies, schedules and child permissions"""
        with self.repository.transaction() as draft:
            permission = _require_permission(draft, permission_id)

            for role in list(draft.roles):
                held = permission_id in role.permissions
                scheduled = any(e.permission_id == permission_id for e in role.inheritance_schedule)
                if not held and not scheduled:
                    continue
                remaining = [p for p in role.permissions if p != permission_id]
                code = _drop_flag_if_unshared(role, permission, remaining, draft) if held else role.permission_code
                _replace(draft.roles, role.model_copy(update={
                    "permissions": remaining,
                    "permission_code": code,
                    "inheritance_schedule": [e for e in role.inheritance_schedule if e.permission_id != permission_id],
                    "updated_at": utc_now(),
                }))

            draft.policies = [
                p.model_copy(update={"permissions": [x for x in p.permissions if x != permission_id], "updated_at": utc_now()})
                if permission_id in p.permissions else p
                for p in draft.policies
            ]
            draft.permissions = [
                p.model_copy(update={"parent_id": None}) if p.parent_id == permission_id else p
                for p in draft.permissions
                if p.id != permission_id
            ]
        logger.info(f"Deleted permission {permission_id}")

    # ===== Policies =====

    def create_policy(
        self,
        name: str,
        service_id: str,
        description: str = "",
        permission_ids: Iterable[str] = (),
        role_ids: Iterable[str] = ()
    ) -> Policy:
        """Create a service-scoped policy, attaching it to the given roles"""
        with self.repository.transaction() as draft:
            _require_service(draft, service_id)
            permission_ids = _require_all(draft, "permission", permission_ids)
            role_ids = _require_all(draft, "role", role_ids)

            policy = build_model(
                Policy,
                id=new_id("policy"),
                name=name,
                description=description,
                service_id=service_id,
                permissions=permission_ids,
                roles=role_ids,
            )
            draft.policies.append(policy)
            _sync_role_policies(draft, policy.id, [], policy.roles)
        logger.debug(f"Created policy {policy.id} for service {service_id}")
        return policy.model_copy(deep=True)

    def update_policy(self, policy_id: str, **updates) -> Policy:
        with self.repository.transaction() as draft:
            old = _require_policy(draft, policy_id)
            if "service_id" in updates:
                _require_service(draft, updates["service_id"])
            if "permissions" in updates:
                _require_all(draft, "permission", updates["permissions"])
            if "roles" in updates:
                _require_all(draft, "role", updates["roles"])

            policy = apply_updates(old, updates)
            _replace(draft.policies, policy)
            _sync_role_policies(draft, policy_id, old.roles, policy.roles)
        logger.debug(f"Updated policy {policy_id}")
        return policy.model_copy(deep=True)

    def delete_policy(self, policy_id: str) -> None:
        """Delete a policy and detach it from every role"""
        with self.repository.transaction() as draft:
            _require_policy(draft, policy_id)
            draft.policies = [p for p in draft.policies if p.id != policy_id]
            draft.roles = [
                r.model_copy(update={"policy_ids": [p for p in r.policy_ids if p != policy_id], "updated_at": utc_now()})
                if policy_id in r.policy_ids else r
                for r in draft.roles
            ]
        logger.info(f"Deleted policy {policy_id}")

    def attach_policy_to_role(self, role_id: str, policy_id: str) -> Role:
        with self.repository.transaction() as draft:
            role = _require_role(draft, role_id)
            _require_policy(draft, policy_id)
            if policy_id not in role.policy_ids:
                role = role.model_copy(update={"policy_ids": role.policy_ids + [policy_id], "updated_at": utc_now()})
                _replace(draft.roles, role)
                _sync_policy_roles(draft, role_id, [], [policy_id])
        return role.model_copy(deep=True)

    def detach_policy_from_role(self, role_id: str, policy_id: str) -> Role:
        with self.repository.transaction() as draft:
            role = _require_role(draft, role_id)
            if policy_id in role.policy_ids:
                role = role.model_copy(update={
                    "policy_ids": [p for p in role.policy_ids if p != policy_id], "updated_at": utc_now()
                })
                _replace(draft.roles, role)
                _sync_policy_roles(draft, role_id, [policy_id], [])
        return role.model_copy(deep=True)

    # ===== Roles =====

    def create_role(
        self,
        name: str,
        description: str = "",
        level: int = PermissionLevel.BASIC,
        parent_role_id: Optional[str] = None,
        permission_ids: Iterable[str] = (),
        policy_ids: Iterable[str] = (),
        permission_code: Optional[int] = None,
        inheritance_schedule: Iterable[Dict[str, Any]] = ()
    ) -> Role:
        """
        Create a role.

        Args:
            parent_role_id: Optional parent (must exist)
            permission_ids: Own permissions (must exist)
            policy_ids: Attached policies (must exist)
            permission_code: Own code; defaults to the OR of the own permissions' flags
            inheritance_schedule: Entries with permission_id, granted_at, expires_at
        """
        with self.repository.transaction() as draft:
            if parent_role_id is not None:
                _require_role(draft, parent_role_id)
            permission_ids = _require_all(draft, "permission", permission_ids)
            policy_ids = _require_all(draft, "policy", policy_ids)

            schedule = [
                entry if isinstance(entry, ScheduledGrant) else build_model(ScheduledGrant, **entry)
                for entry in inheritance_schedule
            ]
            _require_all(draft, "permission", [entry.permission_id for entry in schedule])

            if permission_code is None:
                permissions = draft.permissions_by_id()
                permission_code = flags_of(permissions[p] for p in permission_ids)

            role = build_model(
                Role,
                id=new_id("role"),
                name=name,
                description=description,
                level=level,
                parent_role_id=parent_role_id,
                permissions=permission_ids,
                policy_ids=policy_ids,
                permission_code=permission_code,
                inheritance_schedule=schedule,
            )
            draft.roles.append(role)
            _sync_policy_roles(draft, role.id, [], role.policy_ids)
        logger.debug(f"Created role {role.id} (parent={parent_role_id})")
        return role.model_copy(deep=True)

    def update_role(self, role_id: str, **updates) -> Role:
        """
        Update a role.

        A parent change is validated against the hierarchy before commit.
        Replacing the permission list without an explicit permission_code
        recomputes the own code from the new permissions.

        Raises:
            NotFoundError: Role or a referenced ID does not exist
            InvalidHierarchyEdgeError: New parent would create a cycle
        """
        with self.repository.transaction() as draft:
            old = _require_role(draft, role_id)

            parent_id = updates.get("parent_role_id")
            if parent_id is not None:
                _require_role(draft, parent_id)
                if not validate_edge(role_id, parent_id, draft.roles):
                    logger.warning(f"Rejected parent {parent_id} for role {role_id}: would create a cycle")
                    raise InvalidHierarchyEdgeError(role_id, parent_id)

            if "permissions" in updates:
                _require_all(draft, "permission", updates["permissions"])
                if "permission_code" not in updates:
                    permissions = draft.permissions_by_id()
                    updates["permission_code"] = flags_of(permissions[p] for p in updates["permissions"])
            if "policy_ids" in updates:
                _require_all(draft, "policy", updates["policy_ids"])

            role = apply_updates(old, updates)
            _require_all(draft, "permission", [entry.permission_id for entry in role.inheritance_schedule])
            _replace(draft.roles, role)
            _sync_policy_roles(draft, role_id, old.policy_ids, role.policy_ids)
        logger.debug(f"Updated role {role_id}")
        return role.model_copy(deep=True)

    def set_role_parent(self, role_id: str, parent_role_id: Optional[str]) -> Role:
        return self.update_role(role_id, parent_role_id=parent_role_id)

    def delete_role(self, role_id: str) -> None:
        """
        Delete a role.

        Removes it from every user and policy. Former children become roots;
        they are not re-parented to the deleted role's parent.
        """
        with self.repository.transaction() as draft:
            _require_role(draft, role_id)
            now = utc_now()
            orphaned = [r.id for r in draft.roles if r.parent_role_id == role_id]

            draft.roles = [
                r.model_copy(update={"parent_role_id": None, "updated_at": now}) if r.parent_role_id == role_id else r
                for r in draft.roles
                if r.id != role_id
            ]
            draft.users = [
                u.model_copy(update={"role_ids": [x for x in u.role_ids if x != role_id], "updated_at": now})
                if role_id in u.role_ids else u
                for u in draft.users
            ]
            draft.policies = [
                p.model_copy(update={"roles": [x for x in p.roles if x != role_id], "updated_at": now})
                if role_id in p.roles else p
                for p in draft.policies
            ]
        log_with_context(logger, "info", f"Deleted role {role_id}", {"role_id": role_id, "orphaned_children": orphaned})

    def assign_permission_to_role(self, role_id: str, permission_id: str) -> Role:
        """Add an own permission and its flag to the role code (idempotent)"""
        with self.repository.transaction() as draft:
            role = _require_role(draft, role_id)
            permission = _require_permission(draft, permission_id)
            if permission_id not in role.permissions:
                role = role.model_copy(update={
                    "permissions": role.permissions + [permission_id],
                    "permission_code": add_flag(role.permission_code, permission.flag),
                    "updated_at": utc_now(),
                })
                _replace(draft.roles, role)
        return role.model_copy(deep=True)

    def remove_permission_from_role(self, role_id: str, permission_id: str) -> Role:
        """Remove an own permission (no-op if not held)"""
        with self.repository.transaction() as draft:
            role = _require_role(draft, role_id)
            if permission_id in role.permissions:
                remaining = [p for p in role.permissions if p != permission_id]
                code = role.permission_code
                permission = draft.find_permission(permission_id)
                if permission is not None:
                    code = _drop_flag_if_unshared(role, permission, remaining, draft)
                role = role.model_copy(update={"permissions": remaining, "permission_code": code, "updated_at": utc_now()})
                _replace(draft.roles, role)
        return role.model_copy(deep=True)

    # ===== Users =====

    def create_user(
        self,
        name: str,
        email: str,
        role_ids: Iterable[str] = (),
        user_type: str = "authenticated"
    ) -> User:
        with self.repository.transaction() as draft:
            role_ids = _require_all(draft, "role", role_ids)
            user = build_model(User, id=new_id("user"), name=name, email=email, role_ids=role_ids, type=user_type)
            draft.users.append(user)
        logger.debug(f"Created user {user.id}")
        return user.model_copy(deep=True)

    def update_user(self, user_id: str, **updates) -> User:
        with self.repository.transaction() as draft:
            old = _require_user(draft, user_id)
            if "role_ids" in updates:
                _require_all(draft, "role", updates["role_ids"])
            user = apply_updates(old, updates)
            _replace(draft.users, user)
        logger.debug(f"Updated user {user_id}")
        return user.model_copy(deep=True)

    def delete_user(self, user_id: str) -> None:
        with self.repository.transaction() as draft:
            _require_user(draft, user_id)
            draft.users = [u for u in draft.users if u.id != user_id]
        logger.info(f"Deleted user {user_id}")

    def assign_role_to_user(self, user_id: str, role_id: str) -> User:
        """Append a role to the user's role list (idempotent)"""
        with self.repository.transaction() as draft:
            user = _require_user(draft, user_id)
            _require_role(draft, role_id)
            if role_id not in user.role_ids:
                user = user.model_copy(update={"role_ids": user.role_ids + [role_id], "updated_at": utc_now()})
                _replace(draft.users, user)
        return user.model_copy(deep=True)

    def remove_role_from_user(self, user_id: str, role_id: str) -> User:
        """Remove a role from the user (no-op if not assigned)"""
        with self.repository.transaction() as draft:
            user = _require_user(draft, user_id)
            if role_id in user.role_ids:
                user = user.model_copy(update={
                    "role_ids": [r for r in user.role_ids if r != role_id], "updated_at": utc_now()
                })
                _replace(draft.users, user)
        return user.model_copy(deep=True)
