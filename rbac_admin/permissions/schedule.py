"""
Inheritance Schedule

Time-gated grants stored on a role (permissionId, grantedAt, expiresAt).
These are data only: the authorization engine does not consult them.
"""

from datetime import datetime, UTC
from typing import List, Optional

from rbac_admin.schemas.permission_models import Role, ScheduledGrant


def _parse(timestamp: str) -> datetime:
    parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_granted(entry: ScheduledGrant, now: Optional[datetime] = None) -> bool:
    """Grant time has been reached"""
    return _parse(entry.granted_at) <= (now or datetime.now(UTC))


def is_expired(entry: ScheduledGrant, now: Optional[datetime] = None) -> bool:
    """Expiry time has passed; grants without expiry never expire"""
    if not entry.expires_at:
        return False
    return _parse(entry.expires_at) < (now or datetime.now(UTC))


def active_grants(role: Role, now: Optional[datetime] = None) -> List[ScheduledGrant]:
    now = now or datetime.now(UTC)
    return [entry for entry in role.inheritance_schedule if is_granted(entry, now) and not is_expired(entry, now)]


def pending_grants(role: Role, now: Optional[datetime] = None) -> List[ScheduledGrant]:
    now = now or datetime.now(UTC)
    return [entry for entry in role.inheritance_schedule if not is_granted(entry, now)]
