"""
Tests for rbac_admin/permissions/schedule.py
"""

from datetime import datetime, timedelta, UTC

from rbac_admin.permissions.schedule import active_grants, is_expired, is_granted, pending_grants
from rbac_admin.schemas.permission_models import ScheduledGrant
from rbac_admin.seed import default_state

NOW = datetime(2025, 6, 1, tzinfo=UTC)


class TestScheduledGrant:

    def test_granted(self):
        entry = ScheduledGrant(permission_id="perm-read", granted_at="2025-05-01T00:00:00+00:00")
        assert is_granted(entry, NOW)
        assert not is_expired(entry, NOW)

    def test_not_yet_granted(self):
        entry = ScheduledGrant(permission_id="perm-read", granted_at="2025-07-01T00:00:00Z")
        assert not is_granted(entry, NOW)

    def test_expired(self):
        entry = ScheduledGrant(
            permission_id="perm-read",
            granted_at="2025-01-01T00:00:00Z",
            expires_at="2025-02-01T00:00:00Z",
        )
        assert is_expired(entry, NOW)

    def test_naive_timestamp_treated_as_utc(self):
        entry = ScheduledGrant(permission_id="perm-read", granted_at="2025-06-01T00:00:00")
        assert is_granted(entry, NOW)


class TestRoleSchedules:

    def test_default_dataset(self):
        state = default_state(now=NOW)
        support = state.find_role("role-support")
        user = state.find_role("role-user")

        assert [e.permission_id for e in active_grants(support, NOW)] == ["perm-update"]
        assert [e.permission_id for e in pending_grants(support, NOW)] == ["perm-delete"]

        assert active_grants(user, NOW) == []
        later = NOW + timedelta(days=10)
        assert [e.permission_id for e in active_grants(user, later)] == ["perm-write"]
        assert active_grants(user, NOW + timedelta(days=91)) == []
