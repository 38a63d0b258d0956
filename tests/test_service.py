"""
Tests for rbac_admin/service.py

Coverage targets:
- Authorization queries by ID (can/explain)
- NotFoundError for unknown IDs
- Role and policy queries
- create_rbac_service() bootstrapping from settings
"""

import pytest

from rbac_admin.config import RBACSettings
from rbac_admin.errors import NotFoundError
from rbac_admin.service import create_rbac_service


def ids(entities):
    return [e.id for e in entities]


# ========== Authorization ==========

class TestAuthorization:

    def test_can(self, service):
        assert service.can("user-1", "perm-delete", "service-courses")
        assert not service.can("user-3", "perm-read")

    def test_explain(self, service):
        result = service.explain("user-2", "reject")
        assert result.allowed
        assert result.role_id == "role-support"

    def test_unknown_user(self, service):
        with pytest.raises(NotFoundError) as exc:
            service.can("user-missing", "perm-read")
        assert exc.value.entity == "user"

    def test_unknown_service(self, service):
        with pytest.raises(NotFoundError) as exc:
            service.explain("user-1", "perm-read", "service-missing")
        assert exc.value.entity == "service"

    def test_sees_mutations(self, service):
        assert not service.can("user-3", "perm-read", "service-labs")
        service.admin.assign_role_to_user("user-3", "role-user")
        assert service.can("user-3", "perm-read", "service-labs")

    def test_role_membership(self, service):
        assert service.has_role("user-1", "Admin")
        assert service.has_all_roles("user-2", ["Support", "Account Approval"])
        assert not service.has_any_role("user-3", ["Admin", "User"])


# ========== Queries ==========

class TestQueries:

    def test_user_roles(self, service):
        assert ids(service.get_user_roles("user-2")) == ["role-support", "role-account-approval"]

    def test_user_permissions(self, service):
        assert len(service.get_user_permissions("user-1")) == 6
        assert service.get_user_permissions("user-3") == []

    def test_role_permissions(self, service):
        assert ids(service.get_role_permissions("role-support", include_inherited=False)) == ["perm-read", "perm-write"]
        assert len(service.get_role_permissions("role-support")) == 6

    def test_role_relations(self, service):
        assert ids(service.get_role_children("role-admin")) == ["role-content-writer", "role-support"]
        assert service.get_role_parent("role-support").id == "role-admin"
        assert service.get_role_parent("role-admin") is None
        assert ids(service.get_role_ancestors("role-support")) == ["role-admin"]

    def test_codes(self, service):
        assert service.get_effective_code("role-support") == 63
        assert service.get_effective_code("role-user") == 1
        assert service.get_role_permission_code("role-user") == 3

    def test_hierarchy_tree(self, service):
        roots = service.get_role_hierarchy_tree()
        assert [node.id for node in roots] == ["role-admin", "role-account-approval", "role-user"]

        subtree = service.get_role_hierarchy_tree("role-support")
        assert [node.id for node in subtree] == ["role-support"]
        assert subtree[0].children == []

    def test_can_set_parent(self, service):
        assert service.can_set_parent("role-user", "role-support")
        assert not service.can_set_parent("role-admin", "role-content-writer")
        assert service.can_set_parent("role-admin", None)

    def test_policy_queries(self, service):
        assert ids(service.get_roles_by_policy("policy-labs-access")) == ["role-admin", "role-user"]
        assert ids(service.get_permissions_by_policy("policy-labs-access")) == ["perm-read", "perm-write"]

    def test_results_are_detached(self, service):
        service.get_user_roles("user-1")[0].permissions.clear()
        service.state.find_user("user-2").role_ids.clear()

        assert len(service.get_role_permissions("role-admin", include_inherited=False)) == 6
        assert ids(service.get_user_roles("user-2")) == ["role-support", "role-account-approval"]
        assert service.can("user-1", "perm-delete", "service-courses")

    @pytest.mark.parametrize("call", [
        lambda s: s.get_role_permissions("role-missing"),
        lambda s: s.get_role_children("role-missing"),
        lambda s: s.get_effective_code("role-missing"),
        lambda s: s.get_role_hierarchy_tree("role-missing"),
        lambda s: s.get_roles_by_policy("policy-missing"),
        lambda s: s.get_user_permissions("user-missing"),
    ])
    def test_unknown_ids(self, service, call):
        with pytest.raises(NotFoundError):
            call(service)


# ========== Bootstrapping ==========

class TestCreateService:

    def test_seeds_defaults(self, tmp_path):
        service = create_rbac_service(RBACSettings(data_dir=tmp_path))
        assert service.state.find_user("user-1") is not None
        assert not (tmp_path / "rbac_state.json").exists()

    def test_empty_without_seed(self, tmp_path):
        service = create_rbac_service(RBACSettings(data_dir=tmp_path, seed_defaults=False))
        assert service.state.users == []

    def test_loads_saved_state(self, tmp_path):
        first = create_rbac_service(RBACSettings(data_dir=tmp_path, autosave=True))
        first.admin.delete_user("user-3")

        second = create_rbac_service(RBACSettings(data_dir=tmp_path))
        assert second.state.find_user("user-3") is None
        assert second.state.find_user("user-1") is not None

    def test_uses_environment(self, tmp_path, monkeypatch, reset_settings):
        monkeypatch.setenv("RBAC_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("RBAC_SEED_DEFAULTS", "false")
        service = create_rbac_service()
        assert service.repository.state_path == tmp_path / "rbac_state.json"
        assert service.state.roles == []
