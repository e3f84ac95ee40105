"""
Tests for role grant administration.
"""
import pytest

from database.models import UserRole
from access.authorization import AccessDecision
from access.exceptions import InvalidUserError, OutOfScope, RoleNotPermitted, ValidationError
from access.grants import GrantService, validate_grant
from access.models import ResourceType
from access.principal import PrincipalResolver
from access.scope import ScopeResolver
from fakes import InMemoryGrantStore, RecordingAuditSink, StaticDerivationSource, make_principal


@pytest.fixture
def store():
    store = InMemoryGrantStore()
    store.add_user(1, UserRole.SUPER_ADMIN)
    store.add_user(2, UserRole.SCHOOL_ADMIN, school_id=5)
    store.add_user(3, UserRole.TEACHER, school_id=5)
    store.add_user(4, UserRole.TEACHER, school_id=6)
    return store


@pytest.fixture
def derivation(store):
    return StaticDerivationSource(
        school_classes={5: [10], 6: [20]},
        school_users={5: [2, 3], 6: [4]},
        records={},
    )


@pytest.fixture
def audit():
    return RecordingAuditSink()


@pytest.fixture
def service(store, derivation, audit):
    access = AccessDecision(ScopeResolver(derivation), derivation)
    return GrantService(store, derivation, access, audit)


@pytest.fixture
def super_admin():
    return make_principal(1, UserRole.SUPER_ADMIN)


@pytest.fixture
def school_admin():
    return make_principal(2, UserRole.SCHOOL_ADMIN, school_id=5)


class TestValidateGrant:
    """Grant shape is checked against the catalog."""

    @pytest.mark.parametrize("role,school_id,class_id", [
        ("super_admin", None, None),
        ("school_admin", 5, None),
        ("class_teacher", 5, 10),
        ("teacher", None, None),
        ("teacher", 5, None),
        ("parent", 5, None),
    ])
    def test_valid(self, role, school_id, class_id):
        assert validate_grant(role, school_id, class_id) == UserRole(role)

    @pytest.mark.parametrize("role,school_id,class_id,field", [
        ("headmaster", 5, None, "role"),
        ("class_teacher", 5, None, "class_id"),
        ("class_teacher", None, 10, "school_id"),
        ("principal", None, None, "school_id"),
        ("principal", 5, 10, "class_id"),
        ("super_admin", 5, None, "school_id"),
        ("student", 5, 10, "class_id"),
    ])
    def test_invalid(self, role, school_id, class_id, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_grant(role, school_id, class_id)
        assert exc_info.value.field == field


class TestAddGrant:
    """Tests for GrantService.add_grant."""

    def test_super_admin_adds_grant(self, service, store, audit, super_admin):
        grant = service.add_grant(super_admin, 3, "class_teacher", school_id=5, class_id=10)

        assert grant.role == UserRole.CLASS_TEACHER
        assert store.get_grants(3) == [grant]
        assert audit.actions == ["user_role_added"]

    def test_adding_twice_is_a_noop(self, service, store, audit, super_admin):
        """Test that an identical grant is returned instead of duplicated."""
        first = service.add_grant(super_admin, 3, "principal", school_id=5)
        second = service.add_grant(super_admin, 3, "principal", school_id=5)

        assert first == second
        assert len(store.get_grants(3)) == 1
        assert audit.actions == ["user_role_added"]

    def test_class_must_belong_to_school(self, service, super_admin):
        with pytest.raises(ValidationError):
            service.add_grant(super_admin, 3, "class_teacher", school_id=5, class_id=20)

    def test_unknown_user(self, service, super_admin):
        with pytest.raises(InvalidUserError):
            service.add_grant(super_admin, 999, "teacher")

    def test_school_admin_in_own_school(self, service, school_admin):
        grant = service.add_grant(school_admin, 3, "vice_principal", school_id=5)
        assert grant.school_id == 5

    def test_school_admin_cannot_touch_other_school_users(self, service, store, school_admin):
        with pytest.raises(OutOfScope):
            service.add_grant(school_admin, 4, "teacher", school_id=6)
        assert store.get_grants(4) == []

    def test_school_admin_cannot_bind_other_school(self, service, school_admin):
        with pytest.raises(OutOfScope):
            service.add_grant(school_admin, 3, "principal", school_id=6)

    def test_only_super_admin_grants_super_admin(self, service, school_admin):
        with pytest.raises(RoleNotPermitted):
            service.add_grant(school_admin, 3, "super_admin")

    def test_teacher_cannot_manage_grants(self, service):
        teacher = make_principal(3, UserRole.TEACHER, school_id=5)
        with pytest.raises(RoleNotPermitted):
            service.add_grant(teacher, 3, "principal", school_id=5)


class TestRemoveGrant:
    """Tests for GrantService.remove_grant."""

    def test_remove_grant(self, service, store, audit, derivation, super_admin):
        grant = store.add_grant(3, UserRole.PRINCIPAL, school_id=5)
        derivation.records[(ResourceType.ROLE_GRANTS, grant.id)] = {"id": grant.id, "user_id": 3, "school_id": 5}

        removed = service.remove_grant(super_admin, grant.id)

        assert removed == grant
        assert store.get_grants(3) == []
        assert audit.actions == ["user_role_removed"]

    def test_missing_grant(self, service, school_admin):
        with pytest.raises(OutOfScope):
            service.remove_grant(school_admin, 12345)

    def test_grant_of_other_school_user(self, service, store, derivation, school_admin):
        grant = store.add_grant(4, UserRole.PARENT)
        derivation.records[(ResourceType.ROLE_GRANTS, grant.id)] = {"id": grant.id, "user_id": 4, "school_id": None}

        with pytest.raises(OutOfScope):
            service.remove_grant(school_admin, grant.id)
        assert store.get_grants(4) == [grant]

    def test_removing_active_grant_is_repaired(self, service, store, derivation, super_admin):
        """Test that removing the active grant makes the next resolve fall back."""
        grant = store.add_grant(3, UserRole.PRINCIPAL, school_id=5)
        derivation.records[(ResourceType.ROLE_GRANTS, grant.id)] = {"id": grant.id, "user_id": 3, "school_id": 5}
        store.add_user(3, UserRole.TEACHER, school_id=5, active_role=UserRole.PRINCIPAL, active_school_id=5)

        service.remove_grant(super_admin, grant.id)
        principal = PrincipalResolver(store).resolve(3)

        assert principal.active_role == UserRole.TEACHER
        assert store.writes == 1
