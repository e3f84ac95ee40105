"""
In-memory collaborators for testing the access core without a database.
"""
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from database.models import UserRole
from access.models import AuditEntry, Principal, ResourceType, RoleGrant, UserRecord
from access.scope import ScopeResolver


class InMemoryGrantStore:
    """Grant store keeping users and grants in dicts; counts active-role writes."""

    def __init__(self):
        self.users: Dict[int, UserRecord] = {}
        self.grants: List[RoleGrant] = []
        self.audit_entries: List[AuditEntry] = []
        self.writes = 0
        self.fail_updates = False
        self._next_grant_id = 1

    def add_user(self, user_id, role=None, school_id=None, active_role=None,
                 active_school_id=None, active_class_id=None) -> UserRecord:
        role_value = role.value if isinstance(role, UserRole) else role
        active_value = active_role.value if isinstance(active_role, UserRole) else active_role
        user = UserRecord(
            user_id=user_id,
            role=role_value,
            school_id=school_id,
            active_role=active_value,
            active_school_id=active_school_id,
            active_class_id=active_class_id,
        )
        self.users[user_id] = user
        return user

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_grants(self, user_id: int) -> List[RoleGrant]:
        return [grant for grant in self.grants if grant.user_id == user_id]

    def get_grant(self, grant_id: int) -> Optional[RoleGrant]:
        return next((grant for grant in self.grants if grant.id == grant_id), None)

    def add_grant(self, user_id, role, school_id=None, class_id=None) -> RoleGrant:
        grant = RoleGrant(
            id=self._next_grant_id,
            user_id=user_id,
            role=role,
            school_id=school_id,
            class_id=class_id,
        )
        self._next_grant_id += 1
        self.grants.append(grant)
        return grant

    def remove_grant(self, grant_id: int) -> None:
        self.grants = [grant for grant in self.grants if grant.id != grant_id]

    def update_active_role(self, user_id, role, school_id, class_id, audit: AuditEntry) -> None:
        if self.fail_updates:
            raise ConnectionError("store unavailable")
        self.users[user_id] = replace(
            self.users[user_id],
            active_role=role.value,
            active_school_id=school_id,
            active_class_id=class_id,
        )
        self.audit_entries.append(audit)
        self.writes += 1


class StaticDerivationSource:
    """Derivation source over plain dicts."""

    def __init__(
        self,
        teacher_classes: Mapping[int, Iterable[int]] = None,
        teacher_subjects: Mapping[int, Iterable[int]] = None,
        student_classes: Mapping[int, Iterable[int]] = None,
        parent_children: Mapping[int, Iterable[int]] = None,
        school_classes: Mapping[int, Iterable[int]] = None,
        school_subjects: Mapping[int, Iterable[int]] = None,
        school_users: Mapping[int, Iterable[int]] = None,
        school_documents: Mapping[int, Iterable[int]] = None,
        class_students: Mapping[int, Iterable[int]] = None,
        records: Mapping[Tuple[ResourceType, int], Mapping[str, Optional[int]]] = None,
    ):
        self.teacher_classes = teacher_classes or {}
        self.teacher_subjects = teacher_subjects or {}
        self.student_classes = student_classes or {}
        self.parent_children = parent_children or {}
        self.school_classes = school_classes or {}
        self.school_subjects = school_subjects or {}
        self.school_users = school_users or {}
        self.school_documents = school_documents or {}
        self.class_students = class_students or {}
        self.records = dict(records or {})

    def classes_taught_by(self, teacher_id):
        return list(self.teacher_classes.get(teacher_id, []))

    def subjects_taught_by(self, teacher_id):
        return list(self.teacher_subjects.get(teacher_id, []))

    def classes_of_student(self, student_id):
        return list(self.student_classes.get(student_id, []))

    def children_of_parent(self, parent_id):
        return list(self.parent_children.get(parent_id, []))

    def classes_in_school(self, school_id):
        return list(self.school_classes.get(school_id, []))

    def subjects_in_school(self, school_id):
        return list(self.school_subjects.get(school_id, []))

    def users_in_school(self, school_id):
        return list(self.school_users.get(school_id, []))

    def documents_in_school(self, school_id):
        return list(self.school_documents.get(school_id, []))

    def students_in_class(self, class_id):
        return list(self.class_students.get(class_id, []))

    def school_of_class(self, class_id):
        for school_id, class_ids in self.school_classes.items():
            if class_id in class_ids:
                return school_id
        return None

    def resource_attributes(self, resource_type, resource_id):
        return self.records.get((resource_type, resource_id))


class RecordingAuditSink:
    """Audit sink that keeps every event in a list."""

    def __init__(self):
        self.events: List[Tuple[int, str, str]] = []

    def record(self, user_id, action, details=""):
        self.events.append((user_id, action, details))

    @property
    def actions(self) -> List[str]:
        return [action for _, action, _ in self.events]


class SpyScopeResolver(ScopeResolver):
    """ScopeResolver counting how often it is consulted."""

    def __init__(self, derivation):
        super().__init__(derivation)
        self.calls = 0

    def resolve_scope(self, principal, query):
        self.calls += 1
        return super().resolve_scope(principal, query)


def make_principal(user_id, role, school_id=None, class_id=None, grants=(), primary_role=None, primary_school_id=None):
    """Build a Principal directly, active in the given role."""
    return Principal(
        user_id=user_id,
        primary_role=primary_role or role,
        primary_school_id=primary_school_id if primary_school_id is not None else school_id,
        grants=tuple(grants),
        active_role=role,
        active_school_id=school_id,
        active_class_id=class_id,
    )


def grant(grant_id, user_id, role, school_id=None, class_id=None) -> RoleGrant:
    return RoleGrant(id=grant_id, user_id=user_id, role=UserRole(role), school_id=school_id, class_id=class_id)
