"""
Collaborator ports consumed by the access-control core.

Keep these small and storage-agnostic so tests can supply simple fakes.
The SQLAlchemy implementations live in access.stores.
"""
from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Protocol

from database.models import UserRole
from .models import AuditEntry, ResourceType, RoleGrant, UserRecord


class GrantStore(Protocol):
    """Read/write access to users' role grants and their active role.

    Atomicity:
        update_active_role must persist the new active role and the audit
        entry in a single write; either both are visible or neither is.
    """

    def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    def get_grants(self, user_id: int) -> List[RoleGrant]: ...

    def get_grant(self, grant_id: int) -> Optional[RoleGrant]: ...

    def add_grant(
        self,
        user_id: int,
        role: UserRole,
        school_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> RoleGrant: ...

    def remove_grant(self, grant_id: int) -> None: ...

    def update_active_role(
        self,
        user_id: int,
        role: UserRole,
        school_id: Optional[int],
        class_id: Optional[int],
        audit: AuditEntry,
    ) -> None: ...


class DerivationSource(Protocol):
    """Lookups for scope sets that are derived from link rows, not stored as grants."""

    def classes_taught_by(self, teacher_id: int) -> Iterable[int]: ...

    def subjects_taught_by(self, teacher_id: int) -> Iterable[int]: ...

    def classes_of_student(self, student_id: int) -> Iterable[int]: ...

    def children_of_parent(self, parent_id: int) -> Iterable[int]: ...

    def classes_in_school(self, school_id: int) -> Iterable[int]: ...

    def subjects_in_school(self, school_id: int) -> Iterable[int]: ...

    def users_in_school(self, school_id: int) -> Iterable[int]: ...

    def documents_in_school(self, school_id: int) -> Iterable[int]: ...

    def students_in_class(self, class_id: int) -> Iterable[int]: ...

    def school_of_class(self, class_id: int) -> Optional[int]: ...

    def resource_attributes(
        self, resource_type: ResourceType, resource_id: int
    ) -> Optional[Mapping[str, Optional[int]]]:
        """Return the scoping columns of one record, or None if it does not exist."""
        ...


class AuditSink(Protocol):
    """Fire-and-forget audit recorder."""

    def record(self, user_id: int, action: str, details: str = "") -> None: ...


__all__ = ["GrantStore", "DerivationSource", "AuditSink"]
