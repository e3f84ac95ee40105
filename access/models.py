"""
Value types shared by the access-control core.

Everything here is immutable: a Principal or a ScopeDecision is computed for
one request and handed back to the caller, never mutated in place.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from database.models import UserRole


class ResourceType(str, Enum):
    """Resource types whose visibility the core decides."""
    SCHOOLS = "schools"
    CLASSES = "classes"
    SUBJECTS = "subjects"
    SCHEDULES = "schedules"
    HOMEWORK = "homework"
    GRADES = "grades"
    ATTENDANCE = "attendance"
    DOCUMENTS = "documents"
    USERS = "users"
    ROLE_GRANTS = "role_grants"


class Verb(str, Enum):
    """What a request wants to do with a resource."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ScopeRequirement(str, Enum):
    """Which bindings a grant of a given role must carry."""
    NONE = "none"
    SCHOOL = "school"
    SCHOOL_CLASS = "school+class"


class Visibility(str, Enum):
    """Unbounded visibility markers; bounded visibility is a frozenset of ids."""
    ALL = "all"
    NONE = "none"


class DecisionReason(str, Enum):
    GRANTED = "granted"
    ROLE_NOT_PERMITTED = "RoleNotPermitted"
    OUT_OF_SCOPE = "OutOfScope"


VisibleIds = Union[Visibility, FrozenSet[int]]


def parse_role(value) -> Optional[UserRole]:
    """Return the UserRole for a stored role string, or None if it is not a known role."""
    if value is None:
        return None
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class Action:
    resource_type: ResourceType
    verb: Verb = Verb.READ

    def __str__(self):
        return f"{self.verb.value}_{self.resource_type.value}"


@dataclass(frozen=True)
class RoleGrant:
    """One persisted capability a user may assume."""
    id: int
    user_id: int
    role: UserRole
    school_id: Optional[int] = None
    class_id: Optional[int] = None

    def matches(self, role: UserRole, school_id: Optional[int] = None, class_id: Optional[int] = None) -> bool:
        """
        Check whether this grant satisfies a requested (role, school, class).

        A binding the grant does not carry, or the request does not specify,
        is treated as "don't care".
        """
        if self.role != role:
            return False
        if school_id is not None and self.school_id is not None and self.school_id != school_id:
            return False
        if class_id is not None and self.class_id is not None and self.class_id != class_id:
            return False
        return True

    def same_scope(self, role: UserRole, school_id: Optional[int], class_id: Optional[int]) -> bool:
        return (self.role, self.school_id, self.class_id) == (role, school_id, class_id)


@dataclass(frozen=True)
class UserRecord:
    """The slice of a user row the core needs, as supplied by the grant store."""
    user_id: int
    role: Optional[str]
    school_id: Optional[int] = None
    active_role: Optional[str] = None
    active_school_id: Optional[int] = None
    active_class_id: Optional[int] = None


@dataclass(frozen=True)
class AuditEntry:
    user_id: int
    action: str
    details: str = ""


@dataclass(frozen=True)
class Principal:
    """
    Request-scoped view of an authenticated user.

    Invariant: active_role is the primary role or the role of one of the grants.
    """
    user_id: int
    primary_role: Optional[UserRole]
    primary_school_id: Optional[int]
    grants: Tuple[RoleGrant, ...]
    active_role: UserRole
    active_school_id: Optional[int] = None
    active_class_id: Optional[int] = None

    @property
    def available_roles(self) -> FrozenSet[UserRole]:
        roles = {grant.role for grant in self.grants}
        if self.primary_role is not None:
            roles.add(self.primary_role)
        return frozenset(roles)

    def with_active(self, role: UserRole, school_id: Optional[int], class_id: Optional[int]) -> "Principal":
        return replace(self, active_role=role, active_school_id=school_id, active_class_id=class_id)


@dataclass(frozen=True)
class RoleOption:
    """An entry of the role picker shown to the user."""
    grant_id: Optional[int]
    role: UserRole
    school_id: Optional[int]
    class_id: Optional[int]
    is_default: bool = False
    is_active: bool = False


@dataclass(frozen=True)
class ResourceQuery:
    """
    Description of what a request wants to see or touch.

    requested_ids holds record ids for single-resource requests; the remaining
    fields are filters (for reads) or target attributes (for creates).
    """
    resource_type: ResourceType
    requested_ids: FrozenSet[int] = frozenset()
    school_id: Optional[int] = None
    class_id: Optional[int] = None
    subject_id: Optional[int] = None
    student_id: Optional[int] = None
    teacher_id: Optional[int] = None
    user_id: Optional[int] = None

    @classmethod
    def single(cls, resource_type: ResourceType, resource_id: int, **filters) -> "ResourceQuery":
        return cls(resource_type, requested_ids=frozenset([resource_id]), **filters)

    def filters(self) -> dict:
        names = ("school_id", "class_id", "subject_id", "student_id", "teacher_id", "user_id")
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}

    @property
    def is_single(self) -> bool:
        return len(self.requested_ids) == 1


def to_visible(ids: Iterable[int]) -> VisibleIds:
    """Deduplicate ids; an empty collection is NONE, never ALL."""
    found = frozenset(i for i in ids if i is not None)
    return found if found else Visibility.NONE


@dataclass(frozen=True)
class ScopeDecision:
    """
    Outcome of an access decision.

    visible_ids applies to scope_field (a column of the resource); every entry
    of constraints must hold as well.
    """
    allowed: bool
    visible_ids: VisibleIds
    reason: DecisionReason = DecisionReason.GRANTED
    scope_field: str = "id"
    constraints: Mapping[str, FrozenSet[int]] = field(default_factory=dict)

    @classmethod
    def deny(cls, reason: DecisionReason, scope_field: str = "id") -> "ScopeDecision":
        return cls(allowed=False, visible_ids=Visibility.NONE, reason=reason, scope_field=scope_field)

    @classmethod
    def everything(cls, scope_field: str = "id") -> "ScopeDecision":
        return cls(allowed=True, visible_ids=Visibility.ALL, scope_field=scope_field)

    @classmethod
    def nothing(cls, scope_field: str = "id") -> "ScopeDecision":
        return cls(allowed=True, visible_ids=Visibility.NONE, scope_field=scope_field)

    @classmethod
    def of(cls, scope_field: str, ids: Iterable[int], **constraints: Iterable[int]) -> "ScopeDecision":
        decision = cls(allowed=True, visible_ids=to_visible(ids), scope_field=scope_field)
        for name, values in constraints.items():
            decision = decision.narrow(name, values)
        return decision

    @property
    def is_unrestricted(self) -> bool:
        return self.visible_ids is Visibility.ALL and not self.constraints

    @property
    def is_empty(self) -> bool:
        return self.visible_ids is Visibility.NONE

    def narrow(self, field_name: str, values: Iterable[int]) -> "ScopeDecision":
        """Intersect the decision with an extra condition on one column."""
        values = frozenset(values)
        if self.is_empty:
            return self
        if field_name == self.scope_field:
            if self.visible_ids is Visibility.ALL:
                visible = to_visible(values)
            else:
                visible = to_visible(self.visible_ids & values)
            return replace(self, visible_ids=visible)
        constraints = dict(self.constraints)
        current = constraints.get(field_name)
        constraints[field_name] = values if current is None else current & values
        if not constraints[field_name]:
            return replace(self, visible_ids=Visibility.NONE, constraints=constraints)
        return replace(self, constraints=constraints)

    def admits(self, attributes: Mapping[str, Optional[int]]) -> bool:
        """Check a single record's attributes against the decision."""
        if not self.allowed or self.is_empty:
            return False
        if self.visible_ids is not Visibility.ALL:
            if attributes.get(self.scope_field) not in self.visible_ids:
                return False
        for name, values in self.constraints.items():
            if attributes.get(name) not in values:
                return False
        return True
