"""
Scope resolution for the School Access system.

Translates a Principal's active role into the set of ids it may see for a
resource type. Derived sets (a teacher's classes, a parent's children) are
collected from link rows, mapped to ids and deduplicated. Missing data always
resolves to an empty scope, never to an unrestricted one.
"""
import logging
from typing import Callable, Dict, Iterable, Set, Tuple

from database.models import UserRole
from .catalog import RESOURCE_FIELDS
from .exceptions import ValidationError
from .models import Principal, ResourceQuery, ResourceType, ScopeDecision, Visibility
from .ports import DerivationSource

logger = logging.getLogger(__name__)

# Resources whose rows hang off a class
CLASS_BOUND = frozenset([
    ResourceType.SCHEDULES,
    ResourceType.HOMEWORK,
    ResourceType.GRADES,
    ResourceType.ATTENDANCE,
])

# Class-bound resources that are personal to a student
PER_STUDENT = frozenset([ResourceType.GRADES, ResourceType.ATTENDANCE])


def _collect(source_ids: Iterable[int], lookup: Callable[[int], Iterable[int]]) -> Set[int]:
    """Union of lookup(id) over source ids."""
    found = set()
    for source_id in source_ids:
        found.update(lookup(source_id))
    return found


class ScopeResolver:
    """
    Computes visibility predicates per (principal, resource type).
    Performs lookups through the derivation source only; never writes.
    """

    def __init__(self, derivation: DerivationSource):
        self.derivation = derivation
        self._rules: Dict[UserRole, Callable[[Principal, ResourceType], ScopeDecision]] = {
            UserRole.SUPER_ADMIN: self._super_admin,
            UserRole.SCHOOL_ADMIN: self._school_level,
            UserRole.PRINCIPAL: self._school_level,
            UserRole.VICE_PRINCIPAL: self._school_level,
            UserRole.CLASS_TEACHER: self._class_teacher,
            UserRole.TEACHER: self._teacher,
            UserRole.STUDENT: self._student,
            UserRole.PARENT: self._parent,
        }
        missing = set(UserRole) - set(self._rules)
        if missing:
            raise RuntimeError(f"No scope rule for roles: {sorted(r.value for r in missing)}")

    def resolve_scope(self, principal: Principal, query: ResourceQuery) -> ScopeDecision:
        """
        Compute the scope decision for a query.

        Query filters narrow the result; a filter outside the principal's
        scope yields an empty scope. A school filter on a resource without a
        school column narrows through the school's classes.

        Raises:
            ValidationError: If a filter names a column the resource cannot
                be narrowed on
        """
        rule = self._rules[principal.active_role]
        decision = rule(principal, query.resource_type)
        for name, value in query.filters().items():
            field_name, values = self._filter_values(query.resource_type, name, value)
            decision = decision.narrow(field_name, values)
        logger.debug(
            "Scope for user %s as %s on %s: field=%s visible=%s constraints=%s",
            principal.user_id,
            principal.active_role.value,
            query.resource_type.value,
            decision.scope_field,
            decision.visible_ids if isinstance(decision.visible_ids, Visibility) else sorted(decision.visible_ids),
            dict(decision.constraints),
        )
        return decision

    def _filter_values(self, resource: ResourceType, name: str, value: int) -> Tuple[str, Iterable[int]]:
        """Column and values a query filter narrows on."""
        if name in RESOURCE_FIELDS[resource]:
            return name, [value]
        if name == "school_id":
            if resource == ResourceType.SCHOOLS:
                return "id", [value]
            if resource in CLASS_BOUND:
                return "class_id", self.derivation.classes_in_school(value)
        raise ValidationError(f"Cannot filter {resource.value} by {name}", field=name)

    # ---- per-role rules ----

    def _super_admin(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        return ScopeDecision.everything(_scope_field(resource))

    def _school_level(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        school_id = principal.active_school_id
        field_name = _scope_field(resource)
        if school_id is None:
            return ScopeDecision.nothing(field_name)
        if resource == ResourceType.SCHOOLS:
            return ScopeDecision.of("id", [school_id])
        if resource == ResourceType.CLASSES:
            return ScopeDecision.of("id", self.derivation.classes_in_school(school_id))
        if resource == ResourceType.SUBJECTS:
            return ScopeDecision.of("id", self.derivation.subjects_in_school(school_id))
        if resource in CLASS_BOUND:
            return ScopeDecision.of("class_id", self.derivation.classes_in_school(school_id))
        if resource == ResourceType.DOCUMENTS:
            return ScopeDecision.of("id", self.derivation.documents_in_school(school_id))
        if resource == ResourceType.USERS:
            return ScopeDecision.of("id", self.derivation.users_in_school(school_id))
        if resource == ResourceType.ROLE_GRANTS:
            return ScopeDecision.of("user_id", self.derivation.users_in_school(school_id))
        return ScopeDecision.nothing(field_name)

    def _class_teacher(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        class_id = principal.active_class_id
        field_name = _scope_field(resource)
        if class_id is None:
            return ScopeDecision.nothing(field_name)
        if resource == ResourceType.CLASSES:
            return ScopeDecision.of("id", [class_id])
        if resource in CLASS_BOUND:
            return ScopeDecision.of("class_id", [class_id])
        if resource == ResourceType.USERS:
            return ScopeDecision.of("id", self.derivation.students_in_class(class_id))
        return ScopeDecision.nothing(field_name)

    def _teacher(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        me = principal.user_id
        if resource == ResourceType.CLASSES:
            return ScopeDecision.of("id", self.derivation.classes_taught_by(me))
        if resource == ResourceType.SUBJECTS:
            return ScopeDecision.of("id", self.derivation.subjects_taught_by(me))
        if resource in CLASS_BOUND:
            classes = self.derivation.classes_taught_by(me)
            if "teacher_id" in RESOURCE_FIELDS[resource]:
                return ScopeDecision.of("class_id", classes, teacher_id=[me])
            return ScopeDecision.of("class_id", classes)
        return ScopeDecision.nothing(_scope_field(resource))

    def _student(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        me = principal.user_id
        if resource == ResourceType.CLASSES:
            return ScopeDecision.of("id", self.derivation.classes_of_student(me))
        if resource in PER_STUDENT:
            return ScopeDecision.of("class_id", self.derivation.classes_of_student(me), student_id=[me])
        if resource in CLASS_BOUND:
            return ScopeDecision.of("class_id", self.derivation.classes_of_student(me))
        if resource == ResourceType.USERS:
            return ScopeDecision.of("id", [me])
        return ScopeDecision.nothing(_scope_field(resource))

    def _parent(self, principal: Principal, resource: ResourceType) -> ScopeDecision:
        me = principal.user_id
        children = set(self.derivation.children_of_parent(me))
        if resource == ResourceType.USERS:
            return ScopeDecision.of("id", {me} | children)
        classes = _collect(children, self.derivation.classes_of_student)
        if resource == ResourceType.CLASSES:
            return ScopeDecision.of("id", classes)
        if resource in PER_STUDENT:
            return ScopeDecision.of("class_id", classes, student_id=children)
        if resource in CLASS_BOUND:
            return ScopeDecision.of("class_id", classes)
        return ScopeDecision.nothing(_scope_field(resource))


def _scope_field(resource: ResourceType) -> str:
    if resource in CLASS_BOUND:
        return "class_id"
    if resource == ResourceType.ROLE_GRANTS:
        return "user_id"
    return "id"


__all__ = ["ScopeResolver"]
