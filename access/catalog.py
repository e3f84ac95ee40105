"""
Role catalog for the School Access system.

All role-specific permission rules live here as data. Other modules ask the
catalog instead of comparing role strings themselves.
"""
from typing import Dict, FrozenSet

from database.models import UserRole
from .models import ResourceType, ScopeRequirement, Verb


R = Verb.READ
C = Verb.CREATE
U = Verb.UPDATE
D = Verb.DELETE
ALL_VERBS = frozenset(Verb)
READ_ONLY = frozenset([R])

SCHOOL_LEVEL_ROLES = frozenset([
    UserRole.SCHOOL_ADMIN,
    UserRole.PRINCIPAL,
    UserRole.VICE_PRINCIPAL,
])


ROLE_SCOPE: Dict[UserRole, ScopeRequirement] = {
    UserRole.SUPER_ADMIN: ScopeRequirement.NONE,
    UserRole.SCHOOL_ADMIN: ScopeRequirement.SCHOOL,
    UserRole.PRINCIPAL: ScopeRequirement.SCHOOL,
    UserRole.VICE_PRINCIPAL: ScopeRequirement.SCHOOL,
    UserRole.TEACHER: ScopeRequirement.NONE,
    UserRole.CLASS_TEACHER: ScopeRequirement.SCHOOL_CLASS,
    UserRole.STUDENT: ScopeRequirement.NONE,
    UserRole.PARENT: ScopeRequirement.NONE,
}

# Roles that may carry a school binding without requiring one
OPTIONAL_SCHOOL_ROLES = frozenset([UserRole.TEACHER, UserRole.STUDENT, UserRole.PARENT])


PERMISSIONS: Dict[UserRole, Dict[ResourceType, FrozenSet[Verb]]] = {
    UserRole.SUPER_ADMIN: {resource: ALL_VERBS for resource in ResourceType},
    UserRole.SCHOOL_ADMIN: {
        ResourceType.SCHOOLS: READ_ONLY,
        ResourceType.CLASSES: ALL_VERBS,
        ResourceType.SUBJECTS: ALL_VERBS,
        ResourceType.SCHEDULES: ALL_VERBS,
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: frozenset([R, C]),
        ResourceType.DOCUMENTS: ALL_VERBS,
        ResourceType.USERS: ALL_VERBS,
        ResourceType.ROLE_GRANTS: frozenset([R, C, D]),
    },
    UserRole.PRINCIPAL: {
        ResourceType.SCHOOLS: READ_ONLY,
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SUBJECTS: READ_ONLY,
        ResourceType.SCHEDULES: frozenset([R, U]),
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: READ_ONLY,
        ResourceType.DOCUMENTS: frozenset([R, C]),
        ResourceType.USERS: READ_ONLY,
        ResourceType.ROLE_GRANTS: READ_ONLY,
    },
    UserRole.VICE_PRINCIPAL: {
        ResourceType.SCHOOLS: READ_ONLY,
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SUBJECTS: READ_ONLY,
        ResourceType.SCHEDULES: frozenset([R, U]),
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: READ_ONLY,
        ResourceType.DOCUMENTS: frozenset([R, C]),
        ResourceType.USERS: READ_ONLY,
        ResourceType.ROLE_GRANTS: READ_ONLY,
    },
    UserRole.CLASS_TEACHER: {
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SCHEDULES: READ_ONLY,
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: frozenset([R, C]),
        ResourceType.USERS: READ_ONLY,
    },
    UserRole.TEACHER: {
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SUBJECTS: READ_ONLY,
        ResourceType.SCHEDULES: frozenset([R, U]),
        ResourceType.HOMEWORK: ALL_VERBS,
        ResourceType.GRADES: ALL_VERBS,
        ResourceType.ATTENDANCE: frozenset([R, C]),
    },
    UserRole.STUDENT: {
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SCHEDULES: READ_ONLY,
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: READ_ONLY,
        ResourceType.USERS: READ_ONLY,
    },
    UserRole.PARENT: {
        ResourceType.CLASSES: READ_ONLY,
        ResourceType.SCHEDULES: READ_ONLY,
        ResourceType.HOMEWORK: READ_ONLY,
        ResourceType.GRADES: READ_ONLY,
        ResourceType.ATTENDANCE: READ_ONLY,
        ResourceType.USERS: READ_ONLY,
    },
}


# Columns each resource exposes for scoping and filtering
RESOURCE_FIELDS: Dict[ResourceType, FrozenSet[str]] = {
    ResourceType.SCHOOLS: frozenset(["id"]),
    ResourceType.CLASSES: frozenset(["id", "school_id"]),
    ResourceType.SUBJECTS: frozenset(["id", "school_id"]),
    ResourceType.SCHEDULES: frozenset(["id", "class_id", "subject_id", "teacher_id"]),
    ResourceType.HOMEWORK: frozenset(["id", "class_id", "subject_id", "teacher_id"]),
    ResourceType.GRADES: frozenset(["id", "class_id", "subject_id", "teacher_id", "student_id"]),
    ResourceType.ATTENDANCE: frozenset(["id", "class_id", "student_id"]),
    ResourceType.DOCUMENTS: frozenset(["id", "school_id", "class_id", "subject_id"]),
    ResourceType.USERS: frozenset(["id", "school_id"]),
    ResourceType.ROLE_GRANTS: frozenset(["id", "user_id", "school_id"]),
}


def requires_scope(role: UserRole) -> ScopeRequirement:
    """Return which bindings a grant of this role must carry."""
    return ROLE_SCOPE[role]


def permitted_actions(role: UserRole, resource_type: ResourceType) -> FrozenSet[Verb]:
    """Return the verbs a role may perform on a resource type (possibly empty)."""
    return PERMISSIONS[role].get(resource_type, frozenset())


def is_permitted(role: UserRole, resource_type: ResourceType, verb: Verb) -> bool:
    return verb in permitted_actions(role, resource_type)


def check_catalog() -> None:
    """
    Verify the tables cover every role and resource.

    Called at import so a role added to UserRole without catalog entries
    fails at startup rather than falling through at request time.
    """
    missing_scope = set(UserRole) - set(ROLE_SCOPE)
    missing_perms = set(UserRole) - set(PERMISSIONS)
    missing_fields = set(ResourceType) - set(RESOURCE_FIELDS)
    if missing_scope or missing_perms or missing_fields:
        raise RuntimeError(
            "Role catalog is incomplete: "
            f"scope={sorted(r.value for r in missing_scope)}, "
            f"permissions={sorted(r.value for r in missing_perms)}, "
            f"fields={sorted(r.value for r in missing_fields)}"
        )


check_catalog()
