"""
Role grant administration for the School Access system.

Malformed grants are rejected here, at creation time, so scope resolution
never has to cope with them.
"""
import logging
from typing import Optional

from database.models import UserRole
from .authorization import AccessDecision
from .catalog import OPTIONAL_SCHOOL_ROLES, requires_scope
from .exceptions import InvalidUserError, OutOfScope, RoleNotPermitted, ValidationError
from .models import (
    Action,
    Principal,
    ResourceQuery,
    ResourceType,
    RoleGrant,
    ScopeRequirement,
    Verb,
    parse_role,
)
from .ports import AuditSink, DerivationSource, GrantStore

logger = logging.getLogger(__name__)


def validate_grant(role, school_id: Optional[int], class_id: Optional[int]) -> UserRole:
    """
    Check a (role, school, class) tuple against the catalog's scope rules.

    Returns:
        The parsed role

    Raises:
        ValidationError: If the role is unknown or its bindings are wrong
    """
    parsed = parse_role(role)
    if parsed is None:
        raise ValidationError(f"Unknown role '{role}'", field="role")

    requirement = requires_scope(parsed)
    if requirement == ScopeRequirement.SCHOOL_CLASS:
        if school_id is None:
            raise ValidationError(f"School ID is required for {parsed.value} role", field="school_id")
        if class_id is None:
            raise ValidationError(f"Class ID is required for {parsed.value} role", field="class_id")
    elif requirement == ScopeRequirement.SCHOOL:
        if school_id is None:
            raise ValidationError(f"School ID is required for {parsed.value} role", field="school_id")
        if class_id is not None:
            raise ValidationError(f"{parsed.value} role cannot be bound to a class", field="class_id")
    else:
        if class_id is not None:
            raise ValidationError(f"{parsed.value} role cannot be bound to a class", field="class_id")
        if school_id is not None and parsed not in OPTIONAL_SCHOOL_ROLES:
            raise ValidationError(f"{parsed.value} role cannot be bound to a school", field="school_id")
    return parsed


class GrantService:
    """Adds and removes role grants on behalf of an administrator principal."""

    def __init__(
        self,
        store: GrantStore,
        derivation: DerivationSource,
        access: AccessDecision,
        audit: AuditSink,
    ):
        self.store = store
        self.derivation = derivation
        self.access = access
        self.audit = audit

    def add_grant(
        self,
        actor: Principal,
        user_id: int,
        role,
        school_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> RoleGrant:
        """
        Grant a role to a user. Granting an identical tuple twice is a no-op.

        Raises:
            ValidationError: If the grant is malformed
            InvalidUserError: If the user does not exist
            RoleNotPermitted: If the actor may not manage grants or this role
            OutOfScope: If the user or school lies outside the actor's scope
        """
        parsed = validate_grant(role, school_id, class_id)

        if class_id is not None:
            owner = self.derivation.school_of_class(class_id)
            if owner is None:
                raise ValidationError(f"Class {class_id} not found", field="class_id")
            if owner != school_id:
                raise ValidationError("Class does not belong to the selected school", field="class_id")

        if self.store.get_user(user_id) is None:
            raise InvalidUserError(user_id)

        action = Action(ResourceType.ROLE_GRANTS, Verb.CREATE)
        self.access.authorize(actor, action, ResourceQuery(ResourceType.ROLE_GRANTS, user_id=user_id))

        if parsed == UserRole.SUPER_ADMIN and actor.active_role != UserRole.SUPER_ADMIN:
            raise RoleNotPermitted(actor.user_id, actor.active_role.value, "grant_super_admin")
        if actor.active_role != UserRole.SUPER_ADMIN and school_id is not None and school_id != actor.active_school_id:
            raise OutOfScope(actor.user_id, ResourceType.SCHOOLS.value, school_id)

        for existing in self.store.get_grants(user_id):
            if existing.same_scope(parsed, school_id, class_id):
                return existing

        grant = self.store.add_grant(user_id, parsed, school_id, class_id)
        logger.info("User %s granted %s to user %s", actor.user_id, parsed.value, user_id)

        details = f"Added role {parsed.value} to user {user_id}"
        if school_id is not None:
            details += f" for school {school_id}"
        if class_id is not None:
            details += f" and class {class_id}"
        self.audit.record(actor.user_id, "user_role_added", details)
        return grant

    def remove_grant(self, actor: Principal, grant_id: int) -> RoleGrant:
        """
        Remove a grant. If it was the user's active role, the next resolve repairs it.

        Raises:
            OutOfScope: If the grant does not exist or lies outside the actor's scope
            RoleNotPermitted: If the actor may not manage grants
        """
        grant = self.store.get_grant(grant_id)
        action = Action(ResourceType.ROLE_GRANTS, Verb.DELETE)
        if grant is None:
            # Same shape as an out-of-scope grant
            self.access.authorize(actor, action, ResourceQuery(ResourceType.ROLE_GRANTS))
            raise OutOfScope(actor.user_id, ResourceType.ROLE_GRANTS.value, grant_id)

        self.access.authorize(actor, action, ResourceQuery.single(ResourceType.ROLE_GRANTS, grant_id))

        self.store.remove_grant(grant_id)
        logger.info("User %s removed grant #%s from user %s", actor.user_id, grant_id, grant.user_id)
        self.audit.record(
            actor.user_id,
            "user_role_removed",
            f"Removed role {grant.role.value} from user {grant.user_id}",
        )
        return grant
