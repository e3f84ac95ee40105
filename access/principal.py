"""
Principal resolution for the School Access system.

Builds the request-scoped Principal from the stored user row and grant list,
and repairs a stored active role that no longer matches anything the user holds.
"""
import logging
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from database.models import UserRole
from .catalog import requires_scope
from .exceptions import NoRoleAvailable
from .models import AuditEntry, Principal, RoleGrant, RoleOption, ScopeRequirement, UserRecord, parse_role
from .ports import GrantStore

logger = logging.getLogger(__name__)

# (role, school_id, class_id)
ActiveScope = Tuple[UserRole, Optional[int], Optional[int]]


def primary_scope(
    primary: Optional[UserRole], school_id: Optional[int], grants: Sequence[RoleGrant]
) -> Optional[ActiveScope]:
    """
    Scope the primary role is active in.

    A class-bound primary role takes its class from the first grant of the
    same role, preferring one in the user's own school. Without such a grant
    the primary role has no usable scope and None is returned.
    """
    if primary is None:
        return None
    if requires_scope(primary) != ScopeRequirement.SCHOOL_CLASS:
        return primary, school_id, None
    bound = [g for g in grants if g.role == primary and g.school_id is not None and g.class_id is not None]
    chosen = next((g for g in bound if g.school_id == school_id), bound[0] if bound else None)
    if chosen is None:
        return None
    return chosen.role, chosen.school_id, chosen.class_id


def _candidates(user: UserRecord, primary: Optional[UserRole], grants: Sequence[RoleGrant]) -> List[ActiveScope]:
    """Every scope the user may be active in: primary role first, then grants in insertion order."""
    candidates = []
    default = primary_scope(primary, user.school_id, grants)
    if default is not None:
        candidates.append(default)
    for grant in grants:
        candidates.append((grant.role, grant.school_id, grant.class_id))
    return candidates


def select_active(user: UserRecord, primary: Optional[UserRole], grants: Sequence[RoleGrant]) -> ActiveScope:
    """
    Pick the active (role, school, class) for a user.

    The stored active role is kept when it still matches a candidate, exactly
    or with its empty bindings treated as wildcards. Otherwise the primary
    role wins, and if that is gone too, the first grant.

    Raises:
        NoRoleAvailable: If no role the user holds has a usable scope
    """
    candidates = _candidates(user, primary, grants)
    if not candidates:
        raise NoRoleAvailable(user.user_id)
    stored_role = parse_role(user.active_role)
    if stored_role is not None:
        stored = (stored_role, user.active_school_id, user.active_class_id)
        if stored in candidates:
            return stored
        for role, school_id, class_id in candidates:
            if role != stored_role:
                continue
            if user.active_school_id is not None and user.active_school_id != school_id:
                continue
            if user.active_class_id is not None and user.active_class_id != class_id:
                continue
            return role, school_id, class_id
    return candidates[0]


def _needs_write(
    user: UserRecord, primary: Optional[UserRole], grants: Sequence[RoleGrant], chosen: ActiveScope
) -> bool:
    stored = (parse_role(user.active_role), user.active_school_id, user.active_class_id)
    if user.active_role is None and chosen == primary_scope(primary, user.school_id, grants):
        # Nothing stored yet; the primary role is the implicit default.
        return False
    return stored != chosen


class PrincipalResolver:
    """
    Resolves user ids into Principals.
    All role information comes from the grant store, never from the client.
    """

    def __init__(self, store: GrantStore):
        self.store = store

    def list_grants(self, user_id: int) -> List[RoleGrant]:
        """Read-only grant projection, in insertion order."""
        return list(self.store.get_grants(user_id))

    def resolve(self, user_id: int) -> Principal:
        """
        Build the Principal for a user, repairing a stale active role.

        Raises:
            NoRoleAvailable: If the user is unknown, or holds no role with a
                usable scope
        """
        user = self.store.get_user(user_id)
        if user is None:
            raise NoRoleAvailable(user_id)

        grants = tuple(self.store.get_grants(user_id))
        primary = parse_role(user.role)
        if primary is None and not grants:
            raise NoRoleAvailable(user_id)

        role, school_id, class_id = select_active(user, primary, grants)

        if _needs_write(user, primary, grants, (role, school_id, class_id)):
            logger.info(
                "Repairing active role of user %s: %s -> %s (school=%s, class=%s)",
                user_id, user.active_role, role.value, school_id, class_id,
            )
            self.store.update_active_role(
                user_id,
                role,
                school_id,
                class_id,
                audit=AuditEntry(
                    user_id=user_id,
                    action="active_role_repaired",
                    details=f"Active role {user.active_role or 'unset'} replaced by {role.value}",
                ),
            )

        return Principal(
            user_id=user_id,
            primary_role=primary,
            primary_school_id=user.school_id,
            grants=grants,
            active_role=role,
            active_school_id=school_id,
            active_class_id=class_id,
        )


def list_role_options(principal: Principal) -> List[RoleOption]:
    """
    Role picker entries for a principal.

    The primary role is listed as a virtual default entry unless a grant
    already covers it. A class-bound primary role is always covered by the
    grant carrying its class. Exactly one entry is marked active.
    """
    options = []
    primary = principal.primary_role
    if primary is not None and requires_scope(primary) != ScopeRequirement.SCHOOL_CLASS and not any(
        g.role == primary and g.school_id == principal.primary_school_id for g in principal.grants
    ):
        options.append(RoleOption(
            grant_id=None,
            role=primary,
            school_id=principal.primary_school_id,
            class_id=None,
            is_default=True,
        ))
    for grant in principal.grants:
        options.append(RoleOption(
            grant_id=grant.id,
            role=grant.role,
            school_id=grant.school_id,
            class_id=grant.class_id,
        ))

    active = (principal.active_role, principal.active_school_id, principal.active_class_id)
    index = next(
        (i for i, o in enumerate(options) if (o.role, o.school_id, o.class_id) == active),
        None,
    )
    if index is None:
        index = next((i for i, o in enumerate(options) if o.role == principal.active_role), 0)
    if options:
        options[index] = replace(options[index], is_active=True)
    return options
