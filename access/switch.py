"""
Active role switching for the School Access system.

A switch either fully succeeds (new Principal, persisted role, audit row) or
fully fails with RoleNotGranted and leaves everything untouched.
"""
import logging
from typing import Optional

from .exceptions import RoleNotGranted
from .models import AuditEntry, Principal, parse_role
from .ports import GrantStore
from .principal import primary_scope

logger = logging.getLogger(__name__)


class ActiveRoleSwitch:
    """Validates role switches against the principal's grants and persists them."""

    def __init__(self, store: GrantStore):
        self.store = store

    def switch_to(
        self,
        principal: Principal,
        role,
        school_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> Principal:
        """
        Switch the active role to (role, school_id, class_id).

        The primary role is tried first, then grants in insertion order. A
        class-bound primary role switches to the class of its grant.
        Bindings the request omits or the grant does not carry are ignored.

        Returns:
            A new Principal carrying the scope of the matched grant

        Raises:
            RoleNotGranted: If the user holds no matching role
        """
        target = parse_role(role)
        if target is None:
            raise RoleNotGranted(principal.user_id, str(role), school_id, class_id)

        default = primary_scope(principal.primary_role, principal.primary_school_id, principal.grants)
        if (
            default is not None
            and target == default[0]
            and class_id in (None, default[2])
            and school_id in (None, default[1])
        ):
            return self._apply(principal, *default)

        for grant in principal.grants:
            if grant.matches(target, school_id, class_id):
                return self._apply(principal, grant.role, grant.school_id, grant.class_id, grant_id=grant.id)

        logger.info("User %s asked for role %s it does not hold", principal.user_id, target.value)
        raise RoleNotGranted(principal.user_id, target.value, school_id, class_id)

    def switch_to_grant(self, principal: Principal, grant_id: Optional[int]) -> Principal:
        """
        Switch by grant id. None selects the primary role.

        Raises:
            RoleNotGranted: If the grant does not belong to the principal
        """
        if grant_id is None:
            default = primary_scope(principal.primary_role, principal.primary_school_id, principal.grants)
            if default is None:
                raise RoleNotGranted(principal.user_id, "primary")
            return self._apply(principal, *default)

        for grant in principal.grants:
            if grant.id == grant_id:
                return self._apply(principal, grant.role, grant.school_id, grant.class_id, grant_id=grant.id)

        raise RoleNotGranted(principal.user_id, f"grant #{grant_id}")

    def _apply(self, principal, role, school_id, class_id, grant_id=None) -> Principal:
        details = f"User switched to role: {role.value}"
        if school_id is not None:
            details += f" (school {school_id}"
            details += f", class {class_id})" if class_id is not None else ")"
        if grant_id is not None:
            details += f" via grant #{grant_id}"

        self.store.update_active_role(
            principal.user_id,
            role,
            school_id,
            class_id,
            audit=AuditEntry(user_id=principal.user_id, action="role_switched", details=details),
        )
        logger.info("User %s switched to %s (school=%s, class=%s)", principal.user_id, role.value, school_id, class_id)
        return principal.with_active(role, school_id, class_id)
