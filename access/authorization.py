"""
Authorization module for the School Access system.
Composes the role catalog and the scope resolver into one access decision.

CRITICAL RULES:
1. Never trust the client for role - the Principal is resolved from the store
2. A forbidden action is rejected before any scope lookup happens
3. A single resource outside scope looks exactly like a missing one
4. A collection outside scope is empty, not an error
"""
import logging
from typing import Mapping, Optional

from .catalog import permitted_actions
from .exceptions import OutOfScope, RoleNotPermitted, ValidationError
from .models import (
    Action,
    DecisionReason,
    Principal,
    ResourceQuery,
    ResourceType,
    ScopeDecision,
    Verb,
)
from .ports import DerivationSource
from .scope import ScopeResolver

logger = logging.getLogger(__name__)


class AccessDecision:
    """
    Service for handling authorization checks.
    Returns ScopeDecisions; never performs writes.
    """

    def __init__(self, scope_resolver: ScopeResolver, derivation: DerivationSource):
        self.scope_resolver = scope_resolver
        self.derivation = derivation

    def decide(self, principal: Principal, action: Action, query: ResourceQuery) -> ScopeDecision:
        """
        Decide whether a principal may perform an action, and on what.

        Args:
            principal: The resolved requesting principal
            action: Resource type and verb requested
            query: Requested ids and filters / target attributes

        Returns:
            ScopeDecision. allowed is False with reason RoleNotPermitted when
            the active role may not perform the action, or OutOfScope when a
            single requested record is not visible.
        """
        if query.resource_type != action.resource_type:
            raise ValidationError(
                f"Query for '{query.resource_type.value}' does not match action '{action}'",
                field="resource_type",
            )

        if action.verb not in permitted_actions(principal.active_role, action.resource_type):
            logger.warning(
                "Denied %s for user %s: role %s not permitted",
                action, principal.user_id, principal.active_role.value,
            )
            return ScopeDecision.deny(DecisionReason.ROLE_NOT_PERMITTED)

        decision = self.scope_resolver.resolve_scope(principal, query)

        if query.is_single:
            resource_id = next(iter(query.requested_ids))
            if not self._admits_record(decision, action.resource_type, resource_id):
                logger.warning(
                    "Denied %s #%s for user %s: out of scope",
                    action, resource_id, principal.user_id,
                )
                return ScopeDecision.deny(DecisionReason.OUT_OF_SCOPE, decision.scope_field)
            return decision

        if query.requested_ids:
            admitted = [
                resource_id for resource_id in query.requested_ids
                if self._admits_record(decision, action.resource_type, resource_id)
            ]
            return ScopeDecision.of("id", admitted)

        if action.verb == Verb.CREATE:
            target = self._complete_target(principal, decision, query.filters())
            if not self._admits_new(principal, decision, target):
                logger.warning(
                    "Denied %s for user %s: target %s out of scope",
                    action, principal.user_id, target,
                )
                return ScopeDecision.deny(DecisionReason.OUT_OF_SCOPE, decision.scope_field)

        return decision

    def authorize(self, principal: Principal, action: Action, query: ResourceQuery) -> ScopeDecision:
        """Like decide(), but raises on denial."""
        return enforce(self.decide(principal, action, query), principal, action, query)

    def _admits_record(self, decision: ScopeDecision, resource_type: ResourceType, resource_id: int) -> bool:
        if decision.is_unrestricted:
            return True
        attributes = self.derivation.resource_attributes(resource_type, resource_id)
        if attributes is None:
            return False
        return decision.admits(attributes)

    def _complete_target(
        self, principal: Principal, decision: ScopeDecision, attributes: Mapping[str, Optional[int]]
    ) -> dict:
        """
        Fill the owner columns a create may leave out.

        A constraint that pins a column to the principal itself (a teacher's
        own teacher_id) defaults to the principal's id. Any other constrained
        column must be given.

        Raises:
            ValidationError: If a constrained column is missing
        """
        target = dict(attributes)
        if decision.is_empty:
            return target
        for name, values in decision.constraints.items():
            if target.get(name) is not None:
                continue
            if values != frozenset([principal.user_id]):
                raise ValidationError(f"{name} is required", field=name)
            target[name] = principal.user_id
        return target

    def _admits_new(self, principal: Principal, decision: ScopeDecision, attributes: Mapping[str, Optional[int]]) -> bool:
        """
        Check the target of a create against the scope.

        Records that carry the decision's scope column are checked directly;
        otherwise the record is anchored on its class or school.
        """
        if decision.is_unrestricted:
            return True
        if decision.scope_field in attributes:
            return decision.admits(attributes)
        if attributes.get("class_id") is not None:
            classes = self.scope_resolver.resolve_scope(principal, ResourceQuery(ResourceType.CLASSES))
            return classes.admits({"id": attributes["class_id"]})
        if attributes.get("school_id") is not None:
            schools = self.scope_resolver.resolve_scope(principal, ResourceQuery(ResourceType.SCHOOLS))
            return schools.admits({"id": attributes["school_id"]})
        return False


def enforce(decision: ScopeDecision, principal: Principal, action: Action, query: ResourceQuery) -> ScopeDecision:
    """
    Raise the matching error for a denied decision.

    Raises:
        RoleNotPermitted: If the active role may not perform the action
        OutOfScope: If the requested record is not visible
    """
    if decision.allowed:
        return decision
    if decision.reason == DecisionReason.ROLE_NOT_PERMITTED:
        raise RoleNotPermitted(principal.user_id, principal.active_role.value, str(action))
    resource_id = next(iter(query.requested_ids), None)
    raise OutOfScope(principal.user_id, action.resource_type.value, resource_id)
