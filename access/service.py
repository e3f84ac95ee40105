"""
Access control facade.

Wires the resolver, scope resolver, decision, switch and grant services
around one set of collaborators, so callers deal with a single object.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from .authorization import AccessDecision
from .grants import GrantService
from .models import Action, Principal, ResourceQuery, RoleGrant, RoleOption, ScopeDecision
from .ports import AuditSink, DerivationSource, GrantStore
from .principal import PrincipalResolver, list_role_options
from .scope import ScopeResolver
from .stores import SqlAuditSink, SqlDerivationSource, SqlGrantStore
from .switch import ActiveRoleSwitch


class AccessControl:
    """The four public operations plus grant administration."""

    def __init__(self, store: GrantStore, derivation: DerivationSource, audit: AuditSink):
        self.store = store
        self.resolver = PrincipalResolver(store)
        self.scope_resolver = ScopeResolver(derivation)
        self.decision = AccessDecision(self.scope_resolver, derivation)
        self.switch = ActiveRoleSwitch(store)
        self.grants = GrantService(store, derivation, self.decision, audit)

    def resolve_principal(self, user_id: int) -> Principal:
        return self.resolver.resolve(user_id)

    def decide(self, principal: Principal, action: Action, query: ResourceQuery) -> ScopeDecision:
        return self.decision.decide(principal, action, query)

    def authorize(self, principal: Principal, action: Action, query: ResourceQuery) -> ScopeDecision:
        return self.decision.authorize(principal, action, query)

    def switch_active_role(
        self,
        principal: Principal,
        role,
        school_id: Optional[int] = None,
        class_id: Optional[int] = None,
    ) -> Principal:
        return self.switch.switch_to(principal, role, school_id, class_id)

    def switch_to_grant(self, principal: Principal, grant_id: Optional[int]) -> Principal:
        return self.switch.switch_to_grant(principal, grant_id)

    def list_grants(self, user_id: int) -> List[RoleGrant]:
        return self.resolver.list_grants(user_id)

    def list_role_options(self, principal: Principal) -> List[RoleOption]:
        return list_role_options(principal)

    def add_grant(self, actor: Principal, user_id: int, role, school_id=None, class_id=None) -> RoleGrant:
        return self.grants.add_grant(actor, user_id, role, school_id, class_id)

    def remove_grant(self, actor: Principal, grant_id: int) -> RoleGrant:
        return self.grants.remove_grant(actor, grant_id)


def get_access_control(db: Session) -> AccessControl:
    """Factory function to create an AccessControl bound to a database session."""
    return AccessControl(SqlGrantStore(db), SqlDerivationSource(db), SqlAuditSink(db))
