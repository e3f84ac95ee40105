"""
Access module for the School Access system.

Resolves who is asking, in which role, and which records that role may see.
"""
from .exceptions import (
    AuthorizationError,
    NoRoleAvailable,
    RoleNotPermitted,
    OutOfScope,
    InvalidUserError,
    ValidationError,
    RoleNotGranted,
)

from .models import (
    Action,
    AuditEntry,
    DecisionReason,
    Principal,
    ResourceQuery,
    ResourceType,
    RoleGrant,
    RoleOption,
    ScopeDecision,
    ScopeRequirement,
    UserRecord,
    Verb,
    Visibility,
)

from .catalog import (
    permitted_actions,
    is_permitted,
    requires_scope,
)

from .principal import PrincipalResolver, list_role_options
from .scope import ScopeResolver
from .authorization import AccessDecision, enforce
from .switch import ActiveRoleSwitch
from .grants import GrantService, validate_grant
from .filters import apply_scope
from .stores import SqlAuditSink, SqlDerivationSource, SqlGrantStore, MODEL_FOR_RESOURCE
from .service import AccessControl, get_access_control

__all__ = [
    # Exceptions
    "AuthorizationError",
    "NoRoleAvailable",
    "RoleNotPermitted",
    "OutOfScope",
    "InvalidUserError",
    "ValidationError",
    "RoleNotGranted",
    # Value types
    "Action",
    "AuditEntry",
    "DecisionReason",
    "Principal",
    "ResourceQuery",
    "ResourceType",
    "RoleGrant",
    "RoleOption",
    "ScopeDecision",
    "ScopeRequirement",
    "UserRecord",
    "Verb",
    "Visibility",
    # Catalog
    "permitted_actions",
    "is_permitted",
    "requires_scope",
    # Services
    "PrincipalResolver",
    "list_role_options",
    "ScopeResolver",
    "AccessDecision",
    "enforce",
    "ActiveRoleSwitch",
    "GrantService",
    "validate_grant",
    "AccessControl",
    "get_access_control",
    # Storage
    "apply_scope",
    "SqlAuditSink",
    "SqlDerivationSource",
    "SqlGrantStore",
    "MODEL_FOR_RESOURCE",
]
