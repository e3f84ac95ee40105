"""API module for the School Access system."""
from .routes import (
    roles_router,
    users_router,
    resources_router,
    get_access,
    get_principal,
)
from .schemas import (
    SwitchRoleRequest,
    ActiveRoleRequest,
    AddGrantRequest,
    GrantResponse,
    RoleOptionResponse,
    PrincipalResponse,
    ResourceListResponse,
    SuccessResponse,
    ErrorResponse,
)

__all__ = [
    "roles_router",
    "users_router",
    "resources_router",
    "get_access",
    "get_principal",
    "SwitchRoleRequest",
    "ActiveRoleRequest",
    "AddGrantRequest",
    "GrantResponse",
    "RoleOptionResponse",
    "PrincipalResponse",
    "ResourceListResponse",
    "SuccessResponse",
    "ErrorResponse",
]
