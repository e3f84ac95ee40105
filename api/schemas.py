"""
Pydantic schemas for API requests and responses.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


# Request schemas
class SwitchRoleRequest(BaseModel):
    """Request to switch the active role by (role, school, class)."""
    role: Optional[str] = Field(None, description="Role to switch to")
    school_id: Optional[int] = Field(None, description="School binding of the grant")
    class_id: Optional[int] = Field(None, description="Class binding of the grant")
    grant_id: Optional[int] = Field(None, description="Switch to this grant instead of matching by role")


class ActiveRoleRequest(BaseModel):
    """Request body for PUT /users/{user_id}/active-role."""
    role: str = Field(..., description="Role to switch to")
    school_id: Optional[int] = Field(None, description="School binding of the grant")
    class_id: Optional[int] = Field(None, description="Class binding of the grant")


class AddGrantRequest(BaseModel):
    """Request to grant a role to a user."""
    user_id: int = Field(..., description="ID of the user receiving the role")
    role: str = Field(..., description="Role to grant")
    school_id: Optional[int] = Field(None, description="School the grant is bound to")
    class_id: Optional[int] = Field(None, description="Class the grant is bound to")


# Response schemas
class GrantResponse(BaseModel):
    """One role grant."""
    id: int
    user_id: int
    role: str
    school_id: Optional[int] = None
    class_id: Optional[int] = None


class RoleOptionResponse(BaseModel):
    """One entry of the role picker."""
    grant_id: Optional[int] = None
    role: str
    school_id: Optional[int] = None
    class_id: Optional[int] = None
    is_default: bool = False
    is_active: bool = False


class PrincipalResponse(BaseModel):
    """The requesting user and their active role."""
    user_id: int
    primary_role: Optional[str] = None
    primary_school_id: Optional[int] = None
    active_role: str
    active_school_id: Optional[int] = None
    active_class_id: Optional[int] = None
    available_roles: List[str]
    options: List[RoleOptionResponse] = []


class ResourceListResponse(BaseModel):
    """Scoped listing of a resource."""
    resource: str
    count: int
    items: List[Dict[str, Any]]


class SuccessResponse(BaseModel):
    """Generic success response."""
    success: bool = True
    message: str
    data: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Error response."""
    detail: str
    field: Optional[str] = None
