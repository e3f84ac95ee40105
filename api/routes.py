"""
API routes for the School Access system.

Every request is resolved into a Principal from the user id header; the role
is never taken from the client. Access errors are mapped to HTTP responses by
the exception handlers registered in main.py.
"""
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from access import (
    AccessControl,
    Action,
    OutOfScope,
    Principal,
    ResourceQuery,
    ResourceType,
    RoleGrant,
    RoleNotPermitted,
    Verb,
    apply_scope,
    get_access_control,
    MODEL_FOR_RESOURCE,
)
from .schemas import (
    ActiveRoleRequest,
    AddGrantRequest,
    ErrorResponse,
    GrantResponse,
    PrincipalResponse,
    ResourceListResponse,
    RoleOptionResponse,
    SuccessResponse,
    SwitchRoleRequest,
)


# Error bodies written by the exception handlers in main.py
ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "No role available"},
    403: {"model": ErrorResponse, "description": "Role not permitted"},
    404: {"model": ErrorResponse, "description": "Not found or out of scope"},
}

# Router for role endpoints
roles_router = APIRouter(prefix="/roles", tags=["Roles"], responses=ERROR_RESPONSES)

# Router for user endpoints
users_router = APIRouter(prefix="/users", tags=["Users"], responses=ERROR_RESPONSES)

# Router for scoped resource reads
resources_router = APIRouter(tags=["Resources"], responses=ERROR_RESPONSES)


class ReadableResource(str, Enum):
    """Resources exposed through the generic read endpoints."""
    SCHOOLS = "schools"
    CLASSES = "classes"
    SUBJECTS = "subjects"
    SCHEDULES = "schedules"
    HOMEWORK = "homework"
    GRADES = "grades"
    ATTENDANCE = "attendance"
    DOCUMENTS = "documents"
    USERS = "users"


# ============== Dependencies ==============

def get_access(db: Session = Depends(get_db)) -> AccessControl:
    """Access control bound to the request's database session."""
    return get_access_control(db)


def get_principal(
    x_user_id: Optional[str] = Header(None, alias=settings.user_id_header),
    access: AccessControl = Depends(get_access),
) -> Principal:
    """Resolve the authenticated user into a Principal."""
    if x_user_id is None or not x_user_id.strip().isdigit():
        raise HTTPException(status_code=401, detail="Missing or invalid user id")
    return access.resolve_principal(int(x_user_id))


def _grant_out(grant: RoleGrant) -> GrantResponse:
    return GrantResponse(
        id=grant.id,
        user_id=grant.user_id,
        role=grant.role.value,
        school_id=grant.school_id,
        class_id=grant.class_id,
    )


def _principal_out(principal: Principal, access: AccessControl) -> PrincipalResponse:
    options = [
        RoleOptionResponse(
            grant_id=o.grant_id,
            role=o.role.value,
            school_id=o.school_id,
            class_id=o.class_id,
            is_default=o.is_default,
            is_active=o.is_active,
        )
        for o in access.list_role_options(principal)
    ]
    return PrincipalResponse(
        user_id=principal.user_id,
        primary_role=principal.primary_role.value if principal.primary_role else None,
        primary_school_id=principal.primary_school_id,
        active_role=principal.active_role.value,
        active_school_id=principal.active_school_id,
        active_class_id=principal.active_class_id,
        available_roles=sorted(role.value for role in principal.available_roles),
        options=options,
    )


# ============== Role Endpoints ==============

@roles_router.get("/me", response_model=PrincipalResponse)
async def get_my_roles(
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """Current principal, its active role and the role picker entries."""
    return _principal_out(principal, access)


@roles_router.get("/users/{user_id}", response_model=list[GrantResponse])
async def get_user_grants(
    user_id: int,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """List the grants of a user the principal may administer."""
    query = ResourceQuery(ResourceType.ROLE_GRANTS, user_id=user_id)
    decision = access.authorize(principal, Action(ResourceType.ROLE_GRANTS), query)
    if decision.is_empty:
        raise OutOfScope(principal.user_id, ResourceType.USERS.value, user_id)
    return [_grant_out(grant) for grant in access.list_grants(user_id)]


@roles_router.post("", response_model=GrantResponse, status_code=201)
async def add_grant_endpoint(
    request: AddGrantRequest,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """Grant a role to a user (administrators only)."""
    grant = access.add_grant(
        principal,
        user_id=request.user_id,
        role=request.role,
        school_id=request.school_id,
        class_id=request.class_id,
    )
    return _grant_out(grant)


@roles_router.delete("/{grant_id}", response_model=SuccessResponse)
async def remove_grant_endpoint(
    grant_id: int,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """Remove a role grant (administrators only)."""
    grant = access.remove_grant(principal, grant_id)
    return SuccessResponse(
        message=f"Role {grant.role.value} removed from user {grant.user_id}",
        data=_grant_out(grant).model_dump(),
    )


@roles_router.post("/switch", response_model=PrincipalResponse)
async def switch_role_endpoint(
    request: SwitchRoleRequest,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """
    Switch the active role.

    Either by grant id (null grant id and no role selects the primary role)
    or by (role, school_id, class_id).
    """
    if request.role is None:
        switched = access.switch_to_grant(principal, request.grant_id)
    else:
        switched = access.switch_active_role(
            principal,
            request.role,
            school_id=request.school_id,
            class_id=request.class_id,
        )
    return _principal_out(switched, access)


# ============== User Endpoints ==============

@users_router.put("/{user_id}/active-role", response_model=PrincipalResponse)
async def set_active_role(
    user_id: int,
    request: ActiveRoleRequest,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
):
    """Change a user's active role. Users may only change their own."""
    if user_id != principal.user_id:
        raise RoleNotPermitted(principal.user_id, principal.active_role.value, "switch_role")
    switched = access.switch_active_role(
        principal,
        request.role,
        school_id=request.school_id,
        class_id=request.class_id,
    )
    return _principal_out(switched, access)


# ============== Resource Endpoints ==============

@resources_router.get("/{resource}", response_model=ResourceListResponse)
async def list_resource(
    resource: ReadableResource,
    school_id: Optional[int] = None,
    class_id: Optional[int] = None,
    subject_id: Optional[int] = None,
    student_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
    db: Session = Depends(get_db),
):
    """
    List the records of a resource visible to the principal.

    Filters outside the principal's scope yield an empty list, not an error.
    A filter the resource cannot be narrowed on is rejected with 400.
    """
    resource_type = ResourceType(resource.value)
    query = ResourceQuery(
        resource_type,
        school_id=school_id,
        class_id=class_id,
        subject_id=subject_id,
        student_id=student_id,
        teacher_id=teacher_id,
    )
    decision = access.authorize(principal, Action(resource_type, Verb.READ), query)

    model = MODEL_FOR_RESOURCE[resource_type]
    rows = apply_scope(db.query(model), model, decision).order_by(model.id).all()
    items = [row.to_dict() for row in rows]
    return ResourceListResponse(resource=resource_type.value, count=len(items), items=items)


@resources_router.get("/{resource}/{resource_id}")
async def get_resource(
    resource: ReadableResource,
    resource_id: int,
    principal: Principal = Depends(get_principal),
    access: AccessControl = Depends(get_access),
    db: Session = Depends(get_db),
):
    """Fetch one record. Out-of-scope and missing records look the same."""
    resource_type = ResourceType(resource.value)
    query = ResourceQuery.single(resource_type, resource_id)
    access.authorize(principal, Action(resource_type, Verb.READ), query)

    model = MODEL_FOR_RESOURCE[resource_type]
    record = db.query(model).filter(model.id == resource_id).first()
    if record is None:
        raise OutOfScope(principal.user_id, resource_type.value, resource_id)
    return record.to_dict()
