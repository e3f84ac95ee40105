"""
School Access API

Main FastAPI application for the multi-school access-control service.
Resolves the requesting user's active role and scopes every read to it.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from database import init_db
from access import (
    InvalidUserError,
    NoRoleAvailable,
    OutOfScope,
    RoleNotPermitted,
    ValidationError,
)
from api import ErrorResponse, roles_router, users_router, resources_router


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# --------------- Lifespan ---------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler – initialise DB on startup."""
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized.")
    yield


# --------------- FastAPI app ---------------

app = FastAPI(
    title="School Access API",
    description="""
Role and scope based access control for a multi-school platform.

## Features

### Active role
- Users may hold several roles (grants), each bound to a school and/or class
- Exactly one role is active per request; switching is validated and audited
- A stale active role is repaired on the next request

### Scoping
- **Super admin**: everything
- **School admin / principal / vice principal**: their school
- **Class teacher**: their class
- **Teacher**: classes and subjects they teach
- **Student / parent**: their own (or their children's) records

### Errors
- Forbidden actions return 403
- Records outside scope look exactly like missing ones (404)
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------------- Exception handlers ---------------

@app.exception_handler(NoRoleAvailable)
async def no_role_handler(request: Request, exc: NoRoleAvailable):
    return JSONResponse(status_code=401, content=ErrorResponse(detail="No role available").model_dump(exclude_none=True))


@app.exception_handler(RoleNotPermitted)
async def role_not_permitted_handler(request: Request, exc: RoleNotPermitted):
    return JSONResponse(status_code=403, content=ErrorResponse(detail=exc.message).model_dump(exclude_none=True))


@app.exception_handler(OutOfScope)
async def out_of_scope_handler(request: Request, exc: OutOfScope):
    # Same body as a record that does not exist
    return JSONResponse(status_code=404, content=ErrorResponse(detail=exc.message).model_dump(exclude_none=True))


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content=ErrorResponse(detail=exc.message, field=exc.field).model_dump())


@app.exception_handler(InvalidUserError)
async def invalid_user_handler(request: Request, exc: InvalidUserError):
    return JSONResponse(status_code=404, content=ErrorResponse(detail="User not found").model_dump(exclude_none=True))


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API health check."""
    return {
        "status": "online",
        "service": "School Access API",
        "version": "1.0.0"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers; the generic resource router goes last
app.include_router(roles_router)
app.include_router(users_router)
app.include_router(resources_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
