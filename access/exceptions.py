"""
Custom exceptions for the School Access system.
"""


class AuthorizationError(Exception):
    """Raised when a user attempts an unauthorized action."""
    
    def __init__(self, message: str, user_id: int = None, action: str = None):
        self.message = message
        self.user_id = user_id
        self.action = action
        super().__init__(self.message)


class NoRoleAvailable(AuthorizationError):
    """Raised when a principal cannot be built: no primary role and no grants."""
    
    def __init__(self, user_id: int):
        message = f"User {user_id} has no role available"
        super().__init__(message, user_id=user_id, action="resolve_principal")


class RoleNotPermitted(AuthorizationError):
    """Raised when the active role may not perform an action at all."""
    
    def __init__(self, user_id: int, role: str, action: str):
        self.role = role
        message = f"Access denied: role '{role}' cannot perform '{action}'"
        super().__init__(message, user_id=user_id, action=action)


class OutOfScope(AuthorizationError):
    """
    Raised when a specific resource lies outside the principal's scope.
    The message matches a plain not-found on purpose.
    """
    
    def __init__(self, user_id: int, resource_type: str, resource_id=None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found"
        super().__init__(message, user_id=user_id, action=f"read_{resource_type}")


class InvalidUserError(Exception):
    """Raised when a user is not found."""
    
    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"User with id {user_id} not found")


class ValidationError(Exception):
    """Raised when input validation fails."""
    
    def __init__(self, message: str, field: str = None):
        self.message = message
        self.field = field
        super().__init__(self.message)


class RoleNotGranted(ValidationError):
    """Raised when a user asks to switch to a role they do not hold."""
    
    def __init__(self, user_id: int, role: str, school_id: int = None, class_id: int = None):
        self.user_id = user_id
        self.role = role
        self.school_id = school_id
        self.class_id = class_id
        scope = ""
        if school_id is not None:
            scope += f" for school {school_id}"
        if class_id is not None:
            scope += f" and class {class_id}"
        super().__init__(f"User {user_id} does not hold role '{role}'{scope}", field="role")
