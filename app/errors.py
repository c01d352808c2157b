"""
Service error taxonomy.
Every business-rule failure is raised as a ServiceError subclass and rendered
by the handler registered in app.main as {"detail", "code", **context}.
"""

from typing import Optional


class ServiceError(Exception):
    status_code = 500
    code = "internal_error"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, context: Optional[dict] = None):
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        body.update(self.context)
        return body


class AuthenticationError(ServiceError):
    """No resolved identity on the request."""
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class UnauthorizedError(ServiceError):
    """Identity is known but its role may not run the operation."""
    status_code = 403
    code = "unauthorized"
    default_message = "Insufficient permissions"


class ForbiddenError(ServiceError):
    """Role is allowed but the resource belongs to someone else."""
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class InvalidPayloadError(ServiceError):
    status_code = 400
    code = "invalid_payload"
    default_message = "Invalid request data"


class InvalidStateError(ServiceError):
    status_code = 400
    code = "invalid_state"
    default_message = "Invalid state"

    def __init__(self, message: Optional[str] = None, current_state: Optional[str] = None,
                 context: Optional[dict] = None):
        super().__init__(message, context)
        self.current_state = current_state


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Concurrent update, retry the request"


class AlreadyCheckedInError(ConflictError):
    code = "already_checked_in"
    default_message = "Visitor is already checked in"


class InternalError(ServiceError):
    pass
