"""
Error taxonomy shared by services and routes.

Services raise these; the exception handler registered in main.py renders them
as the standard `{success: false, error, code}` envelope.
"""
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "internal_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class NotCompletedError(ValidationError):
    code = "not_completed"


class InviteExpiredError(ValidationError):
    code = "invite_expired"


class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"


class AlreadyExistsError(ConflictError):
    code = "already_exists"


class LinkExpiredError(AppError):
    status_code = status.HTTP_410_GONE
    code = "link_expired"


class UpstreamError(AppError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_error"


class InternalError(AppError):
    code = "internal_error"
