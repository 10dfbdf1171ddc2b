"""Domain error taxonomy.

Each error knows the HTTP status and machine-readable code it renders as;
``src.api.main`` turns them into the standard ``{"error", "message"}`` body.
"""
from __future__ import annotations


class MealPlannerError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class ValidationError(MealPlannerError):
    """Missing or malformed request field."""
    status_code = 400
    code = "validation_error"


class AuthError(MealPlannerError):
    """Missing, invalid or expired bearer token (or failed Google login)."""
    status_code = 401
    code = "unauthorized"


class AuthorizationError(MealPlannerError):
    """Authenticated, but the role held is not enough."""
    status_code = 403
    code = "forbidden"


class ExpiredError(MealPlannerError):
    status_code = 403
    code = "share_link_expired"


class NotFoundError(MealPlannerError):
    status_code = 404
    code = "not_found"


class ConflictError(MealPlannerError):
    status_code = 400
    code = "conflict"


class SelfShareError(ConflictError):
    code = "self_share"


class AlreadyOwnerError(ConflictError):
    code = "already_owner"


class AlreadyMemberError(ConflictError):
    code = "already_member"


class ConfigurationError(MealPlannerError):
    """A required setting (e.g. Google client id) is absent."""
    status_code = 500
    code = "configuration_error"
