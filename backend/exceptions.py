# exceptions.py — Domain error taxonomy with TB-{DOMAIN}-{NUMBER} codes
# Every error raised by the hierarchy, card content and recorder layers is a
# TaskBoardError; main.py maps them onto HTTP responses in one handler.

from typing import Any, Dict, Optional

from models import is_valid_id

# ============================================================
# ERROR CODE CATALOGUE
# Domains: REQ, AUTH, ACL, RES, STATE, SYS
# ============================================================

ERROR_CATALOGUE = {
    "TB-REQ-001": "Malformed identifier",
    "TB-REQ-002": "Missing required field",
    "TB-REQ-003": "Ordering does not match the current children",
    "TB-REQ-004": "Invalid request",
    "TB-AUTH-001": "Authentication required",
    "TB-ACL-001": "Not an active member",
    "TB-ACL-002": "Owner privileges required",
    "TB-ACL-003": "Not the author",
    "TB-RES-001": "Resource not found",
    "TB-STATE-001": "Already applied",
    "TB-STATE-002": "Version mismatch",
    "TB-SYS-001": "Internal server error",
}


class TaskBoardError(Exception):
    """Base class for every domain error.

    Attributes:
        message: Human-readable error message
        error_code: Catalogue code for client handling
        details: Extra context (offending ids, expected version, ...)
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_error_code: str = "TB-SYS-001"

    def __init__(
        self,
        message: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code or self.default_error_code
        self.message = message or ERROR_CATALOGUE.get(self.error_code, "Error")
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "detail": self.message,
            "code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result


class InvalidError(TaskBoardError):
    """Malformed id or missing required field (HTTP 400)."""

    status_code = 400
    default_error_code = "TB-REQ-004"


class UnauthenticatedError(TaskBoardError):
    """Missing or invalid credential (HTTP 401)."""

    status_code = 401
    default_error_code = "TB-AUTH-001"


class ForbiddenError(TaskBoardError):
    """Authenticated but not allowed to touch this entity (HTTP 403)."""

    status_code = 403
    default_error_code = "TB-ACL-001"


class NotFoundError(TaskBoardError):
    """Entity missing or soft-deleted (HTTP 404)."""

    status_code = 404
    default_error_code = "TB-RES-001"


class ConflictError(TaskBoardError):
    """Double action or stale version (HTTP 409)."""

    status_code = 409
    default_error_code = "TB-STATE-001"


class InternalError(TaskBoardError):
    status_code = 500
    default_error_code = "TB-SYS-001"


def require_id(value, field: str) -> str:
    """Reject absent or malformed 24-char ids before touching the store."""
    if value is None or value == "":
        raise InvalidError(f"{field} is required", "TB-REQ-002", {"field": field})
    if not is_valid_id(value):
        raise InvalidError(f"Invalid {field}", "TB-REQ-001", {"field": field, "value": str(value)})
    return value
