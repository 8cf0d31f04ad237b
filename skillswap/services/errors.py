"""
Domain Errors

Typed failures raised by the services and rendered as JSON by the API layer:
NotFound (404), Forbidden (403), Conflict (400), LimitExceeded (400).
"""
from typing import Any, Dict, Optional


class SkillSwapError(Exception):
    """Base class for failures surfaced to API callers"""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


class InvalidRequest(SkillSwapError):
    status_code = 400
    code = "INVALID_REQUEST"


class NotFound(SkillSwapError):
    status_code = 404
    code = "NOT_FOUND"


class Forbidden(SkillSwapError):
    status_code = 403
    code = "FORBIDDEN"


class Conflict(SkillSwapError):
    """State precondition violated (double end, double feedback, active session exists)"""

    status_code = 400
    code = "CONFLICT"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, session=None):
        super().__init__(message, details)
        self.session = session


class LimitExceeded(SkillSwapError):
    status_code = 400
    code = "LIMIT_EXCEEDED"
