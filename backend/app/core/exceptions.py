"""
Custom Exceptions for TeamTime
==============================

Use these instead of generic Exception so the API layer can map every
failure to a stable error code and HTTP status.

Usage:
    from app.core.exceptions import MalformedTokenError, InvitationExpiredError

    try:
        result = codec.verify(token)
    except InvitationError as e:
        logger.warning(f"Invitation rejected: {e.code}")
        raise
"""

from typing import Optional, Any, Dict


class TeamTimeError(Exception):
    """Base exception for all TeamTime errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Configuration Errors
# ============================================

class ConfigurationError(TeamTimeError):
    """Required server configuration is missing or unusable"""

    def __init__(self, message: str, setting: Optional[str] = None):
        details = {"setting": setting} if setting else {}
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(TeamTimeError):
    """Input validation failed"""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Invitation Errors
# ============================================

# Malformed and tampered tokens share one public message so callers
# cannot tell which check failed.
INVALID_INVITATION_MESSAGE = "Invalid invitation"


class InvitationError(TeamTimeError):
    """Base class for invitation token failures"""

    def __init__(self, message: str = INVALID_INVITATION_MESSAGE, code: str = "INVALID_INVITATION"):
        super().__init__(message, code=code)


class MalformedTokenError(InvitationError):
    """Token could not be decoded into its four parts"""

    def __init__(self, reason: str = "malformed"):
        super().__init__()
        self.reason = reason


class InvalidSignatureError(InvitationError):
    """Token signature does not match its payload"""

    def __init__(self):
        super().__init__()
        self.reason = "signature_mismatch"


class InvitationExpiredError(InvitationError):
    """Token is well-formed but past its expiry"""

    def __init__(self, email: Optional[str] = None):
        super().__init__(
            "This invitation has expired. Please request a new one.",
            code="INVITATION_EXPIRED"
        )
        if email:
            self.details["email"] = email


# ============================================
# Export Errors
# ============================================

class ExportError(TeamTimeError):
    """Report export failed"""

    def __init__(self, message: str, export_type: Optional[str] = None):
        super().__init__(message, code="EXPORT_FAILED")
        if export_type:
            self.details["export_type"] = export_type


# ============================================
# Helper functions for API responses
# ============================================

_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "INVALID_INVITATION": 400,
    "INVITATION_EXPIRED": 410,
    "CONFIGURATION_ERROR": 500,
    "EXPORT_FAILED": 500,
}


def http_status_for(error: TeamTimeError) -> int:
    """HTTP status code for an error"""
    return _STATUS_BY_CODE.get(error.code, 500)


def error_response(error: TeamTimeError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    body = error.to_dict()
    # Internal details of configuration problems stay in the logs
    if isinstance(error, ConfigurationError):
        body = {"code": error.code, "message": "Server is not configured correctly", "details": {}}
    return {
        "success": False,
        "error": body
    }
