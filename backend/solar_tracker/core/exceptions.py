"""
Custom Exceptions for the Solar Installation Tracker
====================================================

Raise these instead of generic Exception so the API layer can map each
failure to a status code and a `{"error": ...}` body.

Usage:
    from solar_tracker.core.exceptions import InstallationNotFoundError

    if index is None:
        raise InstallationNotFoundError(installation_id)
"""

from typing import Optional, Any, Dict, List


class SolarTrackerError(Exception):
    """Base exception for all tracker errors"""

    status_code: int = 500

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
        return {"error": self.message}


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(SolarTrackerError):
    """Caller could not be authenticated"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class InvalidCredentialsError(AuthenticationError):
    """Unknown username or wrong password - deliberately not distinguished"""

    def __init__(self):
        super().__init__("Invalid credentials")
        self.code = "INVALID_CREDENTIALS"


class InvalidTokenError(AuthenticationError):
    """Bad signature, expired, or malformed bearer token"""

    def __init__(self):
        super().__init__("Invalid or expired token")
        self.code = "INVALID_TOKEN"


class AuthorizationError(SolarTrackerError):
    """Caller is not allowed to perform this action"""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(SolarTrackerError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found",
            code=f"{resource_type.upper()}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


class InstallationNotFoundError(ResourceNotFoundError):
    """Installation id is absent from the caller's partition"""

    def __init__(self, installation_id: str):
        super().__init__("Installation", installation_id)


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(SolarTrackerError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.errors = errors or [message]


class RecordValidationError(ValidationError):
    """A single installation payload failed validation"""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors), errors=errors)


class BulkValidationError(ValidationError):
    """One or more rows of a bulk payload failed validation"""

    def __init__(self, failures: List[Dict[str, Any]]):
        super().__init__(
            f"Validation failed for {len(failures)} installation(s)",
            errors=[error for failure in failures for error in failure["errors"]]
        )
        self.code = "BULK_VALIDATION_ERROR"
        self.failures = failures

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "failures": self.failures}


class UsernameTakenError(SolarTrackerError):
    """Username collides (case-insensitive) with a static or stored user"""

    status_code = 409

    def __init__(self, username: str):
        super().__init__(
            "Username already exists",
            code="USERNAME_TAKEN",
            details={"username": username}
        )


# ============================================
# Server-side Errors (500-type)
# ============================================

class ConfigurationError(SolarTrackerError):
    """Required server configuration is missing"""

    def __init__(self, message: str):
        super().__init__(message, code="CONFIGURATION_ERROR")


class StorageError(SolarTrackerError):
    """A data file could not be read or parsed"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, code="STORAGE_ERROR")
        if path:
            self.details["path"] = path


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: SolarTrackerError) -> Dict[str, Any]:
    """Convert exception to API error response body"""
    return error.to_dict()
