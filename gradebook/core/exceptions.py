"""Custom exception classes for GradeBook."""
from typing import Optional, Dict, Any


class GradeBookException(Exception):
    """Base exception for all application-specific exceptions."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class DatabaseError(GradeBookException):
    """Exception raised for database-related errors."""
    pass


class StoreUnavailableError(DatabaseError):
    """Raised when the backing store cannot be reached or rejects a query.

    Callers decide whether to degrade to an empty result; the store layer
    never does.
    """
    pass


class ValidationError(GradeBookException):
    """Exception raised for validation errors."""
    pass


class AuthenticationError(GradeBookException):
    """Exception raised for authentication errors."""
    pass


class AuthorizationError(GradeBookException):
    """Exception raised for authorization errors."""
    pass


class NotFoundError(GradeBookException):
    """Exception raised when a resource is not found."""
    pass


class ConfigurationError(GradeBookException):
    """Exception raised for configuration errors."""
    pass


class NetworkError(GradeBookException):
    """Client-side failure to complete a status fetch. Never shown to users."""
    pass


SENSITIVE_PATTERNS = [
    'password',
    'secret',
    'key',
    'token',
    'credential',
    'auth',
    'connection',
    'database',
    'sql',
    'query',
]


def sanitize_error_message(error: Exception, include_details: bool = False) -> str:
    """
    Sanitize error messages to prevent leaking sensitive information.

    Args:
        error: The exception to sanitize
        include_details: Whether to include detailed error information (dev only)

    Returns:
        Sanitized error message
    """
    from gradebook.core.config import settings

    if isinstance(error, GradeBookException):
        return error.message

    debug = bool(settings and settings.DEBUG)
    error_type = type(error).__name__
    error_str = str(error)
    error_lower = error_str.lower()
    is_sensitive = any(pattern in error_lower for pattern in SENSITIVE_PATTERNS)

    if is_sensitive and not debug:
        if 'password' in error_lower or 'credential' in error_lower:
            return "Authentication failed. Please check your credentials."
        elif 'connection' in error_lower or 'database' in error_lower:
            return "Database connection error. Please try again later."
        elif 'token' in error_lower or 'auth' in error_lower:
            return "Authentication error. Please login again."
        return "An error occurred. Please try again or contact support."

    if debug or include_details:
        return f"{error_type}: {error_str}"
    return "An error occurred. Please try again."
