from enum import Enum
from typing import Optional, Any

from utils.constants import ERROR_MESSAGES


class ErrorKind(str, Enum):
    """
    Coarse error classification shared by services, the onboarding
    error slot and the HTTP surface.
    """
    VALIDATION = "validation"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    AUTH = "auth"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    SERVER = "server"


class CapitalizedError(Exception):
    """
    Base exception for the Capitalized client core.
    """
    kind: ErrorKind = ErrorKind.SERVER

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

    @property
    def recoverable(self) -> bool:
        """Whether the user can fix this by retrying without logging in again."""
        return self.kind is not ErrorKind.AUTH


class ValidationError(CapitalizedError):
    """
    Raised when input validation fails, client-side or server-side.
    """
    kind = ErrorKind.VALIDATION

    def __init__(self, message: str = ERROR_MESSAGES["validation"], details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)


class ConflictError(CapitalizedError):
    """
    Raised when the backend rejects an action that conflicts with account
    state (e.g. free trial already used).
    """
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = ERROR_MESSAGES["conflict"], details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)


class ForbiddenError(CapitalizedError):
    """
    Raised when a precondition is not met (e.g. profile incomplete).
    """
    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str = ERROR_MESSAGES["forbidden"], details: Optional[Any] = None):
        super().__init__(message, code="FORBIDDEN", status_code=403, details=details)


class AuthenticationError(CapitalizedError):
    """
    Raised when credentials or tokens are invalid or expired.
    """
    kind = ErrorKind.AUTH

    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)


class SessionExpiredError(AuthenticationError):
    """
    Logged-out signal: the session could not be renewed and has been
    cleared. Callers should send the user back to login.
    """

    def __init__(self, message: str = ERROR_MESSAGES["unauthorized"], details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "SESSION_EXPIRED"


class NetworkError(CapitalizedError):
    """
    Raised on transient transport failures (connection, timeout).
    """
    kind = ErrorKind.NETWORK

    def __init__(self, message: str = ERROR_MESSAGES["network"], details: Optional[Any] = None):
        super().__init__(message, code="NETWORK_ERROR", status_code=503, details=details)


class ExternalServiceError(NetworkError):
    """
    Raised when the backend fails (5xx) or returns an unusable response.
    Treated as transient.
    """
    kind = ErrorKind.SERVER

    def __init__(self, message: str = ERROR_MESSAGES["server"], details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "EXTERNAL_SERVICE_ERROR"
        self.status_code = 502


class ResourceNotFoundError(CapitalizedError):
    """
    Raised when a requested resource is not found.
    """
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class OnboardingStateError(CapitalizedError):
    """
    Raised when an onboarding action is not allowed in the current step.
    """
    kind = ErrorKind.CONFLICT

    def __init__(self, message: str = "Action not available at this onboarding step", details: Optional[Any] = None):
        super().__init__(message, code="INVALID_ONBOARDING_STEP", status_code=409, details=details)


# Short alias used throughout the services
AuthError = AuthenticationError
