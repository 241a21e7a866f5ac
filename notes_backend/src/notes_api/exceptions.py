"""Exception hierarchy for the notes API.

Every domain error carries its HTTP status code and a stable error type so
the handlers in ``notes_api.errors`` can render them uniformly.
"""

from enum import Enum
from typing import Any, Optional

from starlette import status


class ErrorType(str, Enum):
    """Error type codes for API responses."""

    VALIDATION = "validation_error"
    AUTHENTICATION = "authentication_error"
    PROVIDER_MISMATCH = "provider_mismatch_error"
    VERIFICATION_REQUIRED = "verification_required"
    CONFLICT = "conflict_error"
    NOT_FOUND = "not_found_error"
    OTP_NOT_FOUND = "otp_not_found"
    OTP_EXPIRED = "otp_expired"
    OTP_MISMATCH = "otp_mismatch"
    ALREADY_VERIFIED = "already_verified"
    RATE_LIMIT = "rate_limit_error"
    DELIVERY = "delivery_error"
    SERVICE_UNAVAILABLE = "service_unavailable_error"
    INTERNAL_SERVER = "internal_server_error"


class NotesAppError(Exception):
    """Base exception for all notes API errors."""

    default_message = "An internal server error occurred"
    error_type = ErrorType.INTERNAL_SERVER
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details or {}
        self.headers = headers


class ValidationFailedError(NotesAppError):
    default_message = "Validation failed"
    error_type = ErrorType.VALIDATION
    status_code = 422


class UnauthorizedError(NotesAppError):
    """Missing/invalid credentials; never says which check failed."""

    default_message = "Invalid or missing credentials"
    error_type = ErrorType.AUTHENTICATION
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: Optional[str] = None, **kwargs: Any) -> None:
        kwargs.setdefault("headers", {"WWW-Authenticate": "Bearer"})
        super().__init__(message, **kwargs)


class ProviderMismatchError(NotesAppError):
    default_message = "Please login with your identity provider"
    error_type = ErrorType.PROVIDER_MISMATCH
    status_code = status.HTTP_400_BAD_REQUEST


class VerificationRequiredError(NotesAppError):
    default_message = "Please verify your email with the OTP sent."
    error_type = ErrorType.VERIFICATION_REQUIRED
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(NotesAppError):
    default_message = "Resource already exists"
    error_type = ErrorType.CONFLICT
    status_code = status.HTTP_409_CONFLICT


class NotFoundError(NotesAppError):
    default_message = "Not found"
    error_type = ErrorType.NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND


class AccountNotFoundError(NotFoundError):
    default_message = "User not found"


class NoteNotFoundError(NotFoundError):
    default_message = "Note not found"


class OtpNotFoundError(NotFoundError):
    default_message = "No OTP found. Please request a new one."
    error_type = ErrorType.OTP_NOT_FOUND


class OtpExpiredError(NotesAppError):
    default_message = "OTP has expired. Please request a new one."
    error_type = ErrorType.OTP_EXPIRED
    status_code = status.HTTP_400_BAD_REQUEST


class OtpMismatchError(NotesAppError):
    default_message = "Invalid OTP"
    error_type = ErrorType.OTP_MISMATCH
    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyVerifiedError(NotesAppError):
    default_message = "Email is already verified"
    error_type = ErrorType.ALREADY_VERIFIED
    status_code = status.HTTP_409_CONFLICT


class RateLimitedError(NotesAppError):
    default_message = "Too many requests. Please try again later."
    error_type = ErrorType.RATE_LIMIT
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class DeliveryError(NotesAppError):
    """The verification email could not be handed to the mail server."""

    default_message = "Could not send the verification email. Please try again."
    error_type = ErrorType.DELIVERY
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ServiceUnavailableError(NotesAppError):
    default_message = "Service temporarily unavailable"
    error_type = ErrorType.SERVICE_UNAVAILABLE
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
