from typing import Any, Dict, List, Optional


class StorefrontError(Exception):
    """
    Base exception for the storefront identity core.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(StorefrontError):
    """
    Raised when a field is missing or malformed.
    """
    def __init__(self, message: str = "Validation failed", field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=field_errors or [])

    @classmethod
    def for_field(cls, field: str, msg: str) -> "ValidationError":
        return cls(msg, field_errors=[{"field": field, "msg": msg}])


class DuplicateError(StorefrontError):
    def __init__(self, message: str = "Resource already exists"):
        super().__init__(message, code="DUPLICATE", status_code=400)


class AuthError(StorefrontError):
    def __init__(self, message: str = "Authentication failed", code: str = "UNAUTHORIZED", status_code: int = 401):
        super().__init__(message, code=code, status_code=status_code)


class InvalidCredentials(AuthError):
    """
    Raised for both unknown phone and wrong password. The reason is kept
    for server-side logging only.
    """
    def __init__(self, reason: str = "invalid_credentials"):
        super().__init__("Invalid phone number or password", code="INVALID_CREDENTIALS")
        self.reason = reason


class MissingToken(AuthError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class ExpiredToken(AuthError):
    def __init__(self, message: str = "Token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class InvalidSignature(AuthError):
    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class MissingRefreshToken(AuthError):
    def __init__(self):
        super().__init__("Refresh token is missing", code="MISSING_REFRESH_TOKEN")


class InvalidRefreshToken(AuthError):
    def __init__(self):
        super().__init__("Refresh token is invalid", code="INVALID_REFRESH_TOKEN", status_code=403)


class ForbiddenError(StorefrontError):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, code="FORBIDDEN", status_code=403)


class NotFoundError(StorefrontError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, code="NOT_FOUND", status_code=404)


class RateLimited(StorefrontError):
    def __init__(self, message: str = "Too many requests. Please try again later.", retry_after: Optional[int] = None):
        super().__init__(message, code="RATE_LIMITED", status_code=429, details={"retry_after": retry_after})
        self.retry_after = retry_after


class ResendThrottled(RateLimited):
    def __init__(self, retry_after: int):
        super().__init__("A code was sent recently. Please wait before requesting another.", retry_after=retry_after)
        self.code = "OTP_RESEND_THROTTLED"


class DeliveryError(StorefrontError):
    def __init__(self, message: str = "Failed to send verification code"):
        super().__init__(message, code="DELIVERY_FAILED", status_code=502)
