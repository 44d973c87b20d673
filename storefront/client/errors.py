from typing import Dict, List, Optional

GENERIC_NETWORK_MESSAGE = "Network error. Please check your connection and try again."


class ClientError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApiError(ClientError):
    """The server answered with an error envelope."""

    def __init__(self, status: int, code: str, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.status = status
        self.code = code
        self.field_errors = field_errors or []

    @property
    def is_token_expired(self) -> bool:
        return self.status == 401 and self.code == "TOKEN_EXPIRED"

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, code={self.code!r}, message={self.message!r})"


class TransportError(ClientError):
    """The request never produced a server response."""

    def __init__(self, message: str = GENERIC_NETWORK_MESSAGE):
        super().__init__(message)


class ValidationError(ClientError):
    """Input rejected locally, before any request was made."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field_errors = [{"field": field, "msg": message}]


class ResendThrottled(ClientError):
    def __init__(self, retry_after: int):
        super().__init__(f"Please wait {retry_after} seconds before requesting a new code")
        self.retry_after = retry_after
