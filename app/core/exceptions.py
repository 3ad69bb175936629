from __future__ import annotations


class LeaveManagerError(Exception):
    """Base exception for all leave manager client errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class AuthError(LeaveManagerError):
    status_code = 401
    error_code = "AUTH_FAILED"


class SessionExpiredError(LeaveManagerError):
    status_code = 401
    error_code = "SESSION_EXPIRED"


class ForbiddenError(LeaveManagerError):
    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(LeaveManagerError):
    status_code = 404
    error_code = "NOT_FOUND"


class ProfileNotFoundError(NotFoundError):
    error_code = "PROFILE_NOT_FOUND"


class InvalidInputError(LeaveManagerError):
    status_code = 400
    error_code = "INVALID_INPUT"


class DataLayerError(LeaveManagerError):
    status_code = 502
    error_code = "DATA_LAYER_FAILED"


class FunctionCallError(LeaveManagerError):
    status_code = 502
    error_code = "FUNCTION_FAILED"

    def __init__(
        self, message: str, detail: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(message, detail)
        # Auth and validation answers from the function are passed through as-is.
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status_code


class StorageUnavailableError(LeaveManagerError):
    """Durable storage cannot be read or written. Never reaches the API layer."""

    error_code = "STORAGE_UNAVAILABLE"


class SignOutScopeUnsupportedError(LeaveManagerError):
    """The identity provider rejected a scoped sign-out request."""

    status_code = 400
    error_code = "SIGN_OUT_SCOPE_UNSUPPORTED"
