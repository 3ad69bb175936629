from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    AUTH_FAILED = "AUTH_FAILED"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    DATA_LAYER_FAILED = "DATA_LAYER_FAILED"
    FUNCTION_FAILED = "FUNCTION_FAILED"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"
    SIGN_OUT_SCOPE_UNSUPPORTED = "SIGN_OUT_SCOPE_UNSUPPORTED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AuthChangeEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class SessionState(str, Enum):
    NO_SESSION = "NO_SESSION"
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"


class SignOutScope(str, Enum):
    LOCAL = "local"
    GLOBAL = "global"
    OTHERS = "others"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class RoleName(str, Enum):
    ADMIN = "Admin"
    USER = "User"


class DeductFrom(str, Enum):
    PLANNED = "planned"
    UNPLANNED = "unplanned"
    NONE = "none"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
