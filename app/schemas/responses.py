from __future__ import annotations

from pydantic import BaseModel, Field

from app.schemas.domain import Employee, LeaveRecord, YearStatus
from app.schemas.enums import ErrorCode, RoleName, SessionState, Theme


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "leave-manager-client"
    storage: str = "ok"


class SessionStatus(BaseModel):
    state: SessionState
    effective: bool
    user_id: str | None = None
    started_at: int | None = Field(default=None, description="Login start, ms since epoch")
    expires_at: int | None = Field(default=None, description="Forced logout time, ms since epoch")
    remaining_seconds: float = 0


class LoginResponse(BaseModel):
    email: str
    session: SessionStatus


class ViewResponse(BaseModel):
    requested: str
    path: str
    redirected: bool
    found: bool
    history: list[str]


class ThemeResponse(BaseModel):
    theme: Theme
    persisted: bool = True


class ProfileResponse(BaseModel):
    employee: Employee
    role: RoleName | None = None


class EmployeeOverview(BaseModel):
    employee: Employee
    year: int
    status: YearStatus | None = None
    records: list[LeaveRecord] = Field(default_factory=list)


class BulkInsertResult(BaseModel):
    inserted: int = 0
    missing_codes: list[str] = Field(default_factory=list)
    error: str | None = None


class FunctionResult(BaseModel):
    """Success body of an administrative function call."""

    ok: bool = True
    email: str | None = None
    auth_user_id: str | None = None


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error_code: ErrorCode
    message: str
    detail: str | None = None
