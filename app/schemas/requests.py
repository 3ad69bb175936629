from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator

from app.schemas.enums import LeaveStatus, RoleName


class LoginRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=320, description="User id or email")
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=6)


class ForgotPasswordRequest(BaseModel):
    login: str = Field(..., min_length=1, max_length=320)


class UpdatePasswordRequest(BaseModel):
    password: str = Field(..., min_length=6)


class LeaveRecordCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=32, description="Employee code")
    start_date: date
    end_date: date
    leave_type_id: int
    remarks: str | None = None

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveRecordCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveRecordUpdate(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    leave_type_id: int | None = None
    remarks: str | None = None


class BulkLeaveRequest(BaseModel):
    rows: list[LeaveRecordCreate] = Field(..., min_length=1, max_length=500)


class EmployeeUpdate(BaseModel):
    name: str | None = None
    user_id: str | None = None
    hiring_date: date | None = None
    planned_annual_balance: float | None = Field(default=None, ge=0)
    unplanned_annual_balance: float | None = Field(default=None, ge=0)


class InviteEmployeeRequest(BaseModel):
    code: str = Field(..., pattern=r"^2\d{5}$", description="6 digits, starts with 2")
    name: str = Field(..., min_length=3)
    user_id: str = Field(..., pattern=r"^[A-Za-z0-9.]+$", description="Letters, digits and dots")
    hiring_date: date
    role: RoleName = RoleName.USER
    password: str = Field(..., min_length=6)
    planned_annual_balance: float = Field(default=14, ge=0)
    unplanned_annual_balance: float = Field(default=7, ge=0)

    @model_validator(mode="after")
    def _check_name(self) -> "InviteEmployeeRequest":
        if len(self.name.split()) < 3:
            raise ValueError("name must have at least 3 words")
        return self


class ResetPasswordRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="User id or email")
    new_password: str = Field(..., min_length=6)


class LeaveRequestCreate(BaseModel):
    start_date: date
    end_date: date
    leave_type: str = Field(..., min_length=1, max_length=64)
    reason: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _check_range(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveDecision(BaseModel):
    status: LeaveStatus
    note: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _check_status(self) -> "LeaveDecision":
        if self.status not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
            raise ValueError("status must be approved or rejected")
        return self


class RecoverySessionRequest(BaseModel):
    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_in: int | None = Field(default=None, gt=0)
