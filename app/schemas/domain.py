from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.enums import DeductFrom, LeaveStatus, RoleName


class AuthUser(BaseModel):
    id: str
    email: str | None = None


class Session(BaseModel):
    """Credential issued by the identity provider."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 3600
    expires_at: int | None = Field(default=None, description="Seconds since epoch")
    user: AuthUser


class RoleRef(BaseModel):
    name: RoleName


class Employee(BaseModel):
    id: str
    auth_user_id: str | None = None
    code: str
    name: str
    user_id: str | None = None
    hiring_date: date | None = None
    planned_annual_balance: float = 0
    unplanned_annual_balance: float = 0
    roles: RoleRef | None = None

    @property
    def role(self) -> RoleName | None:
        return self.roles.name if self.roles else None

    @property
    def is_admin(self) -> bool:
        return self.role is RoleName.ADMIN


class LeaveType(BaseModel):
    id: int
    name: str
    deduct_from: DeductFrom


class LeaveTypeRef(BaseModel):
    name: str
    deduct_from: DeductFrom


class LeaveRecord(BaseModel):
    id: str
    employee_id: str | None = None
    code: str | None = None
    start_date: date
    end_date: date
    leave_days: float | None = None
    leave_type_id: int
    remarks: str | None = None
    leave_types: LeaveTypeRef | None = None


class YearStatus(BaseModel):
    employee_id: str
    code: str
    name: str
    hiring_date: date | None = None
    year: int
    beginning_planned_balance: float = 0
    beginning_unplanned_balance: float = 0
    utilized_planned_days: float = 0
    utilized_unplanned_days: float = 0
    remaining_planned_days: float = 0
    remaining_unplanned_days: float = 0
    utilized_other_days: float = 0


class EmployeeRef(BaseModel):
    code: str
    name: str
    user_id: str | None = None


class LeaveRequest(BaseModel):
    """A leave an employee asked for, waiting on or carrying an admin decision."""

    id: str
    employee_id: str
    start_date: date
    end_date: date
    leave_type: str
    reason: str | None = None
    status: LeaveStatus = LeaveStatus.PENDING
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: str | None = None
    decision_note: str | None = None
    employee: EmployeeRef | None = None


class LeaveSummary(BaseModel):
    """One row of the leave summary view; columns beyond these pass through."""

    model_config = ConfigDict(extra="allow")

    employee_id: str | None = None
    year: int | None = None
    annual_remaining: float | None = None
    sudden_remaining: float | None = None
    sick_used: float | None = None
