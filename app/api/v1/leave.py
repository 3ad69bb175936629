from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_employee, get_data_client, require_session
from app.schemas.domain import Employee, LeaveRecord, LeaveRequest, LeaveSummary, LeaveType, YearStatus
from app.schemas.requests import LeaveRequestCreate
from app.schemas.responses import ProfileResponse
from app.services.data_client import DataClient

router = APIRouter()


def _this_year() -> int:
    return date.today().year


@router.get("/me", response_model=ProfileResponse)
async def me(employee: Employee = Depends(get_current_employee)) -> ProfileResponse:
    return ProfileResponse(employee=employee, role=employee.role)


@router.get("/me/status", response_model=YearStatus | None)
async def my_status(
    year: int | None = Query(None, ge=1900, le=2999),
    employee: Employee = Depends(get_current_employee),
    data: DataClient = Depends(get_data_client),
) -> YearStatus | None:
    return await data.get_year_status(employee.id, year or _this_year())


@router.get("/me/records", response_model=list[LeaveRecord])
async def my_records(
    year: int | None = Query(None, ge=1900, le=2999),
    employee: Employee = Depends(get_current_employee),
    data: DataClient = Depends(get_data_client),
) -> list[LeaveRecord]:
    return await data.list_leave_records(employee.id, year or _this_year())


@router.get("/me/summary", response_model=LeaveSummary | None)
async def my_summary(
    year: int | None = Query(None, ge=1900, le=2999),
    employee: Employee = Depends(get_current_employee),
    data: DataClient = Depends(get_data_client),
) -> LeaveSummary | None:
    return await data.get_leave_summary(employee.id, year)


@router.get("/me/requests", response_model=list[LeaveRequest])
async def my_requests(
    employee: Employee = Depends(get_current_employee),
    data: DataClient = Depends(get_data_client),
) -> list[LeaveRequest]:
    return await data.list_my_requests(employee.id)


@router.post("/me/requests", response_model=LeaveRequest, status_code=201)
async def create_request(
    body: LeaveRequestCreate,
    employee: Employee = Depends(get_current_employee),
    data: DataClient = Depends(get_data_client),
) -> LeaveRequest:
    return await data.create_leave_request(employee.id, body)


@router.get("/leave-types", response_model=list[LeaveType], dependencies=[Depends(require_session)])
async def leave_types(data: DataClient = Depends(get_data_client)) -> list[LeaveType]:
    return await data.list_leave_types()
