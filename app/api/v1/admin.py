from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import StreamingResponse

from app.api.deps import get_data_client, get_functions_client, require_admin, require_session
from app.schemas.domain import Employee, LeaveRecord, LeaveRequest
from app.schemas.requests import (
    BulkLeaveRequest,
    EmployeeUpdate,
    InviteEmployeeRequest,
    LeaveDecision,
    LeaveRecordCreate,
    LeaveRecordUpdate,
    ResetPasswordRequest,
)
from app.schemas.responses import BulkInsertResult, EmployeeOverview, FunctionResult
from app.services.data_client import EXPORT_HEADERS, DataClient
from app.services.functions_client import FunctionsClient
from app.utils.csv_export import stream_csv

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@router.get("/employees", response_model=list[Employee])
async def list_employees(data: DataClient = Depends(get_data_client)) -> list[Employee]:
    return await data.list_employees()


@router.patch("/employees/{employee_id}", response_model=Employee)
async def update_employee(
    employee_id: str, body: EmployeeUpdate, data: DataClient = Depends(get_data_client)
) -> Employee:
    return await data.update_employee(employee_id, body.model_dump(mode="json", exclude_unset=True))


@router.get("/employees/{code}/overview", response_model=EmployeeOverview)
async def employee_overview(
    code: str,
    year: int | None = Query(None, ge=1900, le=2999),
    data: DataClient = Depends(get_data_client),
) -> EmployeeOverview:
    year = year or date.today().year
    employee = await data.get_employee_by_code(code)
    return EmployeeOverview(
        employee=employee,
        year=year,
        status=await data.get_year_status(employee.id, year),
        records=await data.list_leave_records(employee.id, year),
    )


@router.post("/records", response_model=LeaveRecord, status_code=201)
async def create_record(
    body: LeaveRecordCreate, data: DataClient = Depends(get_data_client)
) -> LeaveRecord:
    return await data.create_leave_record(body)


@router.patch("/records/{record_id}", response_model=LeaveRecord)
async def update_record(
    record_id: str, body: LeaveRecordUpdate, data: DataClient = Depends(get_data_client)
) -> LeaveRecord:
    return await data.update_leave_record(record_id, body)


@router.delete("/records/{record_id}", status_code=204)
async def delete_record(record_id: str, data: DataClient = Depends(get_data_client)) -> Response:
    await data.delete_leave_record(record_id)
    return Response(status_code=204)


@router.get("/requests/pending", response_model=list[LeaveRequest])
async def pending_requests(data: DataClient = Depends(get_data_client)) -> list[LeaveRequest]:
    return await data.list_pending_requests()


@router.patch("/requests/{request_id}", response_model=LeaveRequest)
async def decide_request(
    request_id: str,
    body: LeaveDecision,
    decided_by: str = Depends(require_session),
    data: DataClient = Depends(get_data_client),
) -> LeaveRequest:
    return await data.decide_request(request_id, body.status, decided_by, body.note)


@router.post("/records/bulk", response_model=BulkInsertResult)
async def bulk_insert(
    body: BulkLeaveRequest, data: DataClient = Depends(get_data_client)
) -> BulkInsertResult:
    return await data.bulk_insert(body.rows)


@router.get("/records/export.csv")
async def export_records(data: DataClient = Depends(get_data_client)) -> StreamingResponse:
    rows = await data.export_rows()
    filename = f"leave-records-all-{date.today().isoformat()}.csv"
    return stream_csv(headers=EXPORT_HEADERS, rows=rows, filename=filename)


@router.post("/invite", response_model=FunctionResult)
async def invite_employee(
    body: InviteEmployeeRequest, functions: FunctionsClient = Depends(get_functions_client)
) -> FunctionResult:
    return await functions.invite_employee(body)


@router.post("/reset-password", response_model=FunctionResult)
async def reset_password(
    body: ResetPasswordRequest, functions: FunctionsClient = Depends(get_functions_client)
) -> FunctionResult:
    return await functions.reset_password(body)
