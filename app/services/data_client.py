from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterator

import httpx

from app.clients.http_client import bearer, error_message
from app.config import Settings
from app.core.exceptions import (
    AuthError,
    DataLayerError,
    InvalidInputError,
    NotFoundError,
    ProfileNotFoundError,
)
from app.core.logging import get_logger
from app.schemas.domain import (
    Employee,
    LeaveRecord,
    LeaveRequest,
    LeaveSummary,
    LeaveType,
    YearStatus,
)
from app.schemas.enums import LeaveStatus
from app.schemas.requests import LeaveRecordCreate, LeaveRecordUpdate, LeaveRequestCreate
from app.schemas.responses import BulkInsertResult
from app.services.auth_provider import AuthProvider
from app.utils.normalize import normalize_code
from app.utils.retry import with_retry

logger = get_logger(__name__)

EMPLOYEE_COLUMNS = (
    "id,auth_user_id,code,name,user_id,hiring_date,"
    "planned_annual_balance,unplanned_annual_balance,roles(name)"
)
RECORD_COLUMNS = (
    "id,employee_id,code,start_date,end_date,leave_days,leave_type_id,remarks,"
    "leave_types(name,deduct_from)"
)
PENDING_EMPLOYEE_COLUMNS = "code,name,user_id"
EXPORT_PAGE_SIZE = 1000
CODE_CHUNK_SIZE = 500

EXPORT_HEADERS = [
    "RecordId",
    "EmployeeCode",
    "EmployeeName",
    "UserId",
    "StartDate",
    "EndDate",
    "LeaveDays",
    "LeaveType",
    "DeductFrom",
    "Remarks",
    "CreatedAt",
    "UpdatedAt",
]

NO_PROFILE_MESSAGE = (
    "No employee profile is linked to this login. Ask Admin to create your employee "
    "record (and set auth_user_id to your Auth user id)."
)


def _chunks(items: list[str], size: int) -> Iterator[list[str]]:
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _in_filter(values: list[str]) -> str:
    quoted = ",".join('"' + v.replace('"', '\\"') + '"' for v in values)
    return f"in.({quoted})"


class DataClient:
    """PostgREST access to employees, leave types, balance views, leave records and requests.

    Row-level security runs server-side under the caller's access token, so the
    same calls return only the caller's rows for employees and everything for admins.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings, provider: AuthProvider) -> None:
        self._client = client
        self._settings = settings
        self._provider = provider

    def _headers(self) -> dict[str, str]:
        token = self._provider.access_token
        if token is None:
            raise AuthError(message="Not authenticated (no session)")
        return bearer(token)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Any = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        resp = await self._client.request(
            method,
            f"/rest/v1/{table}",
            params=params,
            json=json,
            headers={**self._headers(), **(headers or {})},
        )
        if resp.status_code >= 400:
            message = error_message(resp, f"{table} request failed")
            logger.warning("data_request_failed", table=table, status=resp.status_code, message=message)
            raise DataLayerError(message=message, detail=f"table={table}, status={resp.status_code}")
        return resp

    async def _select(self, table: str, params: Any) -> list[dict[str, Any]]:
        @with_retry(self._settings.MAX_RETRIES, self._settings.BACKOFF_FACTOR)
        async def run() -> list[dict[str, Any]]:
            resp = await self._request("GET", table, params=params)
            return resp.json()

        return await run()

    # -- employees ------------------------------------------------------

    async def get_my_employee(self, auth_user_id: str) -> Employee:
        rows = await self._select(
            "employees",
            {"select": EMPLOYEE_COLUMNS, "auth_user_id": f"eq.{auth_user_id}", "limit": 1},
        )
        if not rows:
            raise ProfileNotFoundError(message=NO_PROFILE_MESSAGE, detail=f"auth_user_id={auth_user_id}")
        return Employee.model_validate(rows[0])

    async def get_employee_by_code(self, code: str) -> Employee:
        code = normalize_code(code)
        rows = await self._select(
            "employees", {"select": EMPLOYEE_COLUMNS, "code": f"eq.{code}", "limit": 1}
        )
        if not rows:
            raise NotFoundError(message=f"Employee not found for code: {code}")
        return Employee.model_validate(rows[0])

    async def list_employees(self) -> list[Employee]:
        rows = await self._select("employees", {"select": EMPLOYEE_COLUMNS, "order": "code.asc"})
        return [Employee.model_validate(r) for r in rows]

    async def update_employee(self, employee_id: str, patch: dict[str, Any]) -> Employee:
        if not patch:
            raise InvalidInputError(message="Nothing to update")
        resp = await self._request(
            "PATCH",
            "employees",
            params={"id": f"eq.{employee_id}", "select": EMPLOYEE_COLUMNS},
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        if not rows:
            raise NotFoundError(message="Employee not found", detail=f"id={employee_id}")
        return Employee.model_validate(rows[0])

    # -- catalog and balances -------------------------------------------

    async def list_leave_types(self) -> list[LeaveType]:
        rows = await self._select("leave_types", {"select": "id,name,deduct_from", "order": "id.asc"})
        return [LeaveType.model_validate(r) for r in rows]

    async def get_year_status(self, employee_id: str, year: int) -> YearStatus | None:
        rows = await self._select(
            "v_employee_year_status",
            {"select": "*", "employee_id": f"eq.{employee_id}", "year": f"eq.{year}", "limit": 1},
        )
        return YearStatus.model_validate(rows[0]) if rows else None

    # -- leave records --------------------------------------------------

    async def list_leave_records(self, employee_id: str, year: int) -> list[LeaveRecord]:
        params = [
            ("select", RECORD_COLUMNS),
            ("employee_id", f"eq.{employee_id}"),
            ("start_date", f"gte.{year}-01-01"),
            ("start_date", f"lte.{year}-12-31"),
            ("order", "start_date.desc"),
        ]
        rows = await self._select("leave_records", params)
        return [LeaveRecord.model_validate(r) for r in rows]

    async def create_leave_record(self, record: LeaveRecordCreate) -> LeaveRecord:
        """Insert one record. The database rejects it if a deducting type would go negative."""
        payload = record.model_dump(mode="json")
        payload["code"] = normalize_code(record.code)
        resp = await self._request(
            "POST",
            "leave_records",
            params={"select": RECORD_COLUMNS},
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        created = LeaveRecord.model_validate(resp.json()[0])
        logger.info("leave_record_created", record_id=created.id, code=payload["code"])
        return created

    async def update_leave_record(self, record_id: str, patch: LeaveRecordUpdate) -> LeaveRecord:
        body = patch.model_dump(mode="json", exclude_unset=True)
        if not body:
            raise InvalidInputError(message="Nothing to update")
        resp = await self._request(
            "PATCH",
            "leave_records",
            params={"id": f"eq.{record_id}", "select": RECORD_COLUMNS},
            json=body,
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        if not rows:
            raise NotFoundError(message="Leave record not found", detail=f"id={record_id}")
        logger.info("leave_record_updated", record_id=record_id)
        return LeaveRecord.model_validate(rows[0])

    async def delete_leave_record(self, record_id: str) -> None:
        await self._request("DELETE", "leave_records", params={"id": f"eq.{record_id}"})
        logger.info("leave_record_deleted", record_id=record_id)

    async def bulk_insert(self, rows: list[LeaveRecordCreate]) -> BulkInsertResult:
        """Insert rows one by one, skipping rows whose employee code does not exist.

        Codes are checked up front so one unknown code does not block the rest.
        The first insert the database rejects stops the batch; rows before it stay.
        """
        normalized = [r.model_copy(update={"code": normalize_code(r.code)}) for r in rows]
        distinct = list(dict.fromkeys(r.code for r in normalized if r.code))
        if not distinct:
            raise InvalidInputError(message="Please enter at least one employee code.")

        existing: set[str] = set()
        for chunk in _chunks(distinct, CODE_CHUNK_SIZE):
            found = await self._select("employees", {"select": "code", "code": _in_filter(chunk)})
            existing.update(normalize_code(e["code"]) for e in found)

        result = BulkInsertResult()
        for row in normalized:
            if row.code not in existing:
                if row.code and row.code not in result.missing_codes:
                    result.missing_codes.append(row.code)
                continue
            try:
                await self.create_leave_record(row)
            except DataLayerError as exc:
                result.error = exc.message
                break
            result.inserted += 1

        logger.info(
            "bulk_insert_completed",
            inserted=result.inserted,
            missing=len(result.missing_codes),
            failed=result.error is not None,
        )
        return result

    # -- leave requests -------------------------------------------------

    async def list_my_requests(self, employee_id: str) -> list[LeaveRequest]:
        rows = await self._select(
            "leave_requests",
            {"select": "*", "employee_id": f"eq.{employee_id}", "order": "requested_at.desc"},
        )
        return [LeaveRequest.model_validate(r) for r in rows]

    async def get_leave_summary(self, employee_id: str, year: int | None = None) -> LeaveSummary | None:
        """Summary row for one year, or the current-year view when no year is given."""
        params = {"select": "*", "employee_id": f"eq.{employee_id}", "limit": 1}
        if year is None:
            view = "v_leave_summary_current_year"
        else:
            view = "v_leave_summary"
            params["year"] = f"eq.{year}"
        rows = await self._select(view, params)
        return LeaveSummary.model_validate(rows[0]) if rows else None

    async def create_leave_request(self, employee_id: str, body: LeaveRequestCreate) -> LeaveRequest:
        payload = body.model_dump(mode="json")
        payload["employee_id"] = employee_id
        resp = await self._request(
            "POST",
            "leave_requests",
            params={"select": "*"},
            json=payload,
            headers={"Prefer": "return=representation"},
        )
        created = LeaveRequest.model_validate(resp.json()[0])
        logger.info("leave_request_created", request_id=created.id, employee_id=employee_id)
        return created

    async def list_pending_requests(self) -> list[LeaveRequest]:
        """Pending requests with the requesting employee embedded, oldest first."""
        rows = await self._select(
            "leave_requests",
            {
                "select": f"*,employee:employees({PENDING_EMPLOYEE_COLUMNS})",
                "status": f"eq.{LeaveStatus.PENDING.value}",
                "order": "requested_at.asc",
            },
        )
        return [LeaveRequest.model_validate(r) for r in rows]

    async def decide_request(
        self, request_id: str, status: LeaveStatus, decided_by: str, note: str | None = None
    ) -> LeaveRequest:
        if status not in (LeaveStatus.APPROVED, LeaveStatus.REJECTED):
            raise InvalidInputError(message="A decision must approve or reject the request")
        resp = await self._request(
            "PATCH",
            "leave_requests",
            params={"id": f"eq.{request_id}", "select": "*"},
            json={
                "status": status.value,
                "decided_at": datetime.now(timezone.utc).isoformat(),
                "decided_by": decided_by,
                "decision_note": note,
            },
            headers={"Prefer": "return=representation"},
        )
        rows = resp.json()
        if not rows:
            raise NotFoundError(message="Leave request not found", detail=f"id={request_id}")
        logger.info("leave_request_decided", request_id=request_id, status=status.value)
        return LeaveRequest.model_validate(rows[0])

    # -- export ---------------------------------------------------------

    async def export_rows(self) -> list[dict[str, Any]]:
        """All leave records, paged, flattened for CSV with employee name and user id."""
        records: list[dict[str, Any]] = []
        offset = 0
        while True:
            batch = await self._select(
                "leave_records",
                {
                    "select": "id,code,start_date,end_date,leave_days,leave_type_id,remarks,"
                    "created_at,updated_at,leave_types(name,deduct_from)",
                    "order": "start_date.asc",
                    "offset": offset,
                    "limit": EXPORT_PAGE_SIZE,
                },
            )
            records.extend(batch)
            if len(batch) < EXPORT_PAGE_SIZE:
                break
            offset += EXPORT_PAGE_SIZE

        codes = list(dict.fromkeys(r["code"] for r in records if r.get("code")))
        by_code: dict[str, dict[str, Any]] = {}
        for chunk in _chunks(codes, CODE_CHUNK_SIZE):
            for emp in await self._select(
                "employees", {"select": "code,name,user_id", "code": _in_filter(chunk)}
            ):
                by_code[emp["code"]] = emp

        rows = []
        for r in records:
            emp = by_code.get(r.get("code") or "", {})
            leave_type = r.get("leave_types") or {}
            rows.append(
                {
                    "RecordId": r.get("id"),
                    "EmployeeCode": r.get("code"),
                    "EmployeeName": emp.get("name", ""),
                    "UserId": emp.get("user_id", ""),
                    "StartDate": r.get("start_date"),
                    "EndDate": r.get("end_date"),
                    "LeaveDays": r.get("leave_days"),
                    "LeaveType": leave_type.get("name", r.get("leave_type_id")),
                    "DeductFrom": leave_type.get("deduct_from", ""),
                    "Remarks": r.get("remarks") or "",
                    "CreatedAt": r.get("created_at"),
                    "UpdatedAt": r.get("updated_at"),
                }
            )
        logger.info("records_exported", count=len(rows))
        return rows
