from __future__ import annotations

import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from app.core.exceptions import LeaveManagerError
from app.core.logging import bind_request, clear_request, get_logger
from app.schemas.responses import ErrorResponse

logger = get_logger(__name__)


async def leave_manager_exception_handler(
    request: Request, exc: LeaveManagerError
) -> JSONResponse:
    logger.error(
        "leave_manager_error",
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
        path=request.url.path,
    )
    body = ErrorResponse(
        error_code=exc.error_code,
        message=exc.message,
        detail=exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


async def request_context_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    bind_request(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request()
    response.headers["x-request-id"] = request_id
    return response
