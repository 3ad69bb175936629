from __future__ import annotations

from typing import Any

import httpx

from app.clients.http_client import bearer, error_message
from app.config import Settings
from app.core.exceptions import AuthError, FunctionCallError
from app.core.logging import get_logger
from app.schemas.requests import InviteEmployeeRequest, ResetPasswordRequest
from app.schemas.responses import FunctionResult
from app.services.auth_provider import AuthProvider

logger = get_logger(__name__)


class FunctionsClient:
    """Calls the administrative serverless functions.

    Admin calls carry the signed-in admin's access token; the function checks
    the caller's role itself. Failures come back as ``{"error": "..."}`` and are
    raised as FunctionCallError with that text.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings, provider: AuthProvider) -> None:
        self._client = client
        self._settings = settings
        self._provider = provider

    async def _invoke(self, name: str, body: dict[str, Any], token: str | None) -> dict[str, Any]:
        headers = bearer(token) if token else {}
        try:
            resp = await self._client.post(f"/functions/v1/{name}", json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise FunctionCallError(message=f"{name} request failed", detail=str(exc)) from exc

        if resp.status_code >= 400:
            message = error_message(resp, "Failed")
            logger.warning("function_call_failed", function=name, status=resp.status_code, error=message)
            raise FunctionCallError(
                message=message, detail=f"function={name}", status_code=resp.status_code
            )
        try:
            data = resp.json()
        except ValueError:
            data = {}
        logger.info("function_called", function=name)
        return data if isinstance(data, dict) else {}

    def _admin_token(self) -> str:
        token = self._provider.access_token
        if not token:
            raise AuthError(message="No session")
        return token

    async def invite_employee(self, payload: InviteEmployeeRequest) -> FunctionResult:
        data = await self._invoke(
            "admin-invite", payload.model_dump(mode="json"), self._admin_token()
        )
        return FunctionResult.model_validate(data)

    async def reset_password(self, payload: ResetPasswordRequest) -> FunctionResult:
        data = await self._invoke(
            "admin-reset-password", payload.model_dump(mode="json"), self._admin_token()
        )
        return FunctionResult.model_validate(data)

    async def employee_signup(self, email: str, password: str) -> FunctionResult:
        """First-time password for an email that already exists in the employees table."""
        data = await self._invoke("employee-signup", {"email": email, "password": password}, None)
        return FunctionResult.model_validate(data)
