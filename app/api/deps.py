from __future__ import annotations

import httpx
from fastapi import Depends, Request

from app.clients.storage import KeyValueStore
from app.config import Settings
from app.core.exceptions import AuthError, ForbiddenError, SessionExpiredError
from app.schemas.domain import Employee
from app.schemas.enums import SessionState
from app.services.auth_provider import AuthProvider
from app.services.auth_service import AuthService
from app.services.data_client import DataClient
from app.services.functions_client import FunctionsClient
from app.services.theme import ThemePreference
from app.session.controller import SessionController
from app.session.router import ViewRouter


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_store(request: Request) -> KeyValueStore:
    return request.app.state.store


def get_provider(request: Request) -> AuthProvider:
    return request.app.state.provider


def get_controller(request: Request) -> SessionController:
    return request.app.state.controller


def get_view_router(request: Request) -> ViewRouter:
    return request.app.state.view_router


def get_theme(request: Request) -> ThemePreference:
    return request.app.state.theme


def get_data_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    provider: AuthProvider = Depends(get_provider),
) -> DataClient:
    return DataClient(client=client, settings=settings, provider=provider)


def get_functions_client(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
    provider: AuthProvider = Depends(get_provider),
) -> FunctionsClient:
    return FunctionsClient(client=client, settings=settings, provider=provider)


def get_auth_service(
    provider: AuthProvider = Depends(get_provider),
    functions: FunctionsClient = Depends(get_functions_client),
    controller: SessionController = Depends(get_controller),
    router: ViewRouter = Depends(get_view_router),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(
        provider=provider,
        functions=functions,
        controller=controller,
        router=router,
        settings=settings,
    )


async def require_session(controller: SessionController = Depends(get_controller)) -> str:
    """Check the login lifetime before every protected call. Returns the subject id."""
    was_active = controller.state is SessionState.ACTIVE
    if not await controller.check():
        if was_active:
            raise SessionExpiredError(message="Session expired. Please sign in again.")
        raise AuthError(message="Not authenticated (no session)")
    return controller.subject or ""


async def get_current_employee(
    user_id: str = Depends(require_session),
    data: DataClient = Depends(get_data_client),
) -> Employee:
    return await data.get_my_employee(user_id)


async def require_admin(employee: Employee = Depends(get_current_employee)) -> Employee:
    if not employee.is_admin:
        raise ForbiddenError(message="Not authorized")
    return employee
