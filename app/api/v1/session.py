from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_controller, get_data_client, get_theme, get_view_router
from app.core.exceptions import LeaveManagerError
from app.core.logging import get_logger
from app.schemas.responses import SessionStatus, ThemeResponse, ViewResponse
from app.services.data_client import DataClient
from app.services.theme import ThemePreference
from app.session.controller import SessionController
from app.session.router import ViewRouter

logger = get_logger(__name__)
router = APIRouter()


@router.get("/session", response_model=SessionStatus)
async def session_status(controller: SessionController = Depends(get_controller)) -> SessionStatus:
    await controller.check()
    return controller.snapshot()


@router.post("/session/focus", response_model=SessionStatus)
async def focus_regained(controller: SessionController = Depends(get_controller)) -> SessionStatus:
    """Called by the front end on visibility/focus; a suspended tab catches up here."""
    await controller.handle_focus_regained()
    return controller.snapshot()


@router.get("/view", response_model=ViewResponse)
async def resolve_view(
    path: str = Query("/", max_length=200),
    controller: SessionController = Depends(get_controller),
    view_router: ViewRouter = Depends(get_view_router),
    data: DataClient = Depends(get_data_client),
) -> ViewResponse:
    effective = await controller.check()
    role = None
    if effective and controller.subject and path.startswith("/app/admin"):
        try:
            role = (await data.get_my_employee(controller.subject)).role
        except LeaveManagerError as exc:
            logger.warning("view_role_lookup_failed", error=exc.message)
    decision = view_router.resolve(path, effective, role.value if role else None)
    if decision.found:
        view_router.navigate(decision.path, replace=decision.redirected)
    return ViewResponse(
        requested=path,
        path=decision.path,
        redirected=decision.redirected,
        found=decision.found,
        history=view_router.history,
    )


@router.get("/preferences/theme", response_model=ThemeResponse)
async def get_theme_preference(theme: ThemePreference = Depends(get_theme)) -> ThemeResponse:
    return ThemeResponse(theme=theme.get())


@router.post("/preferences/theme/toggle", response_model=ThemeResponse)
async def toggle_theme(theme: ThemePreference = Depends(get_theme)) -> ThemeResponse:
    current, persisted = theme.toggle()
    return ThemeResponse(theme=current, persisted=persisted)
