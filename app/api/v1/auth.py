from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_auth_service, get_controller
from app.schemas.requests import (
    ForgotPasswordRequest,
    LoginRequest,
    RecoverySessionRequest,
    SignUpRequest,
    UpdatePasswordRequest,
)
from app.schemas.responses import LoginResponse, MessageResponse, SessionStatus
from app.services.auth_service import AuthService
from app.session.controller import SessionController

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    controller: SessionController = Depends(get_controller),
) -> LoginResponse:
    session = await auth.sign_in(body.login, body.password)
    return LoginResponse(email=session.user.email or auth.to_email(body.login), session=controller.snapshot())


@router.post("/signup", response_model=LoginResponse)
async def signup(
    body: SignUpRequest,
    auth: AuthService = Depends(get_auth_service),
    controller: SessionController = Depends(get_controller),
) -> LoginResponse:
    session = await auth.sign_up_employee(body.email, body.password)
    return LoginResponse(email=session.user.email or body.email, session=controller.snapshot())


@router.post("/logout", response_model=SessionStatus)
async def logout(
    auth: AuthService = Depends(get_auth_service),
    controller: SessionController = Depends(get_controller),
) -> SessionStatus:
    await auth.sign_out()
    return controller.snapshot()


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.send_password_reset(body.login)
    return MessageResponse(message="If the account exists, a reset link has been sent.")


@router.post("/recovery-session", response_model=SessionStatus)
async def recovery_session(
    body: RecoverySessionRequest,
    auth: AuthService = Depends(get_auth_service),
    controller: SessionController = Depends(get_controller),
) -> SessionStatus:
    await auth.recover_session(body.access_token, body.refresh_token, body.expires_in)
    return controller.snapshot()


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    body: UpdatePasswordRequest, auth: AuthService = Depends(get_auth_service)
) -> MessageResponse:
    await auth.update_password(body.password)
    return MessageResponse(message="Password updated.")
