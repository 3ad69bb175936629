from __future__ import annotations

from app.config import Settings
from app.core.exceptions import AuthError, InvalidInputError
from app.core.logging import get_logger
from app.schemas.domain import Session
from app.services.auth_provider import AuthProvider
from app.services.functions_client import FunctionsClient
from app.session.controller import SessionController
from app.session.router import HOME_PATH, ViewRouter
from app.utils.normalize import normalize_login

logger = get_logger(__name__)


class AuthService:
    """User-facing sign in, sign up, sign out and password flows."""

    def __init__(
        self,
        provider: AuthProvider,
        functions: FunctionsClient,
        controller: SessionController,
        router: ViewRouter,
        settings: Settings,
    ) -> None:
        self._provider = provider
        self._functions = functions
        self._controller = controller
        self._router = router
        self._settings = settings

    def to_email(self, login: str) -> str:
        email = normalize_login(login, self._settings.LOGIN_EMAIL_DOMAIN)
        if not email:
            raise InvalidInputError(message="User ID is required")
        return email

    async def sign_in(self, login: str, password: str) -> Session:
        email = self.to_email(login)
        # The provider's SIGNED_IN event reaches the controller before this returns.
        session = await self._provider.sign_in_with_password(email, password)
        if not self._controller.effective:
            raise AuthError(message="Session could not be established")
        self._router.navigate(HOME_PATH, replace=True)
        return session

    async def sign_up_employee(self, email: str, password: str) -> Session:
        email = email.strip().lower()
        await self._functions.employee_signup(email, password)
        logger.info("employee_signed_up", email=email)
        return await self.sign_in(email, password)

    async def sign_out(self) -> None:
        await self._controller.logout()

    async def send_password_reset(self, login: str) -> None:
        await self._provider.reset_password_for_email(
            self.to_email(login), self._settings.PASSWORD_RESET_REDIRECT_URL
        )

    async def recover_session(
        self, access_token: str, refresh_token: str, expires_in: int | None = None
    ) -> Session:
        """Adopt the tokens from a password recovery link so the password can be changed."""
        # PASSWORD_RECOVERY reaches the controller before this returns.
        session = await self._provider.set_session(access_token, refresh_token, expires_in)
        if not self._controller.effective:
            raise AuthError(message="Session could not be established")
        return session

    async def update_password(self, password: str) -> None:
        if not self._controller.effective:
            raise AuthError(message="Not authenticated (no session)")
        await self._provider.update_user(password)
        logger.info("password_updated", user_id=self._controller.subject)
        self._router.navigate(HOME_PATH, replace=True)
