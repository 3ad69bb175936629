from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from app.clients.http_client import bearer, error_message
from app.clients.storage import KeyValueStore
from app.config import Settings
from app.core.exceptions import AuthError, SignOutScopeUnsupportedError, StorageUnavailableError
from app.core.logging import get_logger
from app.schemas.domain import AuthUser, Session
from app.schemas.enums import AuthChangeEvent, SignOutScope

logger = get_logger(__name__)

AuthListener = Callable[[AuthChangeEvent, Session | None], Awaitable[None]]

# Status codes a server without scoped logout answers with
_SCOPE_REJECTED = frozenset({400, 404, 405, 422})

_AUTO_REFRESH_TICK = 30.0


class Subscription:
    def __init__(self, listeners: list[AuthListener], listener: AuthListener) -> None:
        self._listeners = listeners
        self._listener = listener

    def unsubscribe(self) -> None:
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class AuthProvider:
    """Client for the hosted identity provider (GoTrue REST API).

    Keeps the current session in memory and mirrors it into durable storage
    under ``settings.auth_storage_key`` so a restart picks the login back up.
    Every state change is broadcast to subscribers as an AuthChangeEvent.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings, store: KeyValueStore) -> None:
        self._client = client
        self._settings = settings
        self._store = store
        self._storage_key = settings.auth_storage_key
        self._session: Session | None = None
        self._loaded = False
        self._listeners: list[AuthListener] = []
        self._refresh_task: asyncio.Task[None] | None = None

    # -- session access -------------------------------------------------

    async def get_session(self) -> Session | None:
        if not self._loaded:
            self._session = self._load_persisted()
            self._loaded = True
        return self._session

    @property
    def access_token(self) -> str | None:
        return self._session.access_token if self._session else None

    def on_auth_state_change(self, listener: AuthListener) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)

    async def _emit(self, event: AuthChangeEvent, session: Session | None) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                logger.warning("auth_listener_failed", auth_event=event.value, exc_info=True)

    # -- credential flows -----------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        try:
            resp = await self._client.post(
                "/auth/v1/token",
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except httpx.HTTPError as exc:
            raise AuthError(message="Sign in request failed", detail=str(exc)) from exc
        if resp.status_code >= 400:
            raise AuthError(
                message=error_message(resp, "Invalid login credentials"),
                detail=f"status={resp.status_code}",
            )
        session = self._parse_session(resp.json())
        self._set_session(session)
        logger.info("provider_signed_in", user_id=session.user.id)
        await self._emit(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def refresh_session(self) -> Session:
        current = await self.get_session()
        if current is None:
            raise AuthError(message="Not authenticated (no session)")
        try:
            resp = await self._client.post(
                "/auth/v1/token",
                params={"grant_type": "refresh_token"},
                json={"refresh_token": current.refresh_token},
            )
        except httpx.HTTPError as exc:
            raise AuthError(message="Token refresh request failed", detail=str(exc)) from exc
        if resp.status_code >= 400:
            # Refresh token revoked or expired; the login is gone.
            self._set_session(None)
            await self._emit(AuthChangeEvent.SIGNED_OUT, None)
            raise AuthError(
                message=error_message(resp, "Session refresh failed"),
                detail=f"status={resp.status_code}",
            )
        session = self._parse_session(resp.json())
        self._set_session(session)
        logger.info("provider_token_refreshed", user_id=session.user.id)
        await self._emit(AuthChangeEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self, scope: SignOutScope | None = None) -> None:
        """Revoke the session server-side and drop the local copy.

        A scoped call the server does not understand raises
        SignOutScopeUnsupportedError and keeps the local copy, so the caller
        can retry unscoped with the same token.

        If a new session replaced the revoked one while the request was in
        flight, the new session is left alone and no event is emitted.
        """
        session = await self.get_session()
        failure: httpx.HTTPError | None = None
        if session is not None:
            params = {"scope": scope.value} if scope else None
            try:
                resp = await self._client.post(
                    "/auth/v1/logout", params=params, headers=bearer(session.access_token)
                )
            except httpx.HTTPError as exc:
                failure = exc
            else:
                if scope is not None and resp.status_code in _SCOPE_REJECTED:
                    raise SignOutScopeUnsupportedError(
                        message="Scoped sign-out is not supported",
                        detail=f"scope={scope.value}, status={resp.status_code}",
                    )
                if resp.status_code >= 400:
                    # 401/403: the token is already invalid server-side.
                    logger.info("provider_sign_out_rejected", status=resp.status_code)
            if self._session is not session:
                logger.info(
                    "provider_sign_out_superseded",
                    revoked_user_id=session.user.id,
                    failed=failure is not None,
                )
                return

        self._set_session(None)
        logger.info("provider_signed_out", scope=scope.value if scope else None)
        await self._emit(AuthChangeEvent.SIGNED_OUT, None)
        if failure is not None:
            raise AuthError(message="Sign out request failed", detail=str(failure)) from failure

    async def get_user(self) -> AuthUser:
        """Validate the current access token against the provider."""
        token = self.access_token
        if token is None:
            raise AuthError(message="Not authenticated (no session)")
        return await self._fetch_user(token)

    async def _fetch_user(self, token: str) -> AuthUser:
        try:
            resp = await self._client.get("/auth/v1/user", headers=bearer(token))
        except httpx.HTTPError as exc:
            raise AuthError(message="Auth user request failed", detail=str(exc)) from exc
        if resp.status_code >= 400:
            raise AuthError(message=f"Auth user error: {error_message(resp)}")
        return AuthUser.model_validate(resp.json())

    async def set_session(
        self, access_token: str, refresh_token: str, expires_in: int | None = None
    ) -> Session:
        """Adopt the tokens carried by a password recovery link.

        The access token is checked against the provider before it is stored.
        Emits PASSWORD_RECOVERY.
        """
        user = await self._fetch_user(access_token)
        body: dict[str, Any] = {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "user": user.model_dump(),
        }
        if expires_in is not None:
            body["expires_in"] = expires_in
        session = self._parse_session(body)
        self._set_session(session)
        logger.info("provider_recovery_session", user_id=user.id)
        await self._emit(AuthChangeEvent.PASSWORD_RECOVERY, session)
        return session

    async def reset_password_for_email(self, email: str, redirect_to: str) -> None:
        try:
            resp = await self._client.post(
                "/auth/v1/recover",
                params={"redirect_to": redirect_to},
                json={"email": email},
            )
        except httpx.HTTPError as exc:
            raise AuthError(message="Password reset request failed", detail=str(exc)) from exc
        if resp.status_code >= 400:
            raise AuthError(message=error_message(resp, "Password reset failed"))
        logger.info("password_reset_requested")

    async def update_user(self, password: str) -> AuthUser:
        token = self.access_token
        if token is None:
            raise AuthError(message="Not authenticated (no session)")
        try:
            resp = await self._client.put(
                "/auth/v1/user", json={"password": password}, headers=bearer(token)
            )
        except httpx.HTTPError as exc:
            raise AuthError(message="Password update request failed", detail=str(exc)) from exc
        if resp.status_code >= 400:
            raise AuthError(message=error_message(resp, "Password update failed"))
        user = AuthUser.model_validate(resp.json())
        await self._emit(AuthChangeEvent.USER_UPDATED, self._session)
        return user

    # -- auto refresh ---------------------------------------------------

    def start_auto_refresh(self) -> None:
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.get_running_loop().create_task(self._auto_refresh())

    async def stop_auto_refresh(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _auto_refresh(self) -> None:
        while True:
            await asyncio.sleep(_AUTO_REFRESH_TICK)
            if self.needs_refresh():
                try:
                    await self.refresh_session()
                except AuthError as exc:
                    logger.warning("auto_refresh_failed", error=exc.message, detail=exc.detail)

    def needs_refresh(self, now: float | None = None) -> bool:
        session = self._session
        if session is None or session.expires_at is None:
            return False
        now = time.time() if now is None else now
        return session.expires_at - now <= self._settings.TOKEN_REFRESH_MARGIN_SECONDS

    # -- persistence ----------------------------------------------------

    def _parse_session(self, body: dict[str, Any]) -> Session:
        if body.get("expires_at") is None and body.get("expires_in") is not None:
            body = {**body, "expires_at": int(time.time()) + int(body["expires_in"])}
        try:
            return Session.model_validate(body)
        except ValidationError as exc:
            raise AuthError(message="Malformed session from provider", detail=str(exc)) from exc

    def _set_session(self, session: Session | None) -> None:
        self._session = session
        self._loaded = True
        try:
            if session is None:
                self._store.remove_item(self._storage_key)
            else:
                self._store.set_item(self._storage_key, session.model_dump_json())
        except StorageUnavailableError:
            logger.warning("provider_session_persist_failed", exc_info=True)

    def _load_persisted(self) -> Session | None:
        try:
            raw = self._store.get_item(self._storage_key)
        except StorageUnavailableError:
            logger.warning("provider_session_load_failed", exc_info=True)
            return None
        if not raw:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValidationError:
            logger.warning("provider_session_corrupt", key=self._storage_key)
            return None
