from __future__ import annotations

from typing import Callable

from app.clients.storage import KeyValueStore
from app.core.exceptions import SignOutScopeUnsupportedError, StorageUnavailableError
from app.core.logging import get_logger
from app.schemas.domain import Session
from app.schemas.enums import AuthChangeEvent, SessionState, SignOutScope
from app.schemas.responses import SessionStatus
from app.services.auth_provider import AuthProvider, Subscription
from app.session.router import LOGIN_PATH, ViewRouter
from app.session.timer import SessionTimer

logger = get_logger(__name__)


class SessionController:
    """Owns the effective login state: NO_SESSION -> ACTIVE -> EXPIRED -> NO_SESSION.

    Driven by provider auth events, timer callbacks and focus-regained
    checks. The provider may still hold a valid token after this controller
    has decided the login is over; the controller's view wins.
    """

    def __init__(
        self,
        provider: AuthProvider,
        timer: SessionTimer,
        router: ViewRouter,
        store: KeyValueStore,
        credential_prefix: str = "sb-",
        credential_suffix: str = "-auth-token",
    ) -> None:
        self._provider = provider
        self._timer = timer
        self._router = router
        self._store = store
        self._prefix = credential_prefix
        self._suffix = credential_suffix
        self._state = SessionState.NO_SESSION
        self._subject: str | None = None
        # Bumped whenever a login becomes active; lets an in-flight logout detect a newer login.
        self._generation = 0
        self._subscription: Subscription | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def subject(self) -> str | None:
        return self._subject

    @property
    def effective(self) -> bool:
        return self._state is SessionState.ACTIVE and not self._timer.is_expired()

    # -- lifecycle ------------------------------------------------------

    async def start(self) -> None:
        if self._subscription is None:
            self._subscription = self._provider.on_auth_state_change(self.handle_auth_event)
        session = await self._provider.get_session()
        if session is None:
            # A mark without a provider session belongs to a login that is gone.
            self._timer.forget()
            return
        await self._observe(session)

    async def stop(self) -> None:
        """Teardown: stop listening and cancel timers. The mark survives for the next start."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._timer.cancel()

    # -- events ---------------------------------------------------------

    async def handle_auth_event(self, event: AuthChangeEvent, session: Session | None) -> None:
        logger.debug("auth_event", auth_event=event.value, has_session=session is not None)
        if event is AuthChangeEvent.SIGNED_IN:
            if session is None:
                return
            if self._state is SessionState.ACTIVE and self._subject == session.user.id:
                return
            await self._establish(session)
        elif event is AuthChangeEvent.TOKEN_REFRESHED:
            # Same logical login with a new token: mark and timers stay as they are.
            if session is not None and self._state is SessionState.NO_SESSION:
                await self._observe(session)
        elif event is AuthChangeEvent.SIGNED_OUT:
            self._end("provider_signed_out")
        elif session is None:
            self._end(f"provider_{event.value.lower()}")
        else:
            await self._observe(session)

    async def handle_focus_regained(self) -> bool:
        return await self.check()

    async def check(self) -> bool:
        """Re-evaluate the lifetime; expire and force logout when it has run out."""
        if self._state is SessionState.ACTIVE and self._timer.is_expired():
            self._state = SessionState.EXPIRED
            logger.info(
                "session_expired",
                user_id=self._subject,
                started_at=self._timer.cached_mark,
                max_duration_ms=self._timer.max_duration_ms,
            )
            await self.force_logout(reason="expired")
        return self.effective

    async def logout(self) -> None:
        await self.force_logout(reason="user")

    # -- transitions ----------------------------------------------------

    async def _establish(self, session: Session) -> None:
        """Explicit sign-in: drop old timers before stamping and arming anew."""
        self._timer.cancel()
        started_at = self._timer.begin_fresh()
        self._state = SessionState.ACTIVE
        self._generation += 1
        self._subject = session.user.id
        logger.info("session_established", user_id=self._subject, started_at=started_at)
        self._timer.arm(self.check)

    async def _observe(self, session: Session) -> None:
        """A session that already exists (restart, restored tab): reuse its mark."""
        if self._state is SessionState.ACTIVE:
            if self._subject == session.user.id:
                return
            self._timer.forget()
        started_at = self._timer.resolve_start()
        self._state = SessionState.ACTIVE
        self._generation += 1
        self._subject = session.user.id
        logger.info("session_observed", user_id=self._subject, started_at=started_at)
        if self._timer.is_expired():
            await self.check()
            return
        self._timer.arm(self.check)

    def _end(self, reason: str) -> None:
        if (
            self._state is SessionState.NO_SESSION
            and self._timer.cached_mark is None
            and not self._timer.armed
        ):
            return
        self._timer.forget()
        self._state = SessionState.NO_SESSION
        self._subject = None
        self._router.navigate(LOGIN_PATH, replace=True)
        logger.info("session_ended", reason=reason)

    async def force_logout(self, reason: str = "user") -> None:
        """Tear down local and remote session state. Safe to call repeatedly.

        Everything before the first await runs atomically on the loop, so an
        overlapping second call sees NO_SESSION and returns. A login that
        becomes active while the provider sign-out is awaited is newer than
        this logout; the remaining steps are skipped for it.
        """
        if self._state is SessionState.NO_SESSION:
            return
        user_id = self._subject
        generation = self._generation

        self._best_effort("cancel_timers", self._timer.cancel)
        self._best_effort("clear_marks", self._timer.forget)
        self._state = SessionState.NO_SESSION
        self._subject = None

        await self._provider_sign_out(generation)
        if self._generation != generation:
            logger.info("forced_logout_superseded", reason=reason, user_id=user_id)
            return
        self._best_effort("scrub_credentials", self._scrub_credentials)
        self._best_effort("navigate", lambda: self._router.navigate(LOGIN_PATH, replace=True))
        logger.info("forced_logout", reason=reason, user_id=user_id)

    async def _provider_sign_out(self, generation: int) -> None:
        try:
            await self._provider.sign_out(SignOutScope.LOCAL)
            return
        except SignOutScopeUnsupportedError:
            logger.info("scoped_sign_out_unsupported")
        except Exception:
            logger.warning("forced_logout_step_failed", step="sign_out", exc_info=True)
            return
        if self._generation != generation:
            # The unscoped retry would revoke the newer login's token.
            return
        try:
            await self._provider.sign_out()
        except Exception:
            logger.warning("forced_logout_step_failed", step="sign_out_unscoped", exc_info=True)

    def _scrub_credentials(self) -> None:
        """Remove provider credential entries left behind by a failed or offline sign-out."""
        try:
            keys = self._store.keys()
        except StorageUnavailableError:
            logger.warning("credential_scrub_skipped", exc_info=True)
            return
        for key in keys:
            if not (key.startswith(self._prefix) and key.endswith(self._suffix)):
                continue
            try:
                self._store.remove_item(key)
                logger.info("credential_scrubbed", key=key)
            except StorageUnavailableError:
                logger.warning("credential_scrub_failed", key=key, exc_info=True)

    @staticmethod
    def _best_effort(step: str, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception:
            logger.warning("forced_logout_step_failed", step=step, exc_info=True)

    # -- reporting ------------------------------------------------------

    def snapshot(self) -> SessionStatus:
        active = self._state is SessionState.ACTIVE
        return SessionStatus(
            state=self._state,
            effective=self.effective,
            user_id=self._subject,
            started_at=self._timer.cached_mark if active else None,
            expires_at=self._timer.expires_at() if active else None,
            remaining_seconds=self._timer.remaining_ms() / 1000 if active else 0,
        )
