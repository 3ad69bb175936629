from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from app.api.router import api_router
from app.clients.http_client import close_http_client, create_http_client
from app.clients.storage import KeyValueStore, create_store
from app.config import Settings
from app.core.exceptions import LeaveManagerError
from app.core.logging import get_logger, setup_logging
from app.core.middleware import leave_manager_exception_handler, request_context_middleware
from app.services.auth_provider import AuthProvider
from app.services.theme import ThemePreference
from app.session.controller import SessionController
from app.session.router import ViewRouter
from app.session.scheduler import AsyncioScheduler, Scheduler
from app.session.storage import Clock, MarkStore
from app.session.timer import SessionTimer

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    overrides: dict = app.state.overrides
    setup_logging(log_level=settings.LOG_LEVEL, debug=settings.DEBUG)

    store: KeyValueStore = overrides.get("store") or create_store(settings.STORAGE_PATH)
    http_client: httpx.AsyncClient = overrides.get("http_client") or create_http_client(settings)
    scheduler: Scheduler = overrides.get("scheduler") or AsyncioScheduler()
    clock: Clock | None = overrides.get("clock")

    provider = AuthProvider(http_client, settings, store)
    timer = SessionTimer(
        MarkStore(store, settings.SESSION_START_KEY, clock),
        scheduler,
        max_duration_ms=settings.max_session_ms,
        recheck_seconds=settings.SESSION_RECHECK_SECONDS,
    )
    router = ViewRouter()
    controller = SessionController(
        provider,
        timer,
        router,
        store,
        credential_prefix=settings.AUTH_STORAGE_PREFIX,
        credential_suffix=settings.AUTH_STORAGE_SUFFIX,
    )

    app.state.store = store
    app.state.http_client = http_client
    app.state.provider = provider
    app.state.view_router = router
    app.state.controller = controller
    app.state.theme = ThemePreference(store, settings.THEME_KEY)

    await controller.start()
    provider.start_auto_refresh()
    logger.info("client_started", session_state=controller.state.value)
    yield
    await provider.stop_auto_refresh()
    await controller.stop()
    if isinstance(scheduler, AsyncioScheduler):
        await scheduler.drain()
    await close_http_client(http_client)


def create_app(settings: Settings | None = None, **overrides: object) -> FastAPI:
    """Build the app. ``overrides`` may supply ``store``, ``http_client``, ``scheduler`` or ``clock``."""
    app = FastAPI(
        title="Leave Manager Client API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or Settings()
    app.state.overrides = overrides
    app.add_exception_handler(LeaveManagerError, leave_manager_exception_handler)
    app.middleware("http")(request_context_middleware)
    app.include_router(api_router)
    return app


app = create_app()
