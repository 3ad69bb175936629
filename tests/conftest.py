from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.clients.storage import MemoryStore
from app.config import Settings
from app.core.exceptions import AuthError, SignOutScopeUnsupportedError, StorageUnavailableError
from app.main import create_app
from app.schemas.domain import AuthUser, Session
from app.schemas.enums import AuthChangeEvent, SignOutScope
from app.services.auth_provider import Subscription
from app.session.controller import SessionController
from app.session.router import ViewRouter
from app.session.storage import MarkStore
from app.session.timer import SessionTimer

T0 = 1_700_000_000_000
MARK_KEY = "leave_manager_session_started_at"
SUPABASE_URL = "https://abcd.supabase.co"
CREDENTIAL_KEY = "sb-abcd-auth-token"
RECOVERY_TOKEN = "recovery-token"


class ManualClock:
    def __init__(self, start: int = T0) -> None:
        self.now = start

    def now_ms(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += round(seconds * 1000)


class ManualHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Fires due callbacks in time order while moving the clock forward."""

    def __init__(self, clock: ManualClock) -> None:
        self.clock = clock
        self._entries: list[list] = []

    def call_later(self, delay, callback):
        handle = ManualHandle()
        self._entries.append([self.clock.now + round(delay * 1000), None, callback, handle])
        return handle

    def call_every(self, interval, callback):
        handle = ManualHandle()
        step = round(interval * 1000)
        self._entries.append([self.clock.now + step, step, callback, handle])
        return handle

    @property
    def live_handles(self) -> list[ManualHandle]:
        return [e[3] for e in self._entries if not e[3].cancelled]

    async def advance(self, seconds: float) -> None:
        target = self.clock.now + round(seconds * 1000)
        while True:
            due = [e for e in self._entries if not e[3].cancelled and e[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda e: e[0])
            self.clock.now = max(self.clock.now, entry[0])
            if entry[1] is None:
                self._entries.remove(entry)
            else:
                entry[0] += entry[1]
            await entry[2]()
        self.clock.now = target
        self._entries = [e for e in self._entries if not e[3].cancelled]


class FailingStore:
    """Storage that refuses every operation, like a sandboxed or full local storage."""

    def get_item(self, key):
        raise StorageUnavailableError("denied")

    def set_item(self, key, value):
        raise StorageUnavailableError("denied")

    def remove_item(self, key):
        raise StorageUnavailableError("denied")

    def keys(self):
        raise StorageUnavailableError("denied")


class FakeProvider:
    """In-memory identity provider that records sign-out calls."""

    def __init__(self, session: Session | None = None) -> None:
        self.session = session
        self.listeners: list = []
        self.sign_out_calls: list[SignOutScope | None] = []
        self.scoped_supported = True
        self.offline = False

    @property
    def access_token(self) -> str | None:
        return self.session.access_token if self.session else None

    async def get_session(self) -> Session | None:
        return self.session

    def on_auth_state_change(self, listener) -> Subscription:
        self.listeners.append(listener)
        return Subscription(self.listeners, listener)

    async def emit(self, event: AuthChangeEvent, session: Session | None) -> None:
        self.session = session
        for listener in list(self.listeners):
            await listener(event, session)

    async def sign_out(self, scope: SignOutScope | None = None) -> None:
        self.sign_out_calls.append(scope)
        if scope is not None and not self.scoped_supported:
            raise SignOutScopeUnsupportedError("scope not supported")
        if self.offline:
            raise AuthError("Sign out request failed", detail="offline")
        await self.emit(AuthChangeEvent.SIGNED_OUT, None)


def build_session(user_id: str = "u1", token: str = "at-1") -> Session:
    return Session(
        access_token=token,
        refresh_token=f"rt-{token}",
        expires_in=3600,
        expires_at=T0 // 1000 + 3600,
        user=AuthUser(id=user_id, email=f"{user_id}@ienergy.local"),
    )


def token_body(user_id: str, email: str, token: str = "at-1") -> dict:
    return {
        "access_token": token,
        "refresh_token": f"rt-{token}",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": T0 // 1000 + 3600,
        "user": {"id": user_id, "email": email},
    }


EMPLOYEES = {
    "u-admin": {
        "id": "e-1",
        "auth_user_id": "u-admin",
        "code": "200001",
        "name": "Mona Adel Hassan",
        "user_id": "mona.hassan",
        "hiring_date": "2020-02-01",
        "planned_annual_balance": 21,
        "unplanned_annual_balance": 7,
        "roles": {"name": "Admin"},
    },
    "u-emp": {
        "id": "e-2",
        "auth_user_id": "u-emp",
        "code": "200002",
        "name": "Sara Ali Mahmoud",
        "user_id": "sara.ali",
        "hiring_date": "2022-06-15",
        "planned_annual_balance": 14,
        "unplanned_annual_balance": 7,
        "roles": {"name": "User"},
    },
}
LOGINS = {"mona.hassan@ienergy.local": "u-admin", "sara.ali@ienergy.local": "u-emp"}


class FakeBackend:
    """Routes httpx requests to canned auth, PostgREST and function answers."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.logout_scopes: list[str | None] = []
        self.recovery_emails: list[str] = []
        self.password_updates: list[str] = []
        self.leave_requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/auth/v1/token":
            body = json.loads(request.content)
            user_id = LOGINS.get(body.get("email", ""))
            if user_id is None or body.get("password") != "secret":
                return httpx.Response(
                    400,
                    json={"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
            return httpx.Response(200, json=token_body(user_id, body["email"]))
        if path == "/auth/v1/logout":
            self.logout_scopes.append(request.url.params.get("scope"))
            return httpx.Response(204)
        if path == "/auth/v1/recover":
            self.recovery_emails.append(json.loads(request.content)["email"])
            return httpx.Response(200, json={})
        if path == "/auth/v1/user":
            if request.headers.get("authorization") != f"Bearer {RECOVERY_TOKEN}":
                return httpx.Response(401, json={"msg": "invalid JWT"})
            user = {"id": "u-emp", "email": "sara.ali@ienergy.local"}
            if request.method == "PUT":
                self.password_updates.append(json.loads(request.content)["password"])
            return httpx.Response(200, json=user)
        if path == "/rest/v1/leave_requests":
            return self._leave_requests(request)
        if path == "/rest/v1/employees":
            wanted = request.url.params.get("auth_user_id", "").removeprefix("eq.")
            if wanted:
                row = EMPLOYEES.get(wanted)
                return httpx.Response(200, json=[row] if row else [])
            return httpx.Response(200, json=sorted(EMPLOYEES.values(), key=lambda e: e["code"]))
        if path == "/rest/v1/leave_records" and request.method == "GET":
            return httpx.Response(200, json=[])
        if path == "/rest/v1/leave_types":
            return httpx.Response(
                200,
                json=[
                    {"id": 1, "name": "Annual", "deduct_from": "planned"},
                    {"id": 2, "name": "Sudden", "deduct_from": "unplanned"},
                    {"id": 3, "name": "Sick", "deduct_from": "none"},
                ],
            )
        return httpx.Response(404, json={"message": f"no route for {path}"})

    def _leave_requests(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if request.method == "POST":
            row = {
                "id": f"q-{len(self.leave_requests) + 1}",
                "status": "pending",
                "requested_at": f"2024-04-{len(self.leave_requests) + 1:02d}T08:00:00+00:00",
                "decided_at": None,
                "decided_by": None,
                "decision_note": None,
                **json.loads(request.content),
            }
            self.leave_requests.append(row)
            return httpx.Response(201, json=[row])
        if request.method == "PATCH":
            wanted = params["id"].removeprefix("eq.")
            rows = [r for r in self.leave_requests if r["id"] == wanted]
            for row in rows:
                row.update(json.loads(request.content))
            return httpx.Response(200, json=rows)
        rows = list(self.leave_requests)
        for column in ("employee_id", "status"):
            if column in params:
                rows = [r for r in rows if r[column] == params[column].removeprefix("eq.")]
        if "employee:employees" in params.get("select", ""):
            by_id = {e["id"]: e for e in EMPLOYEES.values()}
            rows = [
                {**r, "employee": {k: by_id[r["employee_id"]][k] for k in ("code", "name", "user_id")}}
                for r in rows
            ]
        return httpx.Response(200, json=rows)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SUPABASE_URL=SUPABASE_URL,
        SUPABASE_ANON_KEY="anon-key",
        MAX_SESSION_MINUTES=15,
        SESSION_RECHECK_SECONDS=15,
    )


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def view_router() -> ViewRouter:
    return ViewRouter()


@pytest.fixture
def make_timer(clock, scheduler):
    def factory(backing_store) -> SessionTimer:
        return SessionTimer(
            MarkStore(backing_store, MARK_KEY, clock),
            scheduler,
            max_duration_ms=15 * 60 * 1000,
            recheck_seconds=15,
        )

    return factory


@pytest.fixture
def timer(make_timer, store) -> SessionTimer:
    return make_timer(store)


@pytest.fixture
def controller(provider, timer, view_router, store) -> SessionController:
    return SessionController(provider, timer, view_router, store)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app_factory(settings, clock, backend):
    def factory(backing_store=None):
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(backend), base_url=settings.SUPABASE_URL
        )
        return create_app(
            settings,
            store=backing_store if backing_store is not None else MemoryStore(),
            http_client=http_client,
            scheduler=ManualScheduler(clock),
            clock=clock,
        )

    return factory


@pytest.fixture
def client(app_factory) -> TestClient:
    with TestClient(app_factory()) as c:
        yield c
