from __future__ import annotations

from dataclasses import dataclass

LOGIN_PATH = "/login"
HOME_PATH = "/app/dashboard"

PUBLIC_PATHS = frozenset({LOGIN_PATH, "/forgot-password", "/reset-password"})
APP_PATHS = frozenset(
    {
        HOME_PATH,
        "/app/request-new",
        "/app/history",
        "/app/admin/approvals",
        "/app/admin/employees",
    }
)
ADMIN_PREFIX = "/app/admin/"
ADMIN_ROLE = "Admin"


@dataclass(frozen=True)
class RouteDecision:
    path: str
    redirected: bool = False
    found: bool = True


class ViewRouter:
    """Chooses between the unauthenticated and authenticated view trees.

    Holds only navigation history; the session state it routes on is passed in.
    """

    def __init__(self, initial: str = LOGIN_PATH) -> None:
        self._history: list[str] = [initial]

    @property
    def current(self) -> str:
        return self._history[-1]

    @property
    def history(self) -> list[str]:
        return list(self._history)

    def navigate(self, path: str, replace: bool = False) -> None:
        if replace:
            self._history[-1] = path
        else:
            self._history.append(path)

    def back(self) -> str:
        if len(self._history) > 1:
            self._history.pop()
        return self.current

    @staticmethod
    def resolve(path: str, effective: bool, role: str | None = None) -> RouteDecision:
        path = path.rstrip("/") or "/"
        if path in ("/", "/app"):
            target = HOME_PATH if effective else LOGIN_PATH
            return RouteDecision(target, redirected=True)
        if path == LOGIN_PATH and effective:
            return RouteDecision(HOME_PATH, redirected=True)
        if path in PUBLIC_PATHS:
            return RouteDecision(path)
        if path not in APP_PATHS:
            return RouteDecision(path, found=False)
        if not effective:
            return RouteDecision(LOGIN_PATH, redirected=True)
        if path.startswith(ADMIN_PREFIX) and role != ADMIN_ROLE:
            return RouteDecision(HOME_PATH, redirected=True)
        return RouteDecision(path)
