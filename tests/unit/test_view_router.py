from __future__ import annotations

import pytest

from app.session.router import ViewRouter


class TestResolve:
    @pytest.mark.parametrize(
        ("path", "effective", "expected"),
        [
            ("/", True, "/app/dashboard"),
            ("/", False, "/login"),
            ("/login", True, "/app/dashboard"),
            ("/app/history", False, "/login"),
            ("/app/admin/employees", False, "/login"),
        ],
    )
    def test_redirects(self, path, effective, expected):
        decision = ViewRouter.resolve(path, effective)

        assert decision.redirected is True
        assert decision.path == expected

    def test_login_page_for_anonymous(self):
        decision = ViewRouter.resolve("/login", effective=False)

        assert decision.path == "/login"
        assert decision.redirected is False

    def test_admin_route_requires_admin_role(self):
        assert ViewRouter.resolve("/app/admin/approvals", True, "User").path == "/app/dashboard"
        assert ViewRouter.resolve("/app/admin/approvals", True, "Admin").path == "/app/admin/approvals"

    def test_unknown_path_not_found(self):
        decision = ViewRouter.resolve("/nowhere", effective=True)

        assert decision.found is False

    def test_trailing_slash_ignored(self):
        assert ViewRouter.resolve("/app/history/", effective=True).path == "/app/history"


class TestHistory:
    def test_replace_overwrites_current_entry(self):
        router = ViewRouter()
        router.navigate("/app/dashboard")
        router.navigate("/login", replace=True)

        assert router.history == ["/login", "/login"]
        assert router.back() == "/login"

    def test_back_stops_at_first_entry(self):
        router = ViewRouter()

        assert router.back() == "/login"
        assert router.history == ["/login"]
