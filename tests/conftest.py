import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, Optional, Tuple

import httpx
import pytest

from core.panel_api.gateway import PanelGateway

XUI_URL = "https://xui.example"
MARZBAN_URL = "https://marzban.example"


class FakePanel:
    """Routes (method, path) to canned responses and records every request."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.prefix_routes = []
        self.requests = []

    def add(self, method: str, path: str, status: int = 200, json_body: Any = None,
            text: Optional[str] = None, headers=None, handler=None):
        if handler is None:
            def handler(request, status=status, json_body=json_body, text=text, headers=headers):
                if text is not None:
                    return httpx.Response(status, text=text, headers=headers)
                return httpx.Response(status, json=json_body, headers=headers)
        self.routes[(method, path)] = handler
        return self

    def add_prefix(self, method: str, prefix: str, handler):
        self.prefix_routes.append((method, prefix, handler))
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            handler = next(
                (h for method, prefix, h in self.prefix_routes
                 if method == request.method and request.url.path.startswith(prefix)),
                None,
            )
        if handler is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        return handler(request)

    @property
    def calls(self):
        return [f"{r.method} {r.url.path}" for r in self.requests]

    def last(self, method: str, path: str) -> httpx.Request:
        matches = [r for r in self.requests if r.method == method and r.url.path == path]
        assert matches, f"no {method} {path} in {self.calls}"
        return matches[-1]

    def json_of(self, method: str, path: str) -> Any:
        return json.loads(self.last(method, path).content)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def xui_login_ok(fake: FakePanel, prefix: str = "") -> FakePanel:
    return fake.add(
        "POST", f"{prefix}/login",
        json_body={"success": True, "msg": "Login Successfully", "obj": None},
        headers=[("set-cookie", "3x-ui=MTcwMDAw; Path=/; HttpOnly")],
    )


def marzban_login_ok(fake: FakePanel, token: str = "tok-123") -> FakePanel:
    return fake.add("POST", "/api/admin/token", json_body={"access_token": token, "token_type": "bearer"})


@pytest.fixture
def settings():
    return SimpleNamespace(
        XUI_TIMEOUT=10.0,
        MARZBAN_TIMEOUT=15.0,
        PANEL_HTTP2=False,
        PANEL_VERIFY_SSL=True,
        PANEL_USER_AGENT="test-agent",
    )


@pytest.fixture
def fake_panel():
    return FakePanel()


@pytest.fixture
def panels():
    return {
        1: SimpleNamespace(id=1, name="xui-main", panel_type="threexui", api_url=XUI_URL + "/",
                           username="admin", password="secret"),
        7: SimpleNamespace(id=7, name="marzban-de", panel_type="marzban", api_url=MARZBAN_URL,
                           username="root", password="hunter2"),
        9: SimpleNamespace(id=9, name="legacy", panel_type="3x-ui", api_url=XUI_URL,
                           username="admin", password="secret"),
    }


@pytest.fixture
def gateway(fake_panel, panels, settings):
    async def loader(panel_id):
        return panels.get(panel_id)

    return PanelGateway(panel_loader=loader, client_factory=fake_panel.client, settings=settings)
