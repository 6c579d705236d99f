# FILE: core/panel_api/session.py

import logging
from typing import Any, Dict

import httpx

from .base import parse_json, status_error, transport_error
from .errors import PanelAPIError, PanelErrorKind
from .models import PanelKind, PanelResult, PanelSession, normalize_base_url

LOGGER = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def _cookies_from_headers(response: httpx.Response) -> Dict[str, str]:
    """Collects name=value pairs from every Set-Cookie header, dropping attributes."""
    cookies = {}
    for header in response.headers.get_list("set-cookie"):
        pair = header.split(";", 1)[0].strip()
        if "=" not in pair:
            continue
        name, value = pair.split("=", 1)
        cookies[name.strip()] = value.strip()
    return cookies


class SessionProvider:
    """
    Logs into a panel and hands back a PanelSession.
    No retries and no caching: every gateway call gets a fresh login.
    """

    def __init__(self, client: httpx.AsyncClient, xui_timeout: float = 10.0, marzban_timeout: float = 15.0):
        self.client = client
        self.xui_timeout = xui_timeout
        self.marzban_timeout = marzban_timeout

    async def acquire(self, base_url: str, username: str, password: str, kind: Any) -> PanelResult:
        """Returns a PanelResult carrying a PanelSession, or the login failure."""
        try:
            session = await self.login(base_url, username, password, kind)
        except PanelAPIError as e:
            LOGGER.warning(f"Login to {normalize_base_url(base_url)} as '{username}' failed: {e.error}")
            return PanelResult.fail(e.error)
        return PanelResult.ok(session)

    async def login(self, base_url: str, username: str, password: str, kind: Any) -> PanelSession:
        kind = PanelKind.from_value(kind)
        base_url = normalize_base_url(base_url)
        if kind == PanelKind.MARZBAN:
            return await self._login_marzban(base_url, username, password)
        return await self._login_xui(base_url, username, password)

    async def _post(self, url: str, timeout: float, **kwargs) -> httpx.Response:
        try:
            response = await self.client.post(url, timeout=timeout, **kwargs)
        except httpx.RequestError as e:
            raise transport_error(e, url) from e
        # Server-side failures are not a verdict on the credentials; skip the body.
        if response.status_code >= 500:
            raise status_error(response)
        return response

    async def _login_xui(self, base_url: str, username: str, password: str) -> PanelSession:
        """3x-ui: JSON login, the session lives in the returned cookies."""
        url = f"{base_url}/login"
        LOGGER.debug(f"Attempting 3x-ui login to {url}")
        response = await self._post(
            url,
            self.xui_timeout,
            json={"username": username, "password": password},
            headers={"Content-Type": "application/json"},
        )

        data = parse_json(response)
        if not isinstance(data, dict):
            raise PanelAPIError(PanelErrorKind.MALFORMED_RESPONSE, "Unexpected login response from 3x-ui panel")
        if not data.get("success"):
            LOGGER.info(f"3x-ui panel {base_url} rejected login: {data.get('msg')}")
            raise PanelAPIError(PanelErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS, status_code=response.status_code)

        cookies = _cookies_from_headers(response)
        if not cookies:
            raise PanelAPIError(PanelErrorKind.MALFORMED_RESPONSE, "3x-ui login succeeded but no session cookie was set")

        LOGGER.info(f"Successfully logged into 3x-ui panel at {base_url}")
        return PanelSession(kind=PanelKind.THREEXUI, base_url=base_url, username=username, cookies=cookies)

    async def _login_marzban(self, base_url: str, username: str, password: str) -> PanelSession:
        """Marzban: OAuth2 password form, the session is the returned bearer token."""
        url = f"{base_url}/api/admin/token"
        LOGGER.debug(f"Attempting Marzban login to {url}")
        response = await self._post(
            url,
            self.marzban_timeout,
            data={"username": username, "password": password},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        data = parse_json(response)
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            detail = data.get("detail") if isinstance(data, dict) else None
            LOGGER.info(f"Marzban panel {base_url} rejected login: {detail}")
            raise PanelAPIError(PanelErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS, status_code=response.status_code)

        LOGGER.info(f"Successfully obtained Marzban token from {base_url}")
        return PanelSession(kind=PanelKind.MARZBAN, base_url=base_url, username=username, token=token)
