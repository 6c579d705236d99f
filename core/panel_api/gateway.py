# FILE: core/panel_api/gateway.py

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import httpx

from config import config
from database.crud import panel_credential as crud_panel

from .errors import PanelError, PanelErrorKind
from .helpers import get_api_for_kind
from .models import (
    ConnectionStatus,
    PanelKind,
    PanelOperation,
    PanelRecord,
    PanelResult,
    normalize_base_url,
)
from .session import SessionProvider

LOGGER = logging.getLogger(__name__)

PanelLoader = Callable[[Any], Union[Any, Awaitable[Any]]]
ClientFactory = Callable[[], httpx.AsyncClient]


class PanelGateway:
    """
    Single entry point for talking to remote panels.

    Every call is self-contained: it opens its own HTTP client, logs in,
    runs one operation and throws the session away. Nothing is retried;
    failures come back as PanelResult values and the caller decides.
    """

    def __init__(
        self,
        panel_loader: Optional[PanelLoader] = None,
        client_factory: Optional[ClientFactory] = None,
        settings: Any = None,
    ):
        self.settings = settings or config
        self.panel_loader = panel_loader or crud_panel.get_panel_by_id
        self.client_factory = client_factory or self._default_client

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            http2=self.settings.PANEL_HTTP2,
            verify=self.settings.PANEL_VERIFY_SSL,
            headers={"User-Agent": self.settings.PANEL_USER_AGENT},
        )

    def _session_provider(self, client: httpx.AsyncClient) -> SessionProvider:
        return SessionProvider(
            client,
            xui_timeout=self.settings.XUI_TIMEOUT,
            marzban_timeout=self.settings.MARZBAN_TIMEOUT,
        )

    async def _load_record(self, panel_id: Any) -> Optional[PanelRecord]:
        panel = self.panel_loader(panel_id)
        if inspect.isawaitable(panel):
            panel = await panel
        if not panel:
            return None
        return panel if isinstance(panel, PanelRecord) else PanelRecord.from_model(panel)

    async def test_connection(self, base_url: str, username: str, password: str, kind: Any = PanelKind.THREEXUI) -> ConnectionStatus:
        """
        Checks credentials before a panel is saved: logs in, then lists admins
        to prove the session works. Never touches local storage.
        """
        kind = PanelKind.from_value(kind)
        base_url = normalize_base_url(base_url)
        LOGGER.info(f"[Gateway] Testing {kind.value} connection to {base_url}")

        async with self.client_factory() as client:
            session_result = await self._session_provider(client).acquire(base_url, username, password, kind)
            if not session_result.success:
                return ConnectionStatus(connected=False, message=session_result.error.message, error=session_result.error)

            api = get_api_for_kind(kind, client, self.settings)
            admins = await api.execute(session_result.data, PanelOperation.LIST_ADMINS)

        if not admins.success:
            return ConnectionStatus(connected=False, message=admins.error.message, error=admins.error)

        message = "Marzban connection successful" if kind == PanelKind.MARZBAN else "Connection successful"
        return ConnectionStatus(connected=True, message=message, details={"admins": len(admins.data)})

    async def execute(self, panel_id: Any, operation: Any, params: Optional[Dict[str, Any]] = None) -> PanelResult:
        """
        Runs one operation against a stored panel:
        resolve record -> select adapter -> authenticate -> dispatch.
        """
        operation = PanelOperation(operation)
        log_prefix = f"[Gateway] panel={panel_id} op={operation.value}"

        LOGGER.debug(f"{log_prefix}: resolving panel record")
        record = await self._load_record(panel_id)
        if record is None:
            LOGGER.warning(f"{log_prefix}: panel not found")
            return PanelResult.fail(PanelError(PanelErrorKind.PANEL_NOT_FOUND, f"Panel {panel_id} not found", status_code=404))

        if operation == PanelOperation.TEST_CONNECTION:
            status = await self.test_connection(record.base_url, record.username, record.password, record.kind)
            return PanelResult.ok(status)

        async with self.client_factory() as client:
            LOGGER.debug(f"{log_prefix}: selecting adapter for {record.kind.value}")
            api = get_api_for_kind(record.kind, client, self.settings)

            LOGGER.debug(f"{log_prefix}: authenticating against {record.base_url}")
            session_result = await self._session_provider(client).acquire(
                record.base_url, record.username, record.password, record.kind
            )
            if not session_result.success:
                return session_result

            LOGGER.debug(f"{log_prefix}: dispatching")
            result = await api.execute(session_result.data, operation, params)

        if result.success:
            LOGGER.debug(f"{log_prefix}: succeeded")
        else:
            LOGGER.info(f"{log_prefix}: failed with {result.error}")
        return result
