# FILE: core/panel_api/base.py

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from .errors import PanelAPIError, PanelErrorKind
from .models import PanelKind, PanelOperation, PanelResult, PanelSession, SystemStats

LOGGER = logging.getLogger(__name__)

# Operation -> adapter method. TestConnection is handled by the gateway itself.
_OPERATION_METHODS = {
    PanelOperation.GET_SYSTEM_STATS: "get_system_stats",
    PanelOperation.LIST_INBOUNDS: "list_inbounds",
    PanelOperation.LIST_USERS: "list_users",
    PanelOperation.GET_USER: "get_user",
    PanelOperation.CREATE_USER: "create_user",
    PanelOperation.UPDATE_USER: "update_user",
    PanelOperation.DELETE_USER: "delete_user",
    PanelOperation.RESET_USER_TRAFFIC: "reset_user_traffic",
    PanelOperation.LIST_ADMINS: "list_admins",
    PanelOperation.CREATE_ADMIN: "create_admin",
    PanelOperation.UPDATE_ADMIN: "update_admin",
    PanelOperation.DELETE_ADMIN: "delete_admin",
    PanelOperation.LIST_NODES: "list_nodes",
}

_MESSAGE_FIELDS = ("detail", "msg", "message")


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def transport_error(exc: httpx.RequestError, url: str) -> PanelAPIError:
    """Maps an httpx network failure to the matching error kind."""
    if isinstance(exc, httpx.TimeoutException):
        return PanelAPIError(
            PanelErrorKind.UNREACHABLE,
            f"Connection timeout - panel may be unreachable ({_describe(exc)})",
        )
    if isinstance(exc, httpx.ConnectError):
        return PanelAPIError(
            PanelErrorKind.OFFLINE,
            f"Connection refused - panel may be offline ({_describe(exc)})",
        )
    LOGGER.debug(f"Transport failure for {url}: {exc!r}")
    return PanelAPIError(PanelErrorKind.CONNECTION_FAILED, f"Connection failed: {_describe(exc)}")


def status_error(response: httpx.Response) -> PanelAPIError:
    return PanelAPIError(
        PanelErrorKind.REMOTE_HTTP_ERROR,
        f"HTTP {response.status_code}: {response.reason_phrase}",
        status_code=response.status_code,
    )


def _extract_message(body: Dict[str, Any]) -> Optional[str]:
    for key in _MESSAGE_FIELDS:
        value = body.get(key)
        if not value:
            continue
        # FastAPI validation errors come back as a list of {"loc", "msg", ...}
        if isinstance(value, list):
            parts = [item.get("msg", str(item)) if isinstance(item, dict) else str(item) for item in value]
            return "; ".join(parts)
        return str(value)
    return None


def http_error(response: httpx.Response) -> PanelAPIError:
    """Builds the error for a non-2xx answer, preferring the panel's own message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    message = _extract_message(body) if isinstance(body, dict) else None
    if not message:
        return status_error(response)
    return PanelAPIError(PanelErrorKind.REMOTE_HTTP_ERROR, message, status_code=response.status_code)


def parse_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise PanelAPIError(
            PanelErrorKind.MALFORMED_RESPONSE,
            f"Invalid JSON response from {response.request.url.path}: {_describe(e)}",
            status_code=response.status_code,
        ) from e


def expect_type(value: Any, expected: type, what: str) -> Any:
    if not isinstance(value, expected):
        raise PanelAPIError(
            PanelErrorKind.MALFORMED_RESPONSE,
            f"Unexpected {what}: expected {expected.__name__}, got {type(value).__name__}",
        )
    return value


def expect_number(value: Any, what: str, cast: type = int) -> Any:
    """Numeric panel field; missing counts as zero, anything unparsable is malformed."""
    if value is None or value == "":
        return cast(0)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise PanelAPIError(
            PanelErrorKind.MALFORMED_RESPONSE,
            f"Unexpected {what}: {value!r} is not a number",
        ) from e


def require_param(params: Dict[str, Any], *keys: str) -> Any:
    """Returns the first present value among `keys`; a missing one is a caller bug."""
    for key in keys:
        value = params.get(key)
        if value is not None and value != "":
            return value
    raise ValueError(f"Missing required parameter: {' or '.join(keys)}")


class PanelAPI(ABC):
    """
    An abstract base class (interface) for all panel API wrappers.
    Defines the standard operations that every panel implementation must have.

    Adapters are stateless: they are built for one gateway call around the
    httpx client of that call and receive an already acquired session.
    Methods return plain payloads and raise PanelAPIError for remote failures;
    `execute` turns both into a PanelResult.
    """
    kind: PanelKind

    def __init__(self, client: httpx.AsyncClient, timeout: float):
        self.client = client
        self.timeout = timeout

    async def execute(self, session: PanelSession, operation: Any, params: Optional[Dict[str, Any]] = None) -> PanelResult:
        operation = PanelOperation(operation)
        method_name = _OPERATION_METHODS.get(operation)
        if method_name is None:
            raise ValueError(f"{operation.value} is not dispatched to panel adapters.")

        try:
            data = await getattr(self, method_name)(session, params or {})
        except PanelAPIError as e:
            LOGGER.warning(f"{operation.value} failed on {self.kind.value} panel {session.base_url}: {e.error}")
            return PanelResult.fail(e.error)
        return PanelResult.ok(data)

    async def _api_request(self, session: PanelSession, method: str, endpoint: str, **kwargs) -> Any:
        """Performs an authenticated request and returns the decoded JSON body."""
        url = f"{session.base_url}{endpoint}"
        headers = {**session.headers(), **kwargs.pop("headers", {})}
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise transport_error(e, url) from e

        if not response.is_success:
            raise http_error(response)
        if not response.content:
            return {"success": True}
        return parse_json(response)

    def _unsupported(self, operation: PanelOperation) -> PanelAPIError:
        LOGGER.error(f"{operation.value} is not supported by {self.kind.value} panels.")
        return PanelAPIError(
            PanelErrorKind.UNSUPPORTED_OPERATION,
            f"{operation.value} is not supported by {self.kind.value} panels",
        )

    @abstractmethod
    async def get_system_stats(self, session: PanelSession, params: Dict[str, Any]) -> SystemStats:
        pass

    @abstractmethod
    async def list_inbounds(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def list_users(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def get_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def create_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def update_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def delete_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def reset_user_traffic(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def list_admins(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def create_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def update_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def delete_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def list_nodes(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass
