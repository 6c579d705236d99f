# FILE: core/panel_api/models.py

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .errors import PanelError, PanelErrorKind

LOGGER = logging.getLogger(__name__)


class PanelKind(str, enum.Enum):
    THREEXUI = "threexui"
    MARZBAN = "marzban"

    @classmethod
    def from_value(cls, value: Any) -> "PanelKind":
        """
        Resolves a stored panel type to a kind.
        Records created before Marzban support carry '3x-ui' or nothing at all,
        so anything unrecognized is treated as a 3x-ui panel.
        """
        if isinstance(value, cls):
            return value
        raw = getattr(value, "value", value)
        normalized = str(raw or "").strip().lower()
        if normalized in _KIND_ALIASES:
            return _KIND_ALIASES[normalized]
        LOGGER.warning(f"Unknown panel type '{raw}', falling back to 3x-ui.")
        return cls.THREEXUI


_KIND_ALIASES = {
    "threexui": PanelKind.THREEXUI,
    "3x-ui": PanelKind.THREEXUI,
    "3xui": PanelKind.THREEXUI,
    "x-ui": PanelKind.THREEXUI,
    "xui": PanelKind.THREEXUI,
    "marzban": PanelKind.MARZBAN,
}


class PanelOperation(str, enum.Enum):
    TEST_CONNECTION = "TestConnection"
    GET_SYSTEM_STATS = "GetSystemStats"
    LIST_INBOUNDS = "ListInbounds"
    LIST_USERS = "ListUsers"
    GET_USER = "GetUser"
    CREATE_USER = "CreateUser"
    UPDATE_USER = "UpdateUser"
    DELETE_USER = "DeleteUser"
    RESET_USER_TRAFFIC = "ResetUserTraffic"
    LIST_ADMINS = "ListAdmins"
    CREATE_ADMIN = "CreateAdmin"
    UPDATE_ADMIN = "UpdateAdmin"
    DELETE_ADMIN = "DeleteAdmin"
    LIST_NODES = "ListNodes"


def normalize_base_url(url: str) -> str:
    return (url or "").strip().rstrip("/")


@dataclass(frozen=True)
class PanelRecord:
    """Read-only view of a stored panel, as the adapter layer needs it."""
    id: Optional[int]
    kind: PanelKind
    base_url: str
    username: str
    password: str = field(repr=False)
    name: Optional[str] = None

    @classmethod
    def from_model(cls, panel: Any) -> "PanelRecord":
        """Builds a record from a PanelCredential row (or anything shaped like one)."""
        return cls(
            id=getattr(panel, "id", None),
            kind=PanelKind.from_value(getattr(panel, "panel_type", None)),
            base_url=normalize_base_url(panel.api_url),
            username=panel.username,
            password=panel.password,
            name=getattr(panel, "name", None),
        )


@dataclass
class PanelSession:
    """
    Authentication artifact for one panel, valid for one gateway call.
    3x-ui sessions carry cookies, Marzban sessions carry a bearer token.
    """
    kind: PanelKind
    base_url: str
    username: str
    cookies: Dict[str, str] = field(default_factory=dict, repr=False)
    token: Optional[str] = field(default=None, repr=False)

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.kind == PanelKind.MARZBAN:
            headers["Authorization"] = f"Bearer {self.token}"
        elif self.cookies:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in self.cookies.items())
        return headers


@dataclass
class SystemStats:
    """Panel-agnostic stats. None means the panel does not expose the value."""
    cpu: Optional[float] = None
    memory: Optional[float] = None
    disk: Optional[float] = None
    uptime: Optional[Any] = None
    version: Optional[str] = None
    total_users: int = 0
    active_users: int = 0
    expired_users: int = 0
    total_inbounds: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cpu": self.cpu,
            "memory": self.memory,
            "disk": self.disk,
            "uptime": self.uptime,
            "version": self.version,
            "total_users": self.total_users,
            "active_users": self.active_users,
            "expired_users": self.expired_users,
            "total_inbounds": self.total_inbounds,
        }


@dataclass
class ConnectionStatus:
    connected: bool
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[PanelError] = None


@dataclass
class PanelResult:
    """Either a success payload or a PanelError, never both."""
    success: bool
    data: Any = None
    error: Optional[PanelError] = None

    @classmethod
    def ok(cls, data: Any = None) -> "PanelResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: PanelError) -> "PanelResult":
        return cls(success=False, error=error)

    @property
    def error_kind(self) -> Optional[PanelErrorKind]:
        return self.error.kind if self.error else None
