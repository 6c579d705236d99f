# FILE: core/panel_api/errors.py

import enum
from dataclasses import dataclass
from typing import Optional


class PanelErrorKind(str, enum.Enum):
    """Every way a panel call can fail, independent of the panel product."""
    PANEL_NOT_FOUND = "PanelNotFound"
    INVALID_CREDENTIALS = "InvalidCredentials"
    UNREACHABLE = "Unreachable"
    OFFLINE = "Offline"
    CONNECTION_FAILED = "ConnectionFailed"
    REMOTE_HTTP_ERROR = "RemoteHttpError"
    MALFORMED_RESPONSE = "MalformedResponse"
    UNSUPPORTED_OPERATION = "UnsupportedOperation"

    @property
    def http_status(self) -> int:
        """Suggested status code for the route layer."""
        return _HTTP_STATUS[self]


_HTTP_STATUS = {
    PanelErrorKind.PANEL_NOT_FOUND: 404,
    PanelErrorKind.INVALID_CREDENTIALS: 401,
    PanelErrorKind.UNREACHABLE: 504,
    PanelErrorKind.OFFLINE: 503,
    PanelErrorKind.CONNECTION_FAILED: 502,
    PanelErrorKind.REMOTE_HTTP_ERROR: 502,
    PanelErrorKind.MALFORMED_RESPONSE: 502,
    PanelErrorKind.UNSUPPORTED_OPERATION: 501,
}


@dataclass(frozen=True)
class PanelError:
    kind: PanelErrorKind
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} [{self.status_code}]: {self.message}"
        return f"{self.kind.value}: {self.message}"


class PanelAPIError(Exception):
    """
    Raised inside the adapter layer for expected remote failures.
    Adapters and the session provider turn it into a failed PanelResult
    before it reaches the gateway's callers.
    """

    def __init__(self, kind: PanelErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.error = PanelError(kind=kind, message=message, status_code=status_code)

    @property
    def kind(self) -> PanelErrorKind:
        return self.error.kind
