# FILE: core/panel_api/helpers.py

import logging
from typing import Any

import httpx

from .base import PanelAPI
from .marzban import MarzbanPanel
from .models import PanelKind
from .xui import XUIPanel

LOGGER = logging.getLogger(__name__)

_ADAPTERS = {
    PanelKind.THREEXUI: XUIPanel,
    PanelKind.MARZBAN: MarzbanPanel,
}


def timeout_for_kind(kind: PanelKind, settings: Any) -> float:
    if kind == PanelKind.MARZBAN:
        return settings.MARZBAN_TIMEOUT
    return settings.XUI_TIMEOUT


def get_api_for_kind(kind: Any, client: httpx.AsyncClient, settings: Any) -> PanelAPI:
    """
    Main factory to create an adapter for a panel kind.
    This is the central point for handling different panel types.
    """
    kind = PanelKind.from_value(kind)
    adapter_class = _ADAPTERS[kind]
    LOGGER.debug(f"Selected {adapter_class.__name__} for panel kind '{kind.value}'")
    return adapter_class(client, timeout_for_kind(kind, settings))
