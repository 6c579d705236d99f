# FILE: config.py

import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"Warning: {name} environment variable is not a number, using {default}.")
        return default


class Config:
    """Runtime settings for the panel integration layer, read from the environment."""

    def __init__(self):
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///xsell.db")

        # --- Panel HTTP ---
        self.XUI_TIMEOUT = _get_float("XUI_TIMEOUT", 10.0)
        self.MARZBAN_TIMEOUT = _get_float("MARZBAN_TIMEOUT", 15.0)
        self.PANEL_HTTP2 = _get_bool("PANEL_HTTP2", True)
        self.PANEL_VERIFY_SSL = _get_bool("PANEL_VERIFY_SSL", True)
        self.PANEL_USER_AGENT = os.getenv("PANEL_USER_AGENT", "X-UI-SELL-Panel/1.0")

        # --- Logging ---
        self.LOG_FILE = os.getenv("LOG_FILE", "xsell.log")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


config = Config()
