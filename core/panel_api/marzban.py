# FILE: core/panel_api/marzban.py

import logging
from typing import Any, Dict, List, Optional

from .base import PanelAPI, expect_type, require_param
from .models import PanelKind, PanelSession, SystemStats

LOGGER = logging.getLogger(__name__)

# Defaults applied by the dashboard when creating a Marzban user.
USER_DEFAULTS = {
    "proxies": {},
    "data_limit": 0,
    "expire": None,
    "data_limit_reset_strategy": "no_reset",
    "status": "active",
    "note": "",
}
# Forwarded to Marzban only when the caller supplies them.
USER_OPTIONAL_FIELDS = ("inbounds", "on_hold_timeout", "on_hold_expire_duration", "next_plan")


def _without(params: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if k not in keys}


class MarzbanPanel(PanelAPI):
    """Implementation of the PanelAPI interface for Marzban panels."""
    kind = PanelKind.MARZBAN

    async def list_inbounds(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Marzban groups inbounds by protocol; flatten them into one list."""
        response = await self._api_request(session, "GET", "/api/inbounds")
        if isinstance(response, list):
            return response
        response = expect_type(response, dict, "inbound map")

        inbounds = []
        for protocol, entries in response.items():
            for entry in expect_type(entries, list, f"{protocol} inbounds"):
                inbounds.append({"protocol": protocol, **entry} if isinstance(entry, dict) else entry)
        return inbounds

    async def list_users(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = expect_type(await self._api_request(session, "GET", "/api/users"), dict, "user list")
        return expect_type(response.get("users") or [], list, "user list")

    async def get_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username", "user_id")
        return expect_type(await self._api_request(session, "GET", f"/api/user/{username}"), dict, "user")

    async def create_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username")
        payload = {"username": username}
        for key, default in USER_DEFAULTS.items():
            value = params.get(key)
            payload[key] = value if value is not None else default
        for key in USER_OPTIONAL_FIELDS:
            if params.get(key) is not None:
                payload[key] = params[key]

        response = await self._api_request(session, "POST", "/api/user", json=payload)
        LOGGER.info(f"Created Marzban user '{username}' at {session.base_url}")
        return expect_type(response, dict, "created user")

    async def update_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username", "user_id")
        payload = _without(params, "username", "user_id")
        response = await self._api_request(session, "PUT", f"/api/user/{username}", json=payload)
        return expect_type(response, dict, "updated user")

    async def delete_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username", "user_id")
        await self._api_request(session, "DELETE", f"/api/user/{username}")
        return {"username": username, "deleted": True}

    async def reset_user_traffic(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username", "user_id")
        response = await self._api_request(session, "POST", f"/api/user/{username}/reset")
        return expect_type(response, dict, "reset user")

    async def list_admins(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        return expect_type(await self._api_request(session, "GET", "/api/admins"), list, "admin list")

    async def create_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        payload = {
            "username": require_param(params, "username"),
            "password": require_param(params, "password"),
            "is_sudo": bool(params.get("is_sudo", False)),
        }
        for key in ("telegram_id", "discord_webhook"):
            if params.get(key) is not None:
                payload[key] = params[key]
        response = await self._api_request(session, "POST", "/api/admin", json=payload)
        return expect_type(response, dict, "created admin")

    async def update_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username")
        payload = _without(params, "username")
        response = await self._api_request(session, "PUT", f"/api/admin/{username}", json=payload)
        return expect_type(response, dict, "updated admin")

    async def delete_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        username = require_param(params, "username")
        await self._api_request(session, "DELETE", f"/api/admin/{username}")
        return {"username": username, "deleted": True}

    async def list_nodes(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        return expect_type(await self._api_request(session, "GET", "/api/nodes"), list, "node list")

    async def get_system_stats(self, session: PanelSession, params: Dict[str, Any]) -> SystemStats:
        system = expect_type(await self._api_request(session, "GET", "/api/system"), dict, "system info")
        users = await self.list_users(session, params)

        statuses = [user.get("status") for user in users if isinstance(user, dict)]
        return SystemStats(
            cpu=_first_number(system, "cpu_usage", "cpu_percent"),
            memory=_memory_percent(system),
            disk=_first_number(system, "disk_percent"),
            uptime=system.get("uptime"),
            version=system.get("version"),
            total_users=len(users),
            active_users=statuses.count("active"),
            expired_users=statuses.count("expired"),
            total_inbounds=system.get("inbounds_count"),
        )


def _first_number(data: Dict[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = data.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return round(float(value), 2)
    return None


def _memory_percent(system: Dict[str, Any]) -> Optional[float]:
    used, total = system.get("mem_used"), system.get("mem_total")
    if isinstance(used, (int, float)) and isinstance(total, (int, float)) and total:
        return round(used / total * 100, 2)
    return _first_number(system, "memory_percent")
