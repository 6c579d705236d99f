# FILE: core/panel_api/xui.py

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from .base import PanelAPI, expect_number, expect_type, require_param
from .errors import PanelAPIError, PanelErrorKind
from .models import PanelKind, PanelOperation, PanelSession, SystemStats

LOGGER = logging.getLogger(__name__)

INBOUNDS_API = "/panel/api/inbounds"

# Field a client is addressed by in updateClient/delClient, per inbound protocol.
CLIENT_KEYS = {"trojan": "password", "shadowsocks": "email"}


def _client_key(protocol: Any) -> str:
    return CLIENT_KEYS.get(protocol, "id")


def _percent(block: Any) -> Optional[float]:
    """3x-ui reports memory and disk as {"current": ..., "total": ...}."""
    if not isinstance(block, dict):
        return None
    total = expect_number(block.get("total"), "server status total", float)
    if not total:
        return None
    return round(expect_number(block.get("current"), "server status current", float) / total * 100, 2)


def _as_float(value: Any) -> Optional[float]:
    try:
        return round(float(value), 2)
    except (TypeError, ValueError):
        return None


def _client_fields(params: Dict[str, Any]) -> Dict[str, Any]:
    """Translates the common user attributes into 3x-ui client fields (only those supplied)."""
    fields = {}
    email = params.get("email") or params.get("username")
    if email:
        fields["email"] = email
    if "enable" in params:
        fields["enable"] = bool(params["enable"])
    elif "status" in params:
        fields["enable"] = params["status"] == "active"
    if "data_limit" in params:
        fields["totalGB"] = int(params["data_limit"] or 0)
    if "expire" in params:
        # Common shape uses unix seconds, 3x-ui stores milliseconds.
        expire = params["expire"]
        fields["expiryTime"] = int(expire) * 1000 if expire else 0
    if "limit_ip" in params:
        fields["limitIp"] = int(params["limit_ip"] or 0)
    for source, target in (("flow", "flow"), ("tg_id", "tgId"), ("sub_id", "subId"), ("reset", "reset")):
        if source in params:
            fields[target] = params[source]
    return fields


def _standardize_client(client: Dict[str, Any], client_ids: Dict[str, str]) -> Dict[str, Any]:
    # X-UI uses 'email' for username, 'enable' for status, 'expiryTime' for expire,
    # and 'up' + 'down' for used_traffic.
    expire_timestamp = expect_number(client.get("expiryTime"), "client expiryTime")
    if expire_timestamp > 0:
        expire_timestamp //= 1000

    email = client.get("email", "")
    return {
        "username": email,
        "status": "active" if client.get("enable") else "disabled",
        "used_traffic": expect_number(client.get("up"), "client up") + expect_number(client.get("down"), "client down"),
        "data_limit": expect_number(client.get("total"), "client total"),
        "expire": expire_timestamp,
        "client_id": client_ids.get(email),
        "xui_id": client.get("id"),
        "xui_inbound_id": client.get("inboundId"),
    }


def _settings_clients(inbound: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Inbound settings arrive as a JSON string holding the client definitions."""
    raw = inbound.get("settings") or "{}"
    try:
        settings = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError as e:
        raise PanelAPIError(
            PanelErrorKind.MALFORMED_RESPONSE,
            f"Inbound {inbound.get('id')} has unreadable settings: {e}",
        ) from e
    if not isinstance(settings, dict):
        return []
    return [c for c in settings.get("clients") or [] if isinstance(c, dict)]


def _client_stats(inbound: Dict[str, Any]) -> List[Dict[str, Any]]:
    stats = expect_type(inbound.get("clientStats") or [], list, f"clientStats of inbound {inbound.get('id')}")
    return [expect_type(entry, dict, "client stats entry") for entry in stats]


class XUIPanel(PanelAPI):
    """
    Implementation of the PanelAPI interface for a 3x-ui panel.
    Clients live inside inbounds, so most user operations need the inbound id.
    """
    kind = PanelKind.THREEXUI

    async def _xui_request(self, session: PanelSession, method: str, endpoint: str, **kwargs) -> Any:
        """3x-ui wraps every answer in {"success", "msg", "obj"}; returns obj."""
        data = expect_type(await self._api_request(session, method, endpoint, **kwargs), dict, f"response from {endpoint}")
        if not data.get("success"):
            raise PanelAPIError(PanelErrorKind.REMOTE_HTTP_ERROR, data.get("msg") or f"3x-ui rejected {endpoint}")
        return data.get("obj")

    async def _get_inbound(self, session: PanelSession, inbound_id: Any) -> Dict[str, Any]:
        inbound = await self._xui_request(session, "GET", f"{INBOUNDS_API}/get/{inbound_id}")
        if inbound is None:
            raise PanelAPIError(PanelErrorKind.REMOTE_HTTP_ERROR, f"Inbound {inbound_id} not found.", status_code=404)
        return expect_type(inbound, dict, "inbound")

    async def list_inbounds(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        inbounds = await self._xui_request(session, "GET", f"{INBOUNDS_API}/list")
        return expect_type(inbounds or [], list, "inbound list")

    async def list_users(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Retrieves all clients from all inbounds, in the common user shape."""
        all_clients = []
        for inbound in await self.list_inbounds(session, params):
            if not isinstance(inbound, dict):
                continue
            key = _client_key(inbound.get("protocol"))
            client_ids = {c.get("email"): c.get(key) for c in _settings_clients(inbound)}
            for client in _client_stats(inbound):
                all_clients.append(_standardize_client(client, client_ids))
        return all_clients

    async def get_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        email = require_param(params, "email", "username")
        client = await self._xui_request(session, "GET", f"{INBOUNDS_API}/getClientTraffics/{email}")
        if client is None:
            raise PanelAPIError(PanelErrorKind.REMOTE_HTTP_ERROR, f"User '{email}' not found.", status_code=404)
        return _standardize_client(expect_type(client, dict, "client traffic"), {})

    async def create_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        inbound_id = require_param(params, "inbound_id")
        require_param(params, "email", "username")

        protocol = params.get("protocol")
        if protocol is None:
            protocol = (await self._get_inbound(session, inbound_id)).get("protocol")
        key = _client_key(protocol)

        client = {
            "enable": True,
            "totalGB": 0,
            "expiryTime": 0,
            "limitIp": 0,
            "flow": "",
            "tgId": "",
            "subId": uuid.uuid4().hex[:16],
            "reset": 0,
        }
        if key == "password":
            client["password"] = params.get("client_id") or uuid.uuid4().hex
        elif key == "id":
            client["id"] = params.get("client_id") or str(uuid.uuid4())
        else:
            client["password"] = params.get("password") or uuid.uuid4().hex
        client.update(_client_fields(params))

        payload = {"id": int(inbound_id), "settings": json.dumps({"clients": [client]})}
        await self._xui_request(session, "POST", f"{INBOUNDS_API}/addClient", json=payload)
        LOGGER.info(f"Created {protocol} client '{client['email']}' on inbound {inbound_id} at {session.base_url}")
        return {"client_id": client[key], "email": client["email"], "inbound_id": int(inbound_id)}

    async def update_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        3x-ui replaces the whole client on update, so the current definition is
        read from the inbound first and the supplied attributes are merged over it.
        """
        client_id = require_param(params, "client_id", "user_id")
        inbound_id = require_param(params, "inbound_id")

        inbound = await self._get_inbound(session, inbound_id)
        key = _client_key(inbound.get("protocol"))
        current = next((c for c in _settings_clients(inbound) if c.get(key) == client_id), None)
        if current is None:
            raise PanelAPIError(
                PanelErrorKind.REMOTE_HTTP_ERROR,
                f"Client '{client_id}' not found in inbound {inbound_id}.",
                status_code=404,
            )

        updated = {**current, **_client_fields(params)}
        payload = {"id": int(inbound_id), "settings": json.dumps({"clients": [updated]})}
        await self._xui_request(session, "POST", f"{INBOUNDS_API}/updateClient/{client_id}", json=payload)
        return {"client_id": client_id, "email": updated.get("email"), "inbound_id": int(inbound_id)}

    async def delete_user(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        client_id = require_param(params, "client_id", "user_id")
        inbound_id = params.get("inbound_id")
        if inbound_id is not None:
            endpoint = f"{INBOUNDS_API}/{inbound_id}/delClient/{client_id}"
        else:
            endpoint = f"{INBOUNDS_API}/delClient/{client_id}"
        await self._xui_request(session, "POST", endpoint)
        return {"client_id": client_id, "deleted": True}

    async def reset_user_traffic(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        inbound_id = params.get("inbound_id")
        if inbound_id is not None:
            # The inbound-scoped endpoint addresses the client by email.
            email = require_param(params, "email", "username")
            endpoint = f"{INBOUNDS_API}/{inbound_id}/resetClientTraffic/{email}"
        else:
            endpoint = f"{INBOUNDS_API}/resetClientTraffic/{require_param(params, 'client_id', 'user_id')}"
        await self._xui_request(session, "POST", endpoint)
        return {"reset": True}

    async def list_admins(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        3x-ui has exactly one panel account: the one we are logged in as.
        The inbound list is read to prove the session is actually usable.
        """
        await self._xui_request(session, "GET", f"{INBOUNDS_API}/list")
        return [{"username": session.username, "is_sudo": True}]

    async def create_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        raise self._unsupported(PanelOperation.CREATE_ADMIN)

    async def update_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        """Changes the panel login. Requires the current password."""
        old_password = require_param(params, "old_password")
        new_password = require_param(params, "password")
        new_username = params.get("username") or session.username
        payload = {
            "oldUsername": session.username,
            "oldPassword": old_password,
            "newUsername": new_username,
            "newPassword": new_password,
        }
        await self._xui_request(session, "POST", "/panel/setting/updateUser", json=payload)
        return {"username": new_username}

    async def delete_admin(self, session: PanelSession, params: Dict[str, Any]) -> Dict[str, Any]:
        raise self._unsupported(PanelOperation.DELETE_ADMIN)

    async def list_nodes(self, session: PanelSession, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        raise self._unsupported(PanelOperation.LIST_NODES)

    async def get_system_stats(self, session: PanelSession, params: Dict[str, Any]) -> SystemStats:
        inbounds = await self.list_inbounds(session, params)

        now_ms = int(time.time() * 1000)
        total = active = expired = 0
        for inbound in inbounds:
            if not isinstance(inbound, dict):
                continue
            for client in _client_stats(inbound):
                total += 1
                expiry = expect_number(client.get("expiryTime"), "client expiryTime")
                if 0 < expiry <= now_ms:
                    expired += 1
                elif client.get("enable"):
                    active += 1

        stats = SystemStats(
            total_users=total,
            active_users=active,
            expired_users=expired,
            total_inbounds=len(inbounds),
        )

        # Host metrics are only exposed by newer 3x-ui builds; leave them unset otherwise.
        try:
            status = await self._xui_request(session, "POST", "/server/status")
        except PanelAPIError as e:
            if e.kind not in (PanelErrorKind.REMOTE_HTTP_ERROR, PanelErrorKind.MALFORMED_RESPONSE):
                raise
            LOGGER.info(f"Server status not available on {session.base_url}: {e.error.message}")
            return stats

        if isinstance(status, dict):
            stats.cpu = _as_float(status.get("cpu"))
            stats.memory = _percent(status.get("mem"))
            stats.disk = _percent(status.get("disk"))
            stats.uptime = status.get("uptime")
            xray = status.get("xray")
            if isinstance(xray, dict):
                stats.version = xray.get("version")
        return stats
