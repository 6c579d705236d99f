from types import SimpleNamespace

from core.panel_api.errors import PanelErrorKind
from shared.panel_utils import get_stats_from_all_panels

from conftest import marzban_login_ok


async def test_stats_collected_per_panel(gateway, fake_panel, panels):
    marzban_login_ok(fake_panel)
    fake_panel.add("GET", "/api/system", json_body={"version": "0.4.9"})
    fake_panel.add("GET", "/api/users", json_body={"users": [{"username": "a", "status": "active"}]})
    fake_panel.add("POST", "/login", json_body={"success": False})

    entries = await get_stats_from_all_panels(gateway, panels=[panels[7], panels[1]])

    by_name = {entry["panel_name"]: entry["result"] for entry in entries}
    assert by_name["marzban-de"].success
    assert by_name["marzban-de"].data.active_users == 1
    assert by_name["xui-main"].error_kind == PanelErrorKind.INVALID_CREDENTIALS


async def test_missing_panel_does_not_break_the_batch(gateway, panels):
    ghost = SimpleNamespace(id=404, name="ghost")

    entries = await get_stats_from_all_panels(gateway, panels=[ghost])

    assert entries[0]["panel_id"] == 404
    assert entries[0]["result"].error_kind == PanelErrorKind.PANEL_NOT_FOUND


async def test_no_panels(gateway):
    assert await get_stats_from_all_panels(gateway, panels=[]) == []
