import pytest

from config import config
from core.panel_api.errors import PanelErrorKind
from core.panel_api.gateway import PanelGateway
from core.panel_api.models import PanelOperation
from database import engine as db_engine
from database.crud import panel_credential as crud_panel

from conftest import marzban_login_ok


@pytest.fixture
async def db(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'panels.db'}")
    await db_engine.init_db()
    crud_panel._invalidate_cache()
    yield
    crud_panel._invalidate_cache()
    await db_engine.close_db()


async def test_add_get_and_delete_panel(db):
    panel = await crud_panel.add_panel({
        "name": "de-1", "panel_type": "marzban", "api_url": "https://m.example/",
        "username": "root", "password": "pw",
    })

    assert panel.id is not None
    assert panel.api_url == "https://m.example"
    assert (await crud_panel.get_panel_by_id(panel.id)).name == "de-1"
    assert [p.name for p in await crud_panel.get_all_panels()] == ["de-1"]

    assert await crud_panel.delete_panel(panel.id) is True
    assert await crud_panel.get_panel_by_id(panel.id) is None
    assert await crud_panel.delete_panel(panel.id) is False


async def test_panel_type_defaults_to_xui(db):
    panel = await crud_panel.add_panel({
        "name": "old", "api_url": "https://x.example", "username": "a", "password": "b",
    })

    assert panel.panel_type == "threexui"


async def test_duplicate_name_is_rejected(db):
    data = {"name": "dup", "api_url": "https://x.example", "username": "a", "password": "b"}
    assert await crud_panel.add_panel(data) is not None
    assert await crud_panel.add_panel(data) is None


async def test_gateway_reads_panels_from_the_store(db, fake_panel, settings):
    panel = await crud_panel.add_panel({
        "name": "de-1", "panel_type": "marzban", "api_url": "https://marzban.example",
        "username": "root", "password": "hunter2",
    })
    marzban_login_ok(fake_panel)
    fake_panel.add("GET", "/api/nodes", json_body=[])
    gateway = PanelGateway(client_factory=fake_panel.client, settings=settings)

    found = await gateway.execute(panel.id, PanelOperation.LIST_NODES)
    missing = await gateway.execute(panel.id + 100, PanelOperation.LIST_NODES)

    assert found.success
    assert missing.error_kind == PanelErrorKind.PANEL_NOT_FOUND


async def test_panel_list_cache_is_invalidated_by_writes(db):
    assert await crud_panel.get_all_panels() == []

    panel = await crud_panel.add_panel({"name": "fresh", "api_url": "https://x.example", "username": "a", "password": "b"})
    assert [p.name for p in await crud_panel.get_all_panels()] == ["fresh"]

    await crud_panel.delete_panel(panel.id)
    assert await crud_panel.get_all_panels() == []


async def test_panel_list_is_cached_between_reads(db, monkeypatch):
    first = await crud_panel.get_all_panels()
    monkeypatch.setattr(crud_panel, "get_session", None)

    assert await crud_panel.get_all_panels() is first
