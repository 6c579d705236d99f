# FILE: database/crud/panel_credential.py
import logging
import time
from typing import List, Optional, Dict, Any

from sqlalchemy import select, delete

from ..engine import get_session
from ..models.panel_credential import PanelCredential

LOGGER = logging.getLogger(__name__)

# --- Caching Mechanism ---
_panel_cache: Optional[List[PanelCredential]] = None
_cache_timestamp: float = 0.0
CACHE_DURATION_SECONDS = 60


def _invalidate_cache():
    """Invalidates the panel cache."""
    global _panel_cache
    _panel_cache = None
    LOGGER.info("Panel cache has been invalidated.")

# --- CRUD Functions ---

async def add_panel(panel_data: Dict[str, Any]) -> Optional[PanelCredential]:
    """Adds a new panel to the database and invalidates the cache."""
    async with get_session() as session:
        try:
            new_panel = PanelCredential(
                name=panel_data['name'],
                panel_type=panel_data.get('panel_type') or "threexui",
                api_url=panel_data['api_url'].rstrip('/'),
                username=panel_data['username'],
                password=panel_data['password'],
            )
            session.add(new_panel)
            await session.commit()
            await session.refresh(new_panel)
            _invalidate_cache()
            return new_panel
        except Exception as e:
            await session.rollback()
            LOGGER.error(f"Failed to add new panel '{panel_data.get('name')}': {e}", exc_info=True)
            return None


async def get_all_panels() -> List[PanelCredential]:
    """
    Retrieves all configured panels from the database, using a simple time-based cache.
    """
    global _panel_cache, _cache_timestamp

    now = time.time()
    if _panel_cache is not None and (now - _cache_timestamp) < CACHE_DURATION_SECONDS:
        LOGGER.debug("Returning cached panel list.")
        return _panel_cache

    LOGGER.info("Fetching fresh panel list from DB and updating cache.")
    async with get_session() as session:
        result = await session.execute(select(PanelCredential).order_by(PanelCredential.name))
        panels = list(result.scalars().all())
        _panel_cache = panels
        _cache_timestamp = now
        return panels


async def get_panel_by_id(panel_id: int) -> Optional[PanelCredential]:
    """Retrieves a single panel by its ID, or None if it does not exist."""
    async with get_session() as session:
        return await session.get(PanelCredential, panel_id)


async def delete_panel(panel_id: int) -> bool:
    """Deletes a panel by its ID and invalidates the cache."""
    async with get_session() as session:
        try:
            result = await session.execute(delete(PanelCredential).where(PanelCredential.id == panel_id))
            await session.commit()

            if result.rowcount > 0:
                _invalidate_cache()
                LOGGER.info(f"Successfully deleted panel {panel_id}.")
                return True

            LOGGER.warning(f"Attempted to delete panel {panel_id}, but it was not found.")
            return False

        except Exception as e:
            await session.rollback()
            LOGGER.error(f"Failed to delete panel with ID {panel_id}: {e}", exc_info=True)
            return False
