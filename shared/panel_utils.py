# FILE: shared/panel_utils.py
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from core.panel_api.gateway import PanelGateway
from core.panel_api.models import PanelOperation
from database.crud import panel_credential as crud_panel

LOGGER = logging.getLogger(__name__)


async def get_stats_from_all_panels(
    gateway: PanelGateway,
    panels: Optional[Sequence[Any]] = None,
) -> List[Dict[str, Any]]:
    """
    Fetches system stats from every configured panel in parallel.
    One entry per panel; a failing panel does not affect the others.
    """
    if panels is None:
        panels = await crud_panel.get_all_panels()
    if not panels:
        LOGGER.warning("[Panel Utils] No panels configured. Returning empty list.")
        return []

    async def fetch_stats(panel) -> Dict[str, Any]:
        LOGGER.info(f"[Panel Utils] -> Fetching stats for panel '{panel.name}'...")
        result = await gateway.execute(panel.id, PanelOperation.GET_SYSTEM_STATS)
        if not result.success:
            LOGGER.warning(f"[Panel Utils] -> Panel '{panel.name}' failed: {result.error}")
        return {"panel_id": panel.id, "panel_name": panel.name, "result": result}

    LOGGER.info(f"[Panel Utils] Awaiting {len(panels)} panel tasks to complete...")
    entries = await asyncio.gather(*(fetch_stats(panel) for panel in panels))

    succeeded = sum(1 for entry in entries if entry["result"].success)
    LOGGER.info(f"[Panel Utils] Finished fetching stats: {succeeded}/{len(entries)} panel(s) answered.")
    return list(entries)
