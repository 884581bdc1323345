"""Maps logical tab names onto the tab names detected in a store's sheet."""

import logging
from typing import Any, Mapping, Optional

from storechat.tools.context import ToolContext

logger = logging.getLogger(__name__)


def find_actual_tab_name(target: str, schema: Mapping[str, Any]) -> Optional[str]:
    """Case-insensitive bidirectional substring match; first tab in schema order wins.

    Examples:
        >>> find_actual_tab_name("services", {"Our Services": {}, "Hours": {}})
        'Our Services'
        >>> find_actual_tab_name("store_info", {"Hours": {}}) is None
        True
    """
    target_lower = target.lower()
    for name in schema:
        name_lower = name.lower()
        if target_lower in name_lower or name_lower in target_lower:
            return name
    return None


async def load_store_tab(
    ctx: ToolContext, logical_name: str, use_cache: bool = True
) -> Optional[list[dict[str, Any]]]:
    """Rows for a logical tab, preferring data already loaded for this request.

    ``use_cache=False`` always reads the sheet. Returns None when the store's
    sheet has no matching tab.
    """
    if use_cache and logical_name in ctx.store_data:
        return ctx.store_data[logical_name]

    tab_name = find_actual_tab_name(logical_name, ctx.store.detected_schema)
    if tab_name is None:
        logger.warning("Store %s has no tab matching '%s'", ctx.store_id, logical_name)
        return None

    rows = await ctx.sheets.load_tab(ctx.store_id, tab_name)
    ctx.store_data[logical_name] = rows
    return rows
