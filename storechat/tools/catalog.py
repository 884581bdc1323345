"""Store catalog lookups: services, products, store info and arbitrary tabs."""

import logging
from typing import Any, Optional, Union

from storechat.schemas.store_schema import Service
from storechat.tools.context import ToolContext, ToolResult, failure
from storechat.tools.schema_resolver import find_actual_tab_name, load_store_tab

logger = logging.getLogger(__name__)

INFO_TABS: dict[str, list[str]] = {
    "all": ["store_info", "hours", "services", "products"],
    "hours": ["store_info", "hours"],
    "services": ["store_info", "services"],
    "products": ["store_info", "products"],
    "contact": ["store_info"],
    "location": ["store_info"],
}


def match_service_row(rows: list[dict[str, Any]], query: str) -> Optional[dict[str, Any]]:
    """First row whose serviceName contains the query, case-insensitively."""
    needle = query.lower().strip()
    for row in rows:
        name = str(row.get("serviceName") or "")
        if name and needle in name.lower():
            return row
    return None


async def resolve_booking_target(
    ctx: ToolContext, service_name: str
) -> Union[tuple[Service, str], ToolResult]:
    """Resolve a service and its availability calendar, or a failure result."""
    if not ctx.store.invite_calendar_id:
        logger.warning("Store %s has no invite calendar configured", ctx.store_id)
        return failure(
            "not_configured",
            "Online booking isn't set up for this store yet. Please contact the store directly.",
        )

    rows = await load_store_tab(ctx, "services", use_cache=False)
    if rows is None:
        return failure(
            "not_configured",
            "Services aren't set up for this store yet. Please contact the store directly.",
        )

    row = match_service_row(rows, service_name)
    if row is None:
        return failure(
            "service_not_found",
            f'I couldn\'t find a service matching "{service_name}". '
            "Would you like to see all available services?",
        )

    service = Service.from_row(
        row, ctx.booking.default_duration_minutes, ctx.booking.default_capacity
    )
    calendar_id = ctx.store.calendar_for_service(service.service_id)
    if calendar_id is None:
        logger.warning(
            "Service %s of store %s is not linked to any calendar", service.service_id, ctx.store_id
        )
        return failure(
            "service_not_linked",
            f"{service.name} is not currently available for online booking. "
            "Please contact us directly.",
            service=service.name,
        )
    return service, calendar_id


def _filter_rows(
    rows: list[dict[str, Any]], query: Optional[str], category: Optional[str]
) -> list[dict[str, Any]]:
    if category:
        wanted = category.lower()
        rows = [r for r in rows if wanted in str(r.get("category") or "").lower()]
    if query:
        needle = query.lower()
        rows = [r for r in rows if any(needle in str(v).lower() for v in r.values())]
    return rows


async def _list_tab(
    ctx: ToolContext, logical: str, query: Optional[str], category: Optional[str]
) -> ToolResult:
    rows = await load_store_tab(ctx, logical)
    if rows is None:
        return failure(
            "not_configured",
            f"{logical.capitalize()} aren't available for this store yet.",
        )
    items = _filter_rows(rows, query, category)
    result: ToolResult = {
        "success": True,
        "data": {logical: items, "count": len(items), "query": query, "category": category},
        "message": f"Found {len(items)} {logical}.",
    }
    if items:
        result["rich_content"] = {"type": logical, "props": {logical: items}}
    return result


async def get_services(
    ctx: ToolContext, query: Optional[str] = None, category: Optional[str] = None
) -> ToolResult:
    """List services, optionally narrowed by free-text query and category."""
    return await _list_tab(ctx, "services", query, category)


async def get_products(
    ctx: ToolContext, query: Optional[str] = None, category: Optional[str] = None
) -> ToolResult:
    """List products, optionally narrowed by free-text query and category."""
    return await _list_tab(ctx, "products", query, category)


async def get_store_info(ctx: ToolContext, info_type: str = "all") -> ToolResult:
    tabs = INFO_TABS.get(info_type, ["store_info"])
    data: dict[str, Any] = {"store_name": ctx.store.name or "Unknown", "info_type": info_type}
    for logical in tabs:
        rows = await load_store_tab(ctx, logical)
        data[logical] = rows or []

    result: ToolResult = {
        "success": True,
        "data": data,
        "message": "Here is the requested store information.",
    }
    hours = data.get("hours") or []
    if not hours and data.get("store_info"):
        raw = data["store_info"][0].get("hours")
        if isinstance(raw, str) and raw.strip():
            hours = [{"day": "Hours", "openTime": raw, "closeTime": "", "isOpen": "Yes"}]
    if hours:
        result["rich_content"] = {"type": "HoursList", "props": {"hours": hours}}
    return result


async def get_misc_data(ctx: ToolContext, tab_name: str, query: Optional[str] = None) -> ToolResult:
    """Read any other tab of the store's sheet, with optional row filtering."""
    schema = ctx.store.detected_schema
    actual = find_actual_tab_name(tab_name, schema)
    if actual is None:
        available = ", ".join(schema) or "none detected"
        return failure(
            "not_configured",
            f'I couldn\'t find information about "{tab_name}" for this store.',
            available_tabs=available,
        )

    rows = await ctx.sheets.load_tab(ctx.store_id, actual)
    rows = _filter_rows(rows, query, None)
    return {
        "success": True,
        "data": {"tab_name": actual, "data": rows, "count": len(rows), "query": query},
        "message": f"Found {len(rows)} entries in {actual}.",
    }
