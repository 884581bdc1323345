"""
Tool registry: name -> handler lookup for the orchestrator and the direct
function endpoint.

Handlers are registered once at import time with a short description and
their parameter names, which the classifier prompt lists for the model.
Execution goes through ``execute_tool`` so every external failure is
converted into a user-safe result at the tool boundary.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from storechat.integrations.errors import ExternalServiceError
from storechat.tools.context import ToolContext, ToolResult, failure

logger = logging.getLogger(__name__)

EXTERNAL_ERROR_MESSAGE = (
    "Sorry, something went wrong on our side while looking that up. Please try again in a moment."
)

ToolHandler = Callable[..., Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    handler: ToolHandler
    description: str
    parameters: dict[str, str] = field(default_factory=dict)
    required: tuple[str, ...] = ()


_TOOL_REGISTRY: dict[str, ToolSpec] = {}


def register_tool(spec: ToolSpec) -> None:
    """Register a tool handler by name."""
    _TOOL_REGISTRY[spec.name] = spec
    logger.debug("Tool registered: %s", spec.name)


def get_tool(name: str) -> ToolSpec:
    """Look up a registered tool.

    Raises:
        KeyError: If the tool name is not registered.
    """
    if name not in _TOOL_REGISTRY:
        registered = list(_TOOL_REGISTRY.keys())
        raise KeyError(f"Tool '{name}' not registered. Available: {registered}")
    return _TOOL_REGISTRY[name]


def get_registered_tools() -> list[str]:
    """Return names of all registered tools."""
    return list(_TOOL_REGISTRY.keys())


def _coerce(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return value


def _accepted_kwargs(handler: ToolHandler, params: dict[str, Any]) -> dict[str, Any]:
    accepted = set(inspect.signature(handler).parameters) - {"ctx"}
    dropped = sorted(set(params) - accepted)
    if dropped:
        logger.debug("Ignoring unexpected parameters for %s: %s", handler.__name__, dropped)
    return {k: _coerce(v) for k, v in params.items() if k in accepted}


async def execute_tool(name: str, params: dict[str, Any], ctx: ToolContext) -> ToolResult:
    """Run a registered tool; never raises for business or integration failures."""
    try:
        spec = get_tool(name)
    except KeyError:
        logger.warning("Unknown function requested: %s", name)
        return failure("unknown_function", "Sorry, I can't help with that request here.")

    kwargs = _accepted_kwargs(spec.handler, params or {})
    try:
        return await spec.handler(ctx, **kwargs)
    except ExternalServiceError as exc:
        logger.error(
            "Tool %s failed for store %s: %s (service=%s status=%s)",
            name, ctx.store_id, exc.detail, exc.service, exc.status_code,
        )
    except Exception:
        logger.exception("Tool %s raised unexpectedly for store %s", name, ctx.store_id)
    return failure("external_error", EXTERNAL_ERROR_MESSAGE)


def _auto_register() -> None:
    """Register all built-in tools. Called once at import time."""
    from storechat.tools.availability import check_availability, get_booking_slots
    from storechat.tools.booking import create_booking
    from storechat.tools.catalog import get_misc_data, get_products, get_services, get_store_info
    from storechat.tools.leads import submit_lead
    from storechat.tools.recommendations import get_recommendations

    for spec in [
        ToolSpec(
            "get_services", get_services,
            "List or search the store's services.",
            {"query": "search text", "category": "category filter"},
        ),
        ToolSpec(
            "get_products", get_products,
            "List or search the store's products.",
            {"query": "search text", "category": "category filter"},
        ),
        ToolSpec(
            "get_store_info", get_store_info,
            "Store details such as opening hours, contact and location.",
            {"info_type": "all | hours | services | products | contact | location"},
        ),
        ToolSpec(
            "get_misc_data", get_misc_data,
            "Read any other tab of the store's sheet (FAQ, policies, staff...).",
            {"tab_name": "tab to read", "query": "search text"},
            required=("tab_name",),
        ),
        ToolSpec(
            "check_availability", check_availability,
            "Check whether a specific service is open at an exact date and time.",
            {"service_name": "service", "date": "YYYY-MM-DD", "time": "HH:MM"},
            required=("service_name", "date", "time"),
        ),
        ToolSpec(
            "get_booking_slots", get_booking_slots,
            "Show the booking calendar with all open slots for a service. "
            "Use this for any booking request.",
            {
                "service_name": "service",
                "start_date": "YYYY-MM-DD",
                "end_date": "YYYY-MM-DD",
                "prefill_date": "YYYY-MM-DD the user asked for",
                "prefill_time": "HH:MM the user asked for",
                "prefill_name": "customer name",
                "prefill_email": "customer email",
                "prefill_phone": "customer phone",
            },
            required=("service_name",),
        ),
        ToolSpec(
            "create_booking", create_booking,
            "Create the booking once service, date, time, name and email are all known.",
            {
                "service_name": "service",
                "date": "YYYY-MM-DD",
                "time": "HH:MM",
                "customer_name": "full name",
                "customer_email": "email",
                "customer_phone": "phone (optional)",
            },
            required=("service_name", "date", "time", "customer_name", "customer_email"),
        ),
        ToolSpec(
            "submit_lead", submit_lead,
            "Save the customer's contact details when they want the store to get back to them.",
            {
                "customer_name": "full name",
                "customer_email": "email",
                "customer_phone": "phone (optional)",
                "message": "what they are asking about",
            },
        ),
        ToolSpec(
            "get_recommendations", get_recommendations,
            "Suggest the best-fitting services or products for the customer's goal.",
            {
                "goal": "what the customer wants to achieve",
                "category": "category filter",
                "offering_type": "services | products | both",
                "budget": "low | medium | high",
                "budget_max": "maximum price",
                "experience_level": "beginner | intermediate | advanced",
                "time_preference": "morning | afternoon | evening",
                "day_preference": "weekday | weekend",
                "duration_preference": "quick | standard | extended",
                "limit": "number of suggestions",
            },
        ),
    ]:
        register_tool(spec)


_auto_register()
