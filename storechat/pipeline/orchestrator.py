"""
Chat orchestrator: classifier -> tool dispatch -> responder for one turn.

Each turn is independent. The only state shared between turns is the
slot lock registry, which serialises booking creation in this process.
"""

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from storechat.config import AppConfig
from storechat.integrations.calendar import GoogleCalendarClient
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.sheets import SheetTabLoader
from storechat.integrations.stores import StoreRepository
from storechat.logging_context import get_request_id
from storechat.pipeline.classifier import IntentClassifier
from storechat.pipeline.responder import ResponseSynthesizer
from storechat.pipeline.usage import calculate_cost
from storechat.prompts.prompt_templates import build_store_context
from storechat.prompts.response_templates import fallback_text
from storechat.schemas.conversation_schema import (
    ChatRequest,
    ChatResponse,
    DebugInfo,
    FunctionCallRecord,
    TokenUsage,
)
from storechat.schemas.store_schema import StoreConfig
from storechat.tools.context import ToolContext, clarification
from storechat.tools.registry import execute_tool, get_tool
from storechat.tools.schema_resolver import find_actual_tab_name
from storechat.tools.slot_locks import SlotLocks
from storechat.tools.validators import describe_fields, find_missing

logger = logging.getLogger(__name__)

STORE_DATA_TABS = ("services", "products", "hours")

# Tools the widget UI (booking calendar and forms) may call without the classifier.
DIRECT_FUNCTIONS = frozenset({
    "get_services", "get_products", "get_store_info",
    "check_availability", "get_booking_slots", "create_booking",
    "submit_lead", "get_recommendations",
})


class StoreNotFoundError(LookupError):
    def __init__(self, store_id: str) -> None:
        self.store_id = store_id
        super().__init__(f"Store '{store_id}' not found")


class FunctionNotAllowedError(LookupError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Function '{name}' cannot be called directly")


def _ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class ChatOrchestrator:
    def __init__(
        self,
        config: AppConfig,
        stores: StoreRepository,
        sheets: SheetTabLoader,
        calendar: GoogleCalendarClient,
        classifier: IntentClassifier,
        responder: ResponseSynthesizer,
        locks: Optional[SlotLocks] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._stores = stores
        self._sheets = sheets
        self._calendar = calendar
        self._classifier = classifier
        self._responder = responder
        self._locks = locks or SlotLocks()
        self._clock = clock or (lambda: datetime.now(config.booking.tz))

    async def _get_store(self, store_id: str) -> StoreConfig:
        store = await self._stores.get_store(store_id)
        if store is None:
            raise StoreNotFoundError(store_id)
        return store

    async def _load_tab(self, store: StoreConfig, logical: str) -> Optional[list[dict[str, Any]]]:
        tab = find_actual_tab_name(logical, store.detected_schema)
        if tab is None:
            return None
        try:
            return await self._sheets.load_tab(store.id, tab)
        except ExternalServiceError as exc:
            logger.warning("Could not load %s for store %s: %s", logical, store.id, exc)
            return None

    async def load_store_data(
        self, store: StoreConfig, cached: Optional[dict[str, list[dict[str, Any]]]] = None
    ) -> dict[str, list[dict[str, Any]]]:
        """Catalog tabs for the turn; client-cached tabs win over a fresh load.

        Tabs the store lacks, or that failed to load, are left out so tools
        resolve them again and report their own outcome.
        """
        cached = cached or {}
        missing = [t for t in STORE_DATA_TABS if not cached.get(t)]
        loaded = await asyncio.gather(*(self._load_tab(store, t) for t in missing))
        data = {t: list(cached[t]) for t in STORE_DATA_TABS if cached.get(t)}
        data.update((t, rows) for t, rows in zip(missing, loaded) if rows is not None)
        return data

    def _tool_context(
        self, store: StoreConfig, store_data: dict[str, list[dict[str, Any]]]
    ) -> ToolContext:
        return ToolContext(
            store=store,
            sheets=self._sheets,
            calendar=self._calendar,
            booking=self._config.booking,
            locks=self._locks,
            now=self._clock(),
            store_data=dict(store_data),
        )

    async def handle_chat(self, request: ChatRequest) -> ChatResponse:
        """Run one chat turn end to end."""
        total_started = time.perf_counter()
        timings: dict[str, float] = {}
        messages = [m.model_dump() for m in request.messages]
        model = request.model or self._config.model.llm_model

        started = time.perf_counter()
        store = await self._get_store(request.store_id)
        store_data = await self.load_store_data(store, request.cached_data)
        timings["store_data"] = _ms(started)
        store_context = build_store_context(store.name, store_data)
        ctx = self._tool_context(store, store_data)

        started = time.perf_counter()
        classified = await self._classifier.classify(messages, ctx.now, store_context, model=model)
        timings["classifier"] = _ms(started)
        classification = classified.classification

        function_name = classification.function_to_call
        params = classification.params
        result: Optional[dict[str, Any]] = None
        calls: list[FunctionCallRecord] = []
        if function_name:
            started = time.perf_counter()
            missing = find_missing(params, list(get_tool(function_name).required))
            if missing:
                result = dict(clarification(
                    f"I need the {describe_fields(missing)} to continue.", missing
                ))
            else:
                result = dict(await execute_tool(function_name, params, ctx))
                calls.append(FunctionCallRecord(
                    name=function_name,
                    arguments=params,
                    result={
                        "success": bool(result.get("success")),
                        "data": {k: v for k, v in result.items() if k != "rich_content"},
                        "error": result.get("error"),
                    },
                    duration_ms=_ms(started),
                ))
            timings["function"] = _ms(started)

        started = time.perf_counter()
        reply = await self._responder.respond(
            messages, classification, store_context,
            function_name=function_name, params=params, result=result, model=model,
        )
        timings["responder"] = _ms(started)
        timings["total"] = _ms(total_started)

        usage = {"classifier": classified.usage, "responder": reply.usage}
        cost = {
            stage: calculate_cost(model, u.input_tokens, u.output_tokens) for stage, u in usage.items()
        }
        cost["total"] = round(sum(cost.values()), 8)
        debug = DebugInfo(
            intent=classification.model_dump(mode="json", by_alias=True),
            function_calls=calls,
            timings=timings,
            tokens={stage: TokenUsage(**u.as_dict()) for stage, u in usage.items()},
            cost=cost,
            model=model,
            request_id=get_request_id(),
        )
        logger.info(
            "Turn for store %s: intent=%s function=%s success=%s in %.0fms",
            store.id, classification.intent.value, function_name,
            None if result is None else result.get("success"), timings["total"],
        )
        return ChatResponse(
            text=reply.text,
            rich_content=(result or {}).get("rich_content"),
            suggestions=reply.suggestions,
            debug=debug,
        )

    async def call_function(
        self, name: str, store_id: str, params: dict[str, Any]
    ) -> tuple[str, dict[str, Any]]:
        """Execute an allow-listed tool directly and answer with template text."""
        if name not in DIRECT_FUNCTIONS:
            raise FunctionNotAllowedError(name)
        store = await self._get_store(store_id)
        ctx = self._tool_context(store, {})
        result = dict(await execute_tool(name, params, ctx))
        logger.info("Direct call %s for store %s: success=%s", name, store_id, result.get("success"))
        return fallback_text(name, result, params), result
