"""
HTTP entrypoint for the chat widget.

    POST /chat               one chat turn through the full pipeline
    POST /functions/{name}   allow-listed tool call with template text, no LLM
    GET  /health             liveness
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storechat.config import AppConfig, require_credentials, settings
from storechat.integrations.calendar import GoogleCalendarClient
from storechat.integrations.http import create_http_client
from storechat.integrations.llm import LLMClient
from storechat.integrations.sheets import SheetTabLoader
from storechat.integrations.stores import StoreRepository
from storechat.logging_context import new_request_id, set_request_id
from storechat.pipeline.classifier import IntentClassifier
from storechat.pipeline.orchestrator import (
    ChatOrchestrator,
    FunctionNotAllowedError,
    StoreNotFoundError,
)
from storechat.pipeline.responder import ResponseSynthesizer
from storechat.schemas.conversation_schema import ChatRequest, FunctionCallRequest

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def build_orchestrator(config: AppConfig, client: httpx.AsyncClient) -> ChatOrchestrator:
    """Wire every integration client around one shared httpx client."""
    llm = LLMClient(config.model, config.external_timeout_sec)
    return ChatOrchestrator(
        config=config,
        stores=StoreRepository(client, config.backend),
        sheets=SheetTabLoader(client, config.backend),
        calendar=GoogleCalendarClient(client, config.calendar),
        classifier=IntentClassifier(llm, config.model),
        responder=ResponseSynthesizer(llm, config.model),
    )


def get_orchestrator(request: Request) -> ChatOrchestrator:
    return request.app.state.orchestrator


def create_app(config: AppConfig = settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        require_credentials(config)
        async with create_http_client(config.external_timeout_sec) as client:
            app.state.orchestrator = build_orchestrator(config, client)
            logger.info("%s ready", config.service_name)
            yield

    app = FastAPI(title=config.service_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins_list or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        set_request_id(request_id)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error for %s %s", request.method, request.url.path)
            response = JSONResponse(
                status_code=500,
                content={"error": "internal_error", "requestId": request_id},
            )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.exception_handler(StoreNotFoundError)
    async def store_not_found(request: Request, exc: StoreNotFoundError) -> JSONResponse:
        logger.info("Unknown store requested: %s", exc.store_id)
        return JSONResponse(status_code=404, content={"error": "store_not_found"})

    @app.exception_handler(FunctionNotAllowedError)
    async def function_not_allowed(request: Request, exc: FunctionNotAllowedError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": "unknown_function"})

    @app.get("/health")
    async def healthcheck() -> dict[str, Any]:
        return {"ok": True, "service": config.service_name}

    @app.post("/chat")
    async def chat_endpoint(
        body: ChatRequest, orchestrator: ChatOrchestrator = Depends(get_orchestrator)
    ) -> JSONResponse:
        response = await orchestrator.handle_chat(body)
        return JSONResponse(content=response.to_api())

    @app.post("/functions/{name}")
    async def function_endpoint(
        name: str,
        body: FunctionCallRequest,
        orchestrator: ChatOrchestrator = Depends(get_orchestrator),
    ) -> JSONResponse:
        text, result = await orchestrator.call_function(name, body.store_id, body.params)
        rich = result.pop("rich_content", None)
        content = {"success": bool(result.get("success")), "text": text, "result": result}
        if rich is not None:
            content["richContent"] = rich
        return JSONResponse(content=content)

    return app


app = create_app()
