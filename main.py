"""
Store chat service entry point.

Serves the chat widget API with uvicorn, or opens a console chat against
one store for development.

Usage:
    API server:   python main.py serve [--host 0.0.0.0] [--port 8000]
    Console mode: python main.py console <store_id>
"""

import argparse
import asyncio
import logging

from storechat.config import settings

logger = logging.getLogger(__name__)


def _run_server(host: str, port: int) -> None:
    """Start the HTTP API (requires backend, calendar and LLM credentials)."""
    import uvicorn

    logger.info("Starting %s on %s:%d", settings.service_name, host, port)
    uvicorn.run("storechat.api.app:app", host=host, port=port, log_level=settings.log_level.lower())


def _run_console_mode(store_id: str, model: str | None) -> None:
    """Chat with a store in the terminal through the full pipeline."""
    from console_demo import run_console

    asyncio.run(run_console(store_id, model))


def main() -> None:
    parser = argparse.ArgumentParser(description=settings.service_name)
    sub = parser.add_subparsers(dest="mode")

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    console = sub.add_parser("console", help="Chat with a store in the terminal")
    console.add_argument("store_id")
    console.add_argument("--model", default=None)

    args = parser.parse_args()
    if args.mode == "console":
        _run_console_mode(args.store_id, args.model)
    else:
        _run_server(getattr(args, "host", "0.0.0.0"), getattr(args, "port", 8000))


if __name__ == "__main__":
    main()
