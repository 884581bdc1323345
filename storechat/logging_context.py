"""Request ID logging context for tracing chat turns across modules.

Every orchestration call sets a request id; the RequestIdFilter stamps it
onto each log record so a single turn can be followed from classification
through tool dispatch and response synthesis.

Usage:
    from storechat.logging_context import new_request_id, set_request_id

    set_request_id(new_request_id())
    logger.info("Processing turn")  # -> [req-3f2a9c1e] Processing turn
"""

import logging
import uuid
from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def new_request_id() -> str:
    """Generate a short request id."""
    return f"req-{uuid.uuid4().hex[:12]}"


def set_request_id(request_id: str) -> None:
    """Set the request id for the current async context."""
    _request_id.set(request_id)


def get_request_id() -> str:
    """Retrieve the current request id."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Injects request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()  # type: ignore[attr-defined]
        return True


def install_request_id_filter() -> None:
    """Attach the RequestIdFilter to every root handler.

    Handler-level filters see records from all loggers, so formatters can
    include ``%(request_id)s`` regardless of which module logged.
    """
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
