"""Shared httpx plumbing for the backend and calendar clients."""

import logging
from typing import Any

import httpx

from storechat.integrations.errors import ExternalServiceError

logger = logging.getLogger(__name__)


def create_http_client(timeout_sec: float) -> httpx.AsyncClient:
    """One pooled client per process; every outbound call shares the timeout."""
    return httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))


async def request_json(
    client: httpx.AsyncClient,
    service: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> Any:
    """Send a request and decode a JSON body, raising ExternalServiceError on any failure."""
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise ExternalServiceError(service, f"timeout calling {url}") from exc
    except httpx.HTTPError as exc:
        raise ExternalServiceError(service, f"{type(exc).__name__}: {exc}") from exc

    if response.is_error:
        logger.warning("%s returned HTTP %d for %s %s", service, response.status_code, method, url)
        raise ExternalServiceError(
            service, response.text[:300], status_code=response.status_code
        )

    if not response.content:
        return None
    try:
        return response.json()
    except ValueError as exc:
        raise ExternalServiceError(service, "response body is not JSON") from exc
