"""Sheet tab loader backed by the google-sheet edge function."""

import logging
from typing import Any

import httpx

from storechat.config import BackendConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.http import request_json

logger = logging.getLogger(__name__)


class SheetTabLoader:
    """Reads and appends rows of a store's connected spreadsheet."""

    def __init__(self, client: httpx.AsyncClient, backend: BackendConfig) -> None:
        self._client = client
        self._url = backend.supabase_url.rstrip("/") + backend.sheet_function_path
        self._headers = {
            "Authorization": f"Bearer {backend.service_role_key}",
            "Content-Type": "application/json",
        }

    async def _call(self, payload: dict[str, Any]) -> dict[str, Any]:
        body = await request_json(
            self._client, "sheets", "POST", self._url, json=payload, headers=self._headers
        )
        if not isinstance(body, dict):
            raise ExternalServiceError("sheets", "unexpected response shape")
        if not body.get("success"):
            logger.warning(
                "Sheet %s unsuccessful for store %s tab '%s': %s",
                payload["operation"], payload["storeId"], payload["tabName"], body.get("error"),
            )
            raise ExternalServiceError(
                "sheets", f"{payload['operation']} failed: {body.get('error') or 'unknown error'}"
            )
        return body

    async def load_tab(self, store_id: str, tab_name: str) -> list[dict[str, Any]]:
        body = await self._call({"operation": "read", "storeId": store_id, "tabName": tab_name})
        rows = body.get("data") or []
        if not isinstance(rows, list):
            raise ExternalServiceError("sheets", "data is not a list of rows")
        return [row for row in rows if isinstance(row, dict)]

    async def append_row(self, store_id: str, tab_name: str, row: dict[str, Any]) -> None:
        """Append one row; keys are the tab's column headers."""
        await self._call(
            {"operation": "append", "storeId": store_id, "tabName": tab_name, "data": row}
        )
