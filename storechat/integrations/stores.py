"""Store configuration repository over the backend's REST interface."""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from storechat.config import BackendConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.http import request_json
from storechat.schemas.store_schema import StoreConfig

logger = logging.getLogger(__name__)

STORE_COLUMNS = "id,name,calendar_mappings,invite_calendar_id,detected_schema"


class StoreRepository:
    """Loads store rows and normalises them into StoreConfig."""

    def __init__(self, client: httpx.AsyncClient, backend: BackendConfig) -> None:
        self._client = client
        self._url = f"{backend.supabase_url.rstrip('/')}/rest/v1/{backend.stores_table}"
        self._headers = {
            "apikey": backend.service_role_key,
            "Authorization": f"Bearer {backend.service_role_key}",
        }

    async def get_store(self, store_id: str) -> Optional[StoreConfig]:
        rows = await request_json(
            self._client,
            "stores",
            "GET",
            self._url,
            params={"id": f"eq.{store_id}", "select": STORE_COLUMNS, "limit": "1"},
            headers=self._headers,
        )
        if not rows:
            return None
        try:
            return StoreConfig.model_validate(rows[0])
        except (ValidationError, ValueError) as exc:
            logger.error("Store %s has a malformed configuration row: %s", store_id, exc)
            raise ExternalServiceError("stores", f"malformed store row for {store_id}") from exc
