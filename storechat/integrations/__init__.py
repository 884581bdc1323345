from storechat.integrations.calendar import GoogleCalendarClient
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.http import create_http_client
from storechat.integrations.llm import LLMClient, LLMResult
from storechat.integrations.sheets import SheetTabLoader
from storechat.integrations.stores import StoreRepository

__all__ = [
    "ExternalServiceError", "create_http_client",
    "SheetTabLoader", "StoreRepository", "GoogleCalendarClient",
    "LLMClient", "LLMResult",
]
