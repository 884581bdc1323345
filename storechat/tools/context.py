"""Per-request dependencies handed to every tool."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, TypedDict

from storechat.config import BookingConfig
from storechat.integrations.calendar import GoogleCalendarClient
from storechat.integrations.sheets import SheetTabLoader
from storechat.schemas.store_schema import StoreConfig
from storechat.tools.slot_locks import SlotLocks


class ToolResult(TypedDict, total=False):
    """Common shape of every tool result; tools add their own keys."""

    success: bool
    error: str
    message: str
    needs_clarification: bool
    missing_fields: list[str]
    data: dict[str, Any]
    rich_content: dict[str, Any]


@dataclass
class ToolContext:
    store: StoreConfig
    sheets: SheetTabLoader
    calendar: GoogleCalendarClient
    booking: BookingConfig
    locks: SlotLocks
    now: datetime
    store_data: dict[str, list[dict[str, Any]]] = field(default_factory=dict)

    @property
    def store_id(self) -> str:
        return self.store.id


def clarification(message: str, missing: list[str]) -> ToolResult:
    return {
        "success": False,
        "error": "missing_fields",
        "needs_clarification": True,
        "missing_fields": missing,
        "message": message,
    }


def failure(error: str, message: str, **extra: Any) -> ToolResult:
    result: ToolResult = {"success": False, "error": error, "message": message}
    result.update(extra)  # type: ignore[typeddict-item]
    return result
