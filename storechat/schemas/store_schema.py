"""Store configuration and catalog data models."""

import json
import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"^\s*(\d+)")


def _leading_int(value: Any) -> Optional[int]:
    """Read the leading integer of a sheet cell ("90 min" -> 90)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def _positive(value: Optional[int], default: int) -> int:
    """Blank, zero or negative cells fall back to the configured default."""
    return value if value is not None and value > 0 else default


def _maybe_json(value: Any) -> Any:
    if isinstance(value, str):
        if not value.strip():
            return None
        return json.loads(value)
    return value


def normalize_calendar_mappings(raw: Any) -> dict[str, frozenset[str]]:
    """Collapse every stored mapping shape into calendar id -> service ids.

    Accepted shapes per calendar: ``{"serviceIds": [...]}``, a bare list of
    ids, or a single id string. The whole mapping may arrive JSON-encoded.
    """
    raw = _maybe_json(raw)
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise ValueError(f"calendar_mappings must be an object, got {type(raw).__name__}")

    mappings: dict[str, frozenset[str]] = {}
    for calendar_id, entry in raw.items():
        if isinstance(entry, dict):
            ids = entry.get("serviceIds") or []
        elif isinstance(entry, (list, tuple, set, frozenset)):
            ids = entry
        elif isinstance(entry, str):
            ids = [entry]
        else:
            logger.warning("Ignoring calendar mapping for %s with shape %s", calendar_id, type(entry).__name__)
            continue
        mappings[str(calendar_id)] = frozenset(str(i) for i in ids if i)
    return mappings


class StoreConfig(BaseModel):
    """Store row as read from the backend."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    invite_calendar_id: Optional[str] = None
    calendar_mappings: dict[str, frozenset[str]] = Field(default_factory=dict)
    detected_schema: dict[str, Any] = Field(default_factory=dict)

    @field_validator("calendar_mappings", mode="before")
    @classmethod
    def _normalize_mappings(cls, value: Any) -> dict[str, frozenset[str]]:
        return normalize_calendar_mappings(value)

    @field_validator("detected_schema", mode="before")
    @classmethod
    def _parse_schema(cls, value: Any) -> dict[str, Any]:
        parsed = _maybe_json(value)
        return parsed if isinstance(parsed, dict) else {}

    def calendar_for_service(self, service_id: str) -> Optional[str]:
        """Return the first availability calendar that lists this service."""
        for calendar_id, service_ids in self.calendar_mappings.items():
            if service_id in service_ids:
                return calendar_id
        return None


class Service(BaseModel):
    """A bookable service resolved from a services tab row."""

    service_id: str
    name: str
    duration_minutes: int = Field(gt=0)
    capacity: int = Field(ge=1)
    price: Optional[str] = None
    location: str = ""
    category: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_row(
        cls, row: dict[str, Any], default_duration: int, default_capacity: int
    ) -> "Service":
        name = str(row.get("serviceName") or "").strip()
        duration = _positive(_leading_int(row.get("duration")), default_duration)
        capacity = _positive(_leading_int(row.get("capacity")), default_capacity)
        price = row.get("price")
        return cls(
            service_id=str(row.get("serviceID") or name),
            name=name,
            duration_minutes=duration,
            capacity=capacity,
            price=str(price) if price not in (None, "") else None,
            location=str(row.get("location") or ""),
            category=row.get("category") or None,
            description=row.get("description") or None,
        )
