"""Shared test fixtures, in-memory fakes and helpers."""

import asyncio
import itertools
from datetime import datetime, timedelta
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo

import pytest

from storechat.config import BookingConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.llm import LLMResult
from storechat.schemas.booking_schema import CalendarEvent, NewBookingEvent
from storechat.schemas.store_schema import StoreConfig
from storechat.tools.context import ToolContext
from storechat.tools.slot_locks import SlotLocks

HKT = ZoneInfo("Asia/Hong_Kong")
NOW = datetime(2025, 11, 20, 9, 0, tzinfo=HKT)
INVITE_CALENDAR = "invite@group.calendar.google.com"

SERVICES = [
    {"serviceID": "svc_yoga", "serviceName": "Morning Yoga", "duration": "60",
     "price": "25", "capacity": "10", "category": "Fitness"},
    {"serviceID": "svc_color", "serviceName": "Hair Color", "duration": "120",
     "price": "80", "capacity": "1", "category": "Hair"},
    {"serviceID": "svc_cut", "serviceName": "Haircut", "duration": "30",
     "price": "40", "capacity": "2", "category": "Hair"},
    {"serviceName": "Massage", "duration": "", "price": "60", "category": "Wellness"},
]
PRODUCTS = [
    {"name": "Argan Oil Shampoo", "price": "18", "category": "Hair Care"},
    {"name": "Yoga Mat", "price": "45", "category": "Fitness"},
]
HOURS = [
    {"day": "Monday", "openTime": "09:00", "closeTime": "18:00", "isOpen": "Yes"},
    {"day": "Sunday", "openTime": "", "closeTime": "", "isOpen": "No"},
]

LEAD_COLUMNS = ["Date", "Full Name", "Email", "Phone", "Message", "Status"]

# One mapping per supported shape: object, bare list, single string.
CALENDAR_MAPPINGS = {
    "cal_yoga": {"serviceIds": ["svc_yoga"]},
    "cal_color": ["svc_color"],
    "cal_cut": "svc_cut",
}


def booking_config(**overrides: Any) -> BookingConfig:
    values = dict(
        business_timezone="Asia/Hong_Kong",
        class_slot_max_hours=4,
        default_duration_minutes=60,
        default_capacity=20,
        booking_window_days=14,
        send_invites=True,
    )
    values.update(overrides)
    return BookingConfig(**values)


def at(day: str, hhmm: str) -> datetime:
    """Aware datetime in the business timezone."""
    return datetime.fromisoformat(f"{day}T{hhmm}:00").replace(tzinfo=HKT)


def make_event(
    start: Union[datetime, str],
    end: Union[datetime, str],
    summary: str = "Availability",
    private: Optional[dict[str, str]] = None,
    status: str = "confirmed",
) -> CalendarEvent:
    """Timed event from datetimes, or an all-day event from YYYY-MM-DD strings."""
    if isinstance(start, str):
        body: dict[str, Any] = {"start": {"date": start}, "end": {"date": end}}
    else:
        body = {"start": {"dateTime": start.isoformat()}, "end": {"dateTime": end.isoformat()}}
    body.update(summary=summary, status=status)
    if private:
        body["extendedProperties"] = {"private": private}
    return CalendarEvent.model_validate(body)


def make_booking_event(service_id: str, start: datetime, minutes: int = 60) -> CalendarEvent:
    return make_event(
        start, start + timedelta(minutes=minutes), summary="Booking",
        private={"service_id": service_id, "booking_id": "bk_test"},
    )


def make_store(**overrides: Any) -> StoreConfig:
    row: dict[str, Any] = {
        "id": "store-1",
        "name": "Glow Studio",
        "invite_calendar_id": INVITE_CALENDAR,
        "calendar_mappings": CALENDAR_MAPPINGS,
        "detected_schema": {
            "Services": {}, "Products": {}, "Opening Hours": {}, "FAQ": {},
            "Leads": {"columns": LEAD_COLUMNS},
        },
    }
    row.update(overrides)
    return StoreConfig.model_validate(row)


class FakeSheets:
    """In-memory sheet loader keyed by tab name."""

    def __init__(self, tabs: Optional[dict[str, list[dict[str, Any]]]] = None,
                 failing: tuple[str, ...] = ()) -> None:
        self.tabs = tabs if tabs is not None else {
            "Services": SERVICES,
            "Products": PRODUCTS,
            "Opening Hours": HOURS,
            "FAQ": [{"question": "Parking?", "answer": "Free parking behind the studio."},
                    {"question": "Refunds?", "answer": "Within 7 days."}],
        }
        self.failing = failing
        self.calls: list[tuple[str, str]] = []
        self.appended: list[tuple[str, dict[str, Any]]] = []

    async def load_tab(self, store_id: str, tab_name: str) -> list[dict[str, Any]]:
        self.calls.append((store_id, tab_name))
        if tab_name in self.failing:
            raise ExternalServiceError("sheets", f"cannot read {tab_name}", status_code=500)
        return [dict(r) for r in self.tabs.get(tab_name, [])]

    async def append_row(self, store_id: str, tab_name: str, row: dict[str, Any]) -> None:
        if tab_name in self.failing:
            raise ExternalServiceError("sheets", f"cannot append to {tab_name}", status_code=500)
        self.appended.append((tab_name, dict(row)))


class FakeCalendar:
    """In-memory calendar with the same surface as GoogleCalendarClient."""

    def __init__(self, events: Optional[dict[str, list[CalendarEvent]]] = None) -> None:
        self.events: dict[str, list[CalendarEvent]] = {k: list(v) for k, v in (events or {}).items()}
        self.created: list[tuple[str, dict[str, Any], str]] = []
        self.list_calls: list[str] = []
        self.fail_on: set[str] = set()
        self._ids = itertools.count(1)

    def add(self, calendar_id: str, *events: CalendarEvent) -> None:
        self.events.setdefault(calendar_id, []).extend(events)

    async def list_events(self, calendar_id: str, start: datetime, end: datetime,
                          single_events: bool = True,
                          private_filter: Optional[str] = None) -> list[CalendarEvent]:
        self.list_calls.append(calendar_id)
        await asyncio.sleep(0)
        if "list" in self.fail_on:
            raise ExternalServiceError("calendar", "list failed", status_code=503)
        key = value = None
        if private_filter:
            key, value = private_filter.split("=", 1)
        found = []
        for event in self.events.get(calendar_id, []):
            if event.is_timed:
                if not (event.start.date_time < end and event.end.date_time > start):
                    continue
            elif not (start.date() <= event.start.day < end.date() + timedelta(days=1)):
                continue
            if key is not None and event.private.get(key) != value:
                continue
            found.append(event)
        return sorted(found, key=lambda e: e.start.date_time or datetime.min.replace(tzinfo=HKT))

    async def count_bookings(self, calendar_id: str, service_id: str, start: datetime) -> int:
        events = await self.list_events(
            calendar_id, start, start + timedelta(minutes=1), private_filter=f"service_id={service_id}"
        )
        return sum(1 for e in events if e.status != "cancelled" and e.start.date_time == start)

    async def create_event(self, calendar_id: str, event: NewBookingEvent,
                           send_updates: str = "all") -> dict[str, Any]:
        await asyncio.sleep(0)
        if "create" in self.fail_on:
            raise ExternalServiceError("calendar", "insert failed", status_code=500)
        body = event.to_api()
        event_id = f"evt_{next(self._ids)}"
        self.created.append((calendar_id, body, send_updates))
        self.add(calendar_id, CalendarEvent.model_validate({**body, "id": event_id}))
        return {"id": event_id, **body}


class FakeStores:
    def __init__(self, *stores: StoreConfig) -> None:
        self.stores = {s.id: s for s in stores}

    async def get_store(self, store_id: str) -> Optional[StoreConfig]:
        return self.stores.get(store_id)


class ScriptedLLM:
    """Returns queued completions in order; an Exception entry is raised instead."""

    def __init__(self, *replies: Union[str, Exception], model: str = "x-ai/grok-4.1-fast") -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []
        self.default_model = model

    async def complete(self, messages: list[dict[str, str]], temperature: float, max_tokens: int,
                       model: Optional[str] = None, json_mode: bool = True) -> LLMResult:
        self.calls.append({"messages": messages, "temperature": temperature,
                           "max_tokens": max_tokens, "model": model, "json_mode": json_mode})
        if not self.replies:
            raise ExternalServiceError("llm", "no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return LLMResult(text=reply, input_tokens=1000, output_tokens=200)


def default_calendar() -> FakeCalendar:
    """Availability on 2025-11-28 (HKT) for every linked service."""
    return FakeCalendar({
        "cal_color": [make_event(at("2025-11-28", "09:00"), at("2025-11-28", "11:00"))],
        "cal_yoga": [make_event(at("2025-11-28", "07:00"), at("2025-11-28", "08:00"))],
        "cal_cut": [
            make_event(at("2025-11-28", "10:00"), at("2025-11-28", "18:00")),
            make_event("2025-11-29", "2025-11-30", summary="Closed for holiday"),
        ],
    })


def make_context(
    store: Optional[StoreConfig] = None,
    sheets: Optional[FakeSheets] = None,
    calendar: Optional[FakeCalendar] = None,
    now: datetime = NOW,
    locks: Optional[SlotLocks] = None,
    **booking_overrides: Any,
) -> ToolContext:
    return ToolContext(
        store=store or make_store(),
        sheets=sheets or FakeSheets(),
        calendar=calendar or default_calendar(),
        booking=booking_config(**booking_overrides),
        locks=locks if locks is not None else SlotLocks(),
        now=now,
    )


@pytest.fixture
def calendar():
    return default_calendar()


@pytest.fixture
def sheets():
    return FakeSheets()


@pytest.fixture
def ctx(calendar, sheets):
    return make_context(calendar=calendar, sheets=sheets)
