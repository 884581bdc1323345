"""Google Calendar REST client: list events, create events, count bookings."""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from storechat.config import CalendarConfig
from storechat.integrations.errors import ExternalServiceError
from storechat.integrations.http import request_json
from storechat.schemas.booking_schema import CalendarEvent, NewBookingEvent

logger = logging.getLogger(__name__)

PAGE_SIZE = 250
MAX_PAGES = 20


class GoogleCalendarClient:
    def __init__(self, client: httpx.AsyncClient, calendar: CalendarConfig) -> None:
        self._client = client
        self._base = calendar.api_base_url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {calendar.access_token}"}

    def _events_url(self, calendar_id: str) -> str:
        return f"{self._base}/calendars/{quote(calendar_id, safe='')}/events"

    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        single_events: bool = True,
        private_filter: Optional[str] = None,
    ) -> list[CalendarEvent]:
        """Events overlapping [start, end). Recurring events are expanded by default."""
        params: dict[str, Any] = {
            "timeMin": start.isoformat(),
            "timeMax": end.isoformat(),
            "singleEvents": "true" if single_events else "false",
            "maxResults": PAGE_SIZE,
        }
        if single_events:
            params["orderBy"] = "startTime"
        if private_filter:
            params["privateExtendedProperty"] = private_filter

        events: list[CalendarEvent] = []
        for _ in range(MAX_PAGES):
            body = await request_json(
                self._client, "calendar", "GET", self._events_url(calendar_id),
                params=params, headers=self._headers,
            )
            try:
                events.extend(
                    CalendarEvent.model_validate(item) for item in (body or {}).get("items", [])
                )
            except ValidationError as exc:
                raise ExternalServiceError("calendar", f"malformed event in {calendar_id}") from exc

            page_token = (body or {}).get("nextPageToken")
            if not page_token:
                break
            params["pageToken"] = page_token
        else:
            logger.warning("Stopped paging events for %s after %d pages", calendar_id, MAX_PAGES)
        return events

    async def create_event(
        self, calendar_id: str, event: NewBookingEvent, send_updates: str = "all"
    ) -> dict[str, Any]:
        body = await request_json(
            self._client, "calendar", "POST", self._events_url(calendar_id),
            params={"sendUpdates": send_updates},
            json=event.to_api(),
            headers=self._headers,
        )
        if not isinstance(body, dict):
            raise ExternalServiceError("calendar", "create event returned no event")
        return body

    async def count_bookings(self, calendar_id: str, service_id: str, start: datetime) -> int:
        """Count live bookings for a service that start exactly at ``start``."""
        events = await self.list_events(
            calendar_id,
            start,
            start + timedelta(minutes=1),
            private_filter=f"service_id={service_id}",
        )
        return sum(
            1
            for event in events
            if event.status != "cancelled"
            and event.private.get("service_id") == service_id
            and event.start.date_time == start
        )
