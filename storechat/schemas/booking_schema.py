"""Calendar event and bookable slot data models."""

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventTime(BaseModel):
    """Start or end of a calendar event: timed (dateTime) or all-day (date)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_time: Optional[datetime] = Field(default=None, alias="dateTime")
    day: Optional[date] = Field(default=None, alias="date")
    time_zone: Optional[str] = Field(default=None, alias="timeZone")


class CalendarEvent(BaseModel):
    """Event as returned by the calendar events list endpoint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    status: str = "confirmed"
    summary: str = ""
    start: EventTime = Field(default_factory=EventTime)
    end: EventTime = Field(default_factory=EventTime)
    extended_properties: dict[str, dict[str, str]] = Field(
        default_factory=dict, alias="extendedProperties"
    )

    @property
    def is_timed(self) -> bool:
        return self.start.date_time is not None and self.end.date_time is not None

    @property
    def private(self) -> dict[str, str]:
        return self.extended_properties.get("private", {})

    def contains(self, moment: datetime) -> bool:
        """True when ``moment`` falls in [start, end). All-day events never match."""
        if not self.is_timed:
            return False
        return self.start.date_time <= moment < self.end.date_time


class Slot(BaseModel):
    """A computed bookable slot, never stored."""

    date: str
    time: str
    end_time: str = Field(serialization_alias="endTime")
    spots_left: int = Field(serialization_alias="spotsLeft")


class NewBookingEvent(BaseModel):
    """Body for creating a booking event on the invite calendar."""

    summary: str
    description: str
    location: str = ""
    start: dict[str, str]
    end: dict[str, str]
    attendees: list[dict[str, str]] = Field(default_factory=list)
    extended_properties: dict[str, dict[str, str]] = Field(
        serialization_alias="extendedProperties"
    )

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
