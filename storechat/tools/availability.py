"""
Calendar-backed availability engine.

Availability windows are events on a per-service availability calendar.
A window no longer than the configured class threshold is one fixed class
slot; a longer window is an open range split into service-length slots.
Bookings live on the store's invite calendar and are counted per start time.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from storechat.schemas.booking_schema import CalendarEvent, Slot
from storechat.schemas.store_schema import Service
from storechat.tools.catalog import resolve_booking_target
from storechat.tools.context import ToolContext, ToolResult, clarification, failure
from storechat.tools.validators import describe_fields, find_invalid, find_missing
from storechat.utils import format_time, parse_date, parse_time, plural

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSlot:
    """Effective start/end of a booking inside an availability window."""

    start: datetime
    end: datetime
    is_class: bool


def day_bounds(day: date, ctx: ToolContext) -> tuple[datetime, datetime]:
    """Midnight-to-midnight in the business timezone."""
    tz = ctx.booking.tz
    start = datetime.combine(day, time(0, 0), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time(0, 0), tzinfo=tz)
    return start, end


def local_moment(day: date, at: time, ctx: ToolContext) -> datetime:
    return datetime.combine(day, at, tzinfo=ctx.booking.tz)


def is_class_window(event: CalendarEvent, ctx: ToolContext) -> bool:
    length = event.end.date_time - event.start.date_time
    return length <= timedelta(hours=ctx.booking.class_slot_max_hours)


def find_containing_window(
    events: list[CalendarEvent], moment: datetime
) -> Optional[CalendarEvent]:
    """First timed event with start <= moment < end; all-day events are skipped."""
    for event in events:
        if event.contains(moment):
            return event
    return None


def resolve_slot(
    window: CalendarEvent, requested: datetime, service: Service, ctx: ToolContext
) -> ResolvedSlot:
    """Snap to the class bounds for short windows, keep the literal time otherwise."""
    tz = ctx.booking.tz
    if is_class_window(window, ctx):
        return ResolvedSlot(
            start=window.start.date_time.astimezone(tz),
            end=window.end.date_time.astimezone(tz),
            is_class=True,
        )
    return ResolvedSlot(
        start=requested,
        end=requested + timedelta(minutes=service.duration_minutes),
        is_class=False,
    )


def window_slots(
    window: CalendarEvent, service: Service, ctx: ToolContext
) -> list[tuple[datetime, datetime]]:
    """Bookable (start, end) pairs generated from one availability window."""
    tz = ctx.booking.tz
    start = window.start.date_time.astimezone(tz)
    end = window.end.date_time.astimezone(tz)
    if is_class_window(window, ctx):
        return [(start, end)]

    step = timedelta(minutes=service.duration_minutes)
    slots = []
    current = start
    while current + step <= end:
        slots.append((current, current + step))
        current += step
    return slots


async def check_availability(
    ctx: ToolContext,
    service_name: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
) -> ToolResult:
    """Is there open capacity for the service at the requested date and time?"""
    params = {"service_name": service_name, "date": date, "time": time}
    missing = find_missing(params, ["service_name", "date", "time"])
    invalid = find_invalid(params)
    if missing or invalid:
        return clarification(
            f"I need the {describe_fields(missing + invalid)} to check availability.",
            missing + invalid,
        )

    target = await resolve_booking_target(ctx, service_name)
    if isinstance(target, dict):
        return target
    service, calendar_id = target

    day = parse_date(date)
    requested = local_moment(day, parse_time(time), ctx)
    day_start, day_end = day_bounds(day, ctx)
    events = await ctx.calendar.list_events(calendar_id, day_start, day_end)

    window = find_containing_window(events, requested)
    if window is None:
        return failure(
            "not_available",
            f"{service.name} is not scheduled for {date} at {time}. "
            "Would you like to see available times?",
            available=False,
            service=service.name,
            date=date,
            time=time,
        )

    slot = resolve_slot(window, requested, service, ctx)
    booked = await ctx.calendar.count_bookings(
        ctx.store.invite_calendar_id, service.service_id, slot.start
    )
    spots = service.capacity - booked
    slot_time = format_time(slot.start)

    if spots > 0:
        message = (
            f"Yes! {service.name} is available on {date} at {slot_time}. "
            f"{plural(spots, 'spot')} remaining."
        )
        if service.price:
            message += f" Price: ${service.price}"
    else:
        message = (
            f"Sorry, {service.name} is fully booked on {date} at {slot_time}. "
            "Would you like to try another time?"
        )

    logger.info(
        "Availability %s %s %s: capacity=%d booked=%d", service.service_id, date, slot_time,
        service.capacity, booked,
    )
    return {
        "success": True,
        "available": spots > 0,
        "service": service.name,
        "service_id": service.service_id,
        "date": date,
        "time": slot_time,
        "requested_time": time,
        "end_time": format_time(slot.end),
        "is_class": slot.is_class,
        "capacity": service.capacity,
        "booked": booked,
        "available_spots": max(spots, 0),
        "price": service.price,
        "duration": service.duration_minutes,
        "message": message,
    }


def _slots_message(
    service: Service,
    slots: list[Slot],
    full: set[tuple[str, str]],
    prefill_date: Optional[str],
    prefill_time: Optional[str],
) -> str:
    if not slots:
        return (
            f"Sorry, there are no available slots for {service.name} in that period. "
            "Would you like to try different dates?"
        )
    if not prefill_date:
        return f"Here are the available times for {service.name}. Select a slot to continue."

    on_date = [s for s in slots if s.date == prefill_date]
    if not on_date:
        return (
            f"{service.name} has no available times on {prefill_date}. "
            "Please pick another date from the calendar."
        )
    if not prefill_time:
        return f"Here are the available times for {service.name} on {prefill_date}."
    if any(s.time == prefill_time for s in on_date):
        return (
            f"{prefill_time} on {prefill_date} is available for {service.name}. "
            "Confirm your details to book."
        )
    if (prefill_date, prefill_time) in full:
        return (
            f"{prefill_time} on {prefill_date} is fully booked for {service.name}. "
            "Please choose another time."
        )
    return (
        f"{service.name} doesn't have a session at {prefill_time} on {prefill_date}. "
        "Please choose one of the available times."
    )


async def get_booking_slots(
    ctx: ToolContext,
    service_name: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    prefill_date: Optional[str] = None,
    prefill_time: Optional[str] = None,
    prefill_name: Optional[str] = None,
    prefill_email: Optional[str] = None,
    prefill_phone: Optional[str] = None,
) -> ToolResult:
    """All open slots for a service over a date range, for the booking calendar."""
    params = {
        "service_name": service_name,
        "start_date": start_date,
        "end_date": end_date,
        "prefill_date": prefill_date,
        "prefill_time": prefill_time,
    }
    missing = find_missing(params, ["service_name"])
    invalid = find_invalid(params)
    if missing or invalid:
        return clarification(
            f"I need the {describe_fields(missing + invalid)} to show available times.",
            missing + invalid,
        )

    today = ctx.now.astimezone(ctx.booking.tz).date()
    first_day = parse_date(start_date) if start_date else today
    last_day = (
        parse_date(end_date) if end_date
        else first_day + timedelta(days=ctx.booking.booking_window_days)
    )
    if last_day < first_day:
        return clarification("The end date needs to be on or after the start date.", ["end_date"])
    if prefill_time:
        prefill_time = parse_time(prefill_time).strftime("%H:%M")

    target = await resolve_booking_target(ctx, service_name)
    if isinstance(target, dict):
        return target
    service, calendar_id = target

    range_start, _ = day_bounds(first_day, ctx)
    _, range_end = day_bounds(last_day, ctx)
    windows, bookings = await asyncio.gather(
        ctx.calendar.list_events(calendar_id, range_start, range_end),
        ctx.calendar.list_events(
            ctx.store.invite_calendar_id, range_start, range_end,
            private_filter=f"service_id={service.service_id}",
        ),
    )
    booked_at = Counter(
        event.start.date_time
        for event in bookings
        if event.is_timed
        and event.status != "cancelled"
        and event.private.get("service_id") == service.service_id
    )

    candidates: dict[datetime, datetime] = {}
    for window in windows:
        if not window.is_timed:
            continue
        for start, end in window_slots(window, service, ctx):
            if start >= ctx.now:
                candidates.setdefault(start, end)

    slots: list[Slot] = []
    full: set[tuple[str, str]] = set()
    for start, end in candidates.items():
        spots = service.capacity - booked_at.get(start, 0)
        key = (start.date().isoformat(), format_time(start))
        if spots > 0:
            slots.append(Slot(date=key[0], time=key[1], end_time=format_time(end), spots_left=spots))
        else:
            full.add(key)
    slots.sort(key=lambda s: (s.date, s.time))

    open_dates = {s.date for s in slots}
    unavailable = [
        (first_day + timedelta(days=i)).isoformat()
        for i in range((last_day - first_day).days + 1)
        if (first_day + timedelta(days=i)).isoformat() not in open_dates
    ]

    slot_dicts = [s.model_dump(by_alias=True) for s in slots]
    service_info = {
        "id": service.service_id,
        "name": service.name,
        "duration": service.duration_minutes,
        "price": service.price,
    }
    logger.info(
        "Generated %d open slots for %s between %s and %s (%d full)",
        len(slots), service.service_id, first_day, last_day, len(full),
    )
    return {
        "success": True,
        "service": service_info,
        "slots": slot_dicts,
        "unavailable_dates": unavailable,
        "date_range": {"start": first_day.isoformat(), "end": last_day.isoformat()},
        "message": _slots_message(service, slots, full, prefill_date, prefill_time),
        "rich_content": {
            "type": "BookingCalendar",
            "props": {
                "service": service_info,
                "slots": slot_dicts,
                "unavailableDates": unavailable,
                "prefill": {
                    "date": prefill_date,
                    "time": prefill_time,
                    "name": prefill_name,
                    "email": prefill_email,
                    "phone": prefill_phone,
                },
            },
        },
    }
