"""
Calendar booking creation.

Availability is re-derived from the calendar at booking time rather than
trusted from an earlier check. The capacity recount and the event insert
run under a per-slot lock so concurrent requests in this process cannot
both take the last spot.
"""

import logging
import time as _time
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from storechat.schemas.booking_schema import NewBookingEvent
from storechat.tools.availability import (
    day_bounds,
    find_containing_window,
    local_moment,
    resolve_slot,
)
from storechat.tools.catalog import resolve_booking_target
from storechat.tools.context import ToolContext, ToolResult, clarification, failure
from storechat.tools.validators import describe_fields, find_invalid, find_missing
from storechat.utils import format_time, normalize_phone, parse_date, parse_time

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ["service_name", "date", "time", "customer_name", "customer_email"]


def new_booking_id() -> str:
    """Correlation id stored in the booking event's private metadata."""
    return f"bk_{int(_time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _description(
    service_name: str, price: Optional[str], duration: int,
    name: str, email: str, phone: str, store_name: str,
) -> str:
    lines = [
        "Booking Confirmation",
        "",
        f"Service: {service_name}",
        f"Price: ${price or 'N/A'}",
        f"Duration: {duration} minutes",
        "",
        "Customer Details:",
        f"Name: {name}",
        f"Email: {email}",
    ]
    if phone:
        lines.append(f"Phone: {phone}")
    lines += [
        "",
        f"Thank you for booking with {store_name or 'us'}!",
        "If you need to reschedule or cancel, please contact us.",
    ]
    return "\n".join(lines)


async def create_booking(
    ctx: ToolContext,
    service_name: Optional[str] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
) -> ToolResult:
    """Book one spot for the customer, returning the confirmation details."""
    params = {
        "service_name": service_name,
        "date": date,
        "time": time,
        "customer_name": customer_name,
        "customer_email": customer_email,
        "customer_phone": customer_phone,
    }
    missing = find_missing(params, REQUIRED_FIELDS)
    invalid = find_invalid(params)
    if missing or invalid:
        return clarification(
            f"I need the {describe_fields(missing + invalid)} to complete the booking.",
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
        logger.info("No window for %s at %s on calendar %s", service.service_id, requested, calendar_id)
        return failure(
            "no_class_scheduled",
            f"{service.name} doesn't have anything scheduled on {date} at {time}. "
            "Would you like to see available times?",
            service=service.name,
            date=date,
            time=time,
        )

    slot = resolve_slot(window, requested, service, ctx)
    slot_date = slot.start.date().isoformat()
    slot_time = format_time(slot.start)
    # Bookings last the service duration, even when snapped to a class start.
    end = slot.start + timedelta(minutes=service.duration_minutes)
    invite_calendar = ctx.store.invite_calendar_id
    customer_name = customer_name.strip()
    customer_email = customer_email.strip()
    phone = normalize_phone(customer_phone) if customer_phone else ""

    async with ctx.locks.hold((invite_calendar, service.service_id, slot.start.isoformat())):
        booked = await ctx.calendar.count_bookings(invite_calendar, service.service_id, slot.start)
        if booked >= service.capacity:
            logger.info(
                "Rejecting booking for %s at %s: %d/%d booked",
                service.service_id, slot.start, booked, service.capacity,
            )
            return failure(
                "fully_booked",
                f"Sorry, {service.name} is fully booked on {slot_date} at {slot_time}. "
                "Would you like to try another time?",
                service=service.name,
                date=slot_date,
                time=slot_time,
            )

        booking_id = new_booking_id()
        tz_name = ctx.booking.business_timezone
        event = NewBookingEvent(
            summary=f"{service.name} - {customer_name}",
            description=_description(
                service.name, service.price, service.duration_minutes,
                customer_name, customer_email, phone, ctx.store.name,
            ),
            location=service.location,
            start={"dateTime": slot.start.isoformat(), "timeZone": tz_name},
            end={"dateTime": end.isoformat(), "timeZone": tz_name},
            attendees=[{"email": customer_email}] if ctx.booking.send_invites else [],
            extended_properties={
                "private": {
                    "booking_id": booking_id,
                    "service_id": service.service_id,
                    "customer_name": customer_name,
                    "customer_email": customer_email,
                    "customer_phone": phone,
                    "booked_at": datetime.now(timezone.utc).isoformat(),
                }
            },
        )
        created = await ctx.calendar.create_event(
            invite_calendar, event, send_updates="all" if ctx.booking.send_invites else "none"
        )

    logger.info(
        "Booking %s created for %s at %s %s (event %s)",
        booking_id, service.service_id, slot_date, slot_time, created.get("id"),
    )
    if ctx.booking.send_invites:
        message = (
            f"Booking confirmed! You'll receive a calendar invite at {customer_email} "
            f"with all the details. See you on {slot_date} at {slot_time}!"
        )
    else:
        message = f"Booking confirmed! See you on {slot_date} at {slot_time}!"

    confirmation = {
        "bookingId": booking_id,
        "service": service.name,
        "date": slot_date,
        "time": slot_time,
        "duration": service.duration_minutes,
        "price": service.price,
        "customerName": customer_name,
        "customerEmail": customer_email,
    }
    return {
        "success": True,
        "booking_id": booking_id,
        "event_id": created.get("id", ""),
        "service": service.name,
        "date": slot_date,
        "time": slot_time,
        "end_time": format_time(end),
        "duration": service.duration_minutes,
        "price": service.price,
        "customer_name": customer_name,
        "customer_email": customer_email,
        "customer_phone": phone,
        "available_spots_remaining": service.capacity - booked - 1,
        "message": message,
        "rich_content": {"type": "BookingConfirmation", "props": confirmation},
    }
