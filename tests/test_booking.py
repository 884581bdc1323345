"""Tests for booking creation against the calendar."""

import asyncio
import re

import pytest

from storechat.tools.availability import check_availability
from storechat.tools.booking import create_booking, new_booking_id
from storechat.tools.slot_locks import SlotLocks
from conftest import (
    INVITE_CALENDAR,
    at,
    make_booking_event,
    make_context,
    make_store,
)

CUSTOMER = {
    "customer_name": "Ana Lopez",
    "customer_email": "ana@example.com",
    "customer_phone": "+852 9123 4567",
}


class TestBookingId:
    def test_format(self):
        assert re.match(r"^bk_\d{13}_[0-9a-f]{9}$", new_booking_id())

    def test_unique(self):
        assert new_booking_id() != new_booking_id()


class TestCreateBooking:
    @pytest.mark.asyncio
    async def test_books_class_slot(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Hair Color", "2025-11-28", "09:30", **CUSTOMER)
        assert result["success"] is True
        assert result["time"] == "09:00"
        assert result["end_time"] == "11:00"
        assert result["available_spots_remaining"] == 0
        assert result["event_id"] == "evt_1"
        assert result["customer_phone"] == "+85291234567"
        assert result["rich_content"]["type"] == "BookingConfirmation"
        assert result["rich_content"]["props"]["bookingId"] == result["booking_id"]

    @pytest.mark.asyncio
    async def test_event_body(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Haircut", "2025-11-28", "10:45", **CUSTOMER)

        calendar_id, body, send_updates = calendar.created[0]
        assert calendar_id == INVITE_CALENDAR
        assert send_updates == "all"
        assert body["summary"] == "Haircut - Ana Lopez"
        assert body["start"] == {"dateTime": "2025-11-28T10:45:00+08:00", "timeZone": "Asia/Hong_Kong"}
        assert body["end"]["dateTime"] == "2025-11-28T11:15:00+08:00"
        assert body["attendees"] == [{"email": "ana@example.com"}]
        private = body["extendedProperties"]["private"]
        assert private["service_id"] == "svc_cut"
        assert private["booking_id"] == result["booking_id"]
        assert private["customer_email"] == "ana@example.com"
        assert "booked_at" in private
        assert "Service: Haircut" in body["description"]
        assert "Phone: +85291234567" in body["description"]
        assert "Glow Studio" in body["description"]

    @pytest.mark.asyncio
    async def test_without_invites(self, calendar):
        ctx = make_context(calendar=calendar, send_invites=False)
        result = await create_booking(ctx, "Haircut", "2025-11-28", "10:00", **CUSTOMER)
        _, body, send_updates = calendar.created[0]
        assert send_updates == "none"
        assert "attendees" not in body or body["attendees"] == []
        assert "calendar invite" not in result["message"]

    @pytest.mark.asyncio
    async def test_phone_is_optional(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(
            ctx, "Haircut", "2025-11-28", "10:00", "Ana Lopez", "ana@example.com"
        )
        assert result["success"] is True
        assert result["customer_phone"] == ""

    @pytest.mark.asyncio
    async def test_missing_fields(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Haircut", "2025-11-28", "10:00")
        assert result["needs_clarification"] is True
        assert result["missing_fields"] == ["customer_name", "customer_email"]
        assert calendar.created == []

    @pytest.mark.asyncio
    async def test_invalid_email(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(
            ctx, "Haircut", "2025-11-28", "10:00", "Ana Lopez", "ana-at-example"
        )
        assert result["missing_fields"] == ["customer_email"]
        assert calendar.created == []

    @pytest.mark.asyncio
    async def test_no_class_scheduled(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Hair Color", "2025-11-28", "14:00", **CUSTOMER)
        assert result["success"] is False
        assert result["error"] == "no_class_scheduled"
        assert calendar.created == []

    @pytest.mark.asyncio
    async def test_fully_booked(self, calendar):
        calendar.add(INVITE_CALENDAR, make_booking_event("svc_color", at("2025-11-28", "09:00"), 120))
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Hair Color", "2025-11-28", "09:00", **CUSTOMER)
        assert result["error"] == "fully_booked"
        assert result["time"] == "09:00"
        assert calendar.created == []

    @pytest.mark.asyncio
    async def test_rechecks_after_stale_availability(self, calendar):
        ctx = make_context(calendar=calendar)
        check = await check_availability(ctx, "Hair Color", "2025-11-28", "09:00")
        assert check["available"] is True

        first = await create_booking(ctx, "Hair Color", "2025-11-28", "09:00", **CUSTOMER)
        second = await create_booking(
            make_context(calendar=calendar), "Hair Color", "2025-11-28", "09:00",
            "Ben Wong", "ben@example.com",
        )
        assert first["success"] is True
        assert second["error"] == "fully_booked"

    @pytest.mark.asyncio
    async def test_concurrent_requests_for_last_spot(self, calendar):
        locks = SlotLocks()
        results = await asyncio.gather(
            create_booking(
                make_context(calendar=calendar, locks=locks),
                "Hair Color", "2025-11-28", "09:00", **CUSTOMER,
            ),
            create_booking(
                make_context(calendar=calendar, locks=locks),
                "Hair Color", "2025-11-28", "09:30", "Ben Wong", "ben@example.com",
            ),
        )
        outcomes = sorted(r.get("error", "ok") for r in results)
        assert outcomes == ["fully_booked", "ok"]
        assert len(calendar.created) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_capacity_counts_per_start_time(self, calendar):
        ctx = make_context(calendar=calendar)
        for name in ("Ana Lopez", "Ben Wong"):
            result = await create_booking(
                ctx, "Haircut", "2025-11-28", "10:00", name, "guest@example.com"
            )
            assert result["success"] is True
        third = await create_booking(
            ctx, "Haircut", "2025-11-28", "10:00", "Cai Lin", "cai@example.com"
        )
        other_time = await create_booking(
            ctx, "Haircut", "2025-11-28", "10:30", "Cai Lin", "cai@example.com"
        )
        assert third["error"] == "fully_booked"
        assert other_time["success"] is True
        assert other_time["available_spots_remaining"] == 1

    @pytest.mark.asyncio
    async def test_not_configured_without_invite_calendar(self, calendar):
        ctx = make_context(store=make_store(invite_calendar_id=""), calendar=calendar)
        result = await create_booking(ctx, "Haircut", "2025-11-28", "10:00", **CUSTOMER)
        assert result["error"] == "not_configured"

    @pytest.mark.asyncio
    async def test_service_not_linked(self, calendar):
        ctx = make_context(calendar=calendar)
        result = await create_booking(ctx, "Massage", "2025-11-28", "10:00", **CUSTOMER)
        assert result["error"] == "service_not_linked"
        assert calendar.created == []
