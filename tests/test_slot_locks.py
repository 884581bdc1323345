"""Tests for per-slot booking serialisation and request id logging."""

import asyncio
import logging

import pytest

from storechat.logging_context import (
    RequestIdFilter,
    get_request_id,
    new_request_id,
    set_request_id,
)
from storechat.tools.slot_locks import SlotLocks


class TestSlotLocks:
    @pytest.mark.asyncio
    async def test_same_key_is_serialised(self):
        locks = SlotLocks()
        order = []

        async def hold(name):
            async with locks.hold(("cal", "svc", "09:00")):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(hold("a"), hold("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_different_keys_interleave(self):
        locks = SlotLocks()
        order = []

        async def hold(key):
            async with locks.hold(key):
                order.append(f"{key}-in")
                await asyncio.sleep(0)
                order.append(f"{key}-out")

        await asyncio.gather(hold("09:00"), hold("10:00"))
        assert order[:2] == ["09:00-in", "10:00-in"]

    @pytest.mark.asyncio
    async def test_entries_released(self):
        locks = SlotLocks()
        async with locks.hold("k"):
            assert len(locks) == 1
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        locks = SlotLocks()
        with pytest.raises(ValueError):
            async with locks.hold("k"):
                raise ValueError("boom")
        assert len(locks) == 0


class TestRequestId:
    def test_new_ids_are_unique(self):
        assert new_request_id() != new_request_id()
        assert new_request_id().startswith("req-")

    def test_filter_stamps_records(self):
        set_request_id("req-123")
        record = logging.LogRecord("storechat", logging.INFO, __file__, 1, "hi", None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "req-123"
        assert get_request_id() == "req-123"
