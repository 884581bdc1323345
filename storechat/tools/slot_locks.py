"""
In-process serialisation of booking creation per slot.

Two concurrent requests for the same (invite calendar, service, start) in
one server process queue on the same asyncio.Lock, so the capacity recount
and the event creation happen atomically with respect to each other.
Separate processes are not coordinated; the calendar stays authoritative.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Hashable

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    lock: asyncio.Lock
    holders: int = 0


class SlotLocks:
    def __init__(self) -> None:
        self._entries: dict[Hashable, _Entry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry(asyncio.Lock())
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
