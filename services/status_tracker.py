"""
In-memory tracking of STK push attempts, keyed by CheckoutRequestID.
Diagnostic only: the loan record's status remains the source of truth.
Entries live for the process lifetime unless their loan is deleted.
"""
from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Optional


@dataclass(frozen=True)
class PaymentStatusEntry:
    status: str  # pending | success | cancelled | failed
    description: str
    updated_at: datetime


class _KeyLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentStatusTracker:
    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, PaymentStatusEntry] = {}
        # Only ids with a transaction running or waiting have a slot here
        self._key_locks: dict[str, _KeyLock] = {}
        self._guard = threading.Lock()

    def set(self, checkout_request_id: str, status: str, description: str) -> PaymentStatusEntry:
        """Insert or overwrite (last write wins), stamping the current time."""
        entry = PaymentStatusEntry(status=status, description=description, updated_at=self._clock())
        with self._guard:
            self._entries[checkout_request_id] = entry
        return entry

    def get(self, checkout_request_id: str) -> Optional[PaymentStatusEntry]:
        with self._guard:
            return self._entries.get(checkout_request_id)

    def remove(self, checkout_request_id: str) -> None:
        with self._guard:
            self._entries.pop(checkout_request_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def __contains__(self, checkout_request_id: str) -> bool:
        with self._guard:
            return checkout_request_id in self._entries

    def _acquire_slot(self, checkout_request_id: str) -> _KeyLock:
        with self._guard:
            slot = self._key_locks.get(checkout_request_id)
            if slot is None:
                slot = self._key_locks[checkout_request_id] = _KeyLock()
            slot.users += 1
            return slot

    def _release_slot(self, checkout_request_id: str, slot: _KeyLock) -> None:
        with self._guard:
            slot.users -= 1
            if slot.users == 0 and self._key_locks.get(checkout_request_id) is slot:
                del self._key_locks[checkout_request_id]

    @asynccontextmanager
    async def transaction(self, checkout_request_id: str) -> AsyncIterator[None]:
        """
        Critical section for one checkout id. Work done inside (record write plus
        tracker update, or a status read) is not interleaved with other work on the
        same id; different ids never wait on each other.
        """
        slot = self._acquire_slot(checkout_request_id)
        try:
            async with slot.lock:
                yield
        finally:
            self._release_slot(checkout_request_id, slot)
