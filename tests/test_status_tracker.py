"""PaymentStatusTracker: overwrite semantics, removal, and per-checkout-id critical sections."""
import asyncio
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

from services.status_tracker import PaymentStatusTracker


class _StepClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class TestPaymentStatusTracker(unittest.TestCase):
    def test_set_then_get(self):
        tracker = PaymentStatusTracker()
        tracker.set("ws_CO_1", "pending", "STK Push sent")
        entry = tracker.get("ws_CO_1")
        self.assertEqual(entry.status, "pending")
        self.assertEqual(entry.description, "STK Push sent")
        self.assertIsNotNone(entry.updated_at)

    def test_get_unknown_returns_none(self):
        self.assertIsNone(PaymentStatusTracker().get("missing"))

    def test_overwrite_is_last_write_wins_and_restamps(self):
        clock = _StepClock()
        tracker = PaymentStatusTracker(clock=clock)
        first = tracker.set("ws_CO_1", "pending", "STK Push sent")
        second = tracker.set("ws_CO_1", "success", "The service request is processed successfully.")
        third = tracker.set("ws_CO_1", "success", "The service request is processed successfully.")
        self.assertEqual(tracker.get("ws_CO_1"), third)
        self.assertEqual(third.status, "success")
        self.assertLess(first.updated_at, second.updated_at)
        self.assertLess(second.updated_at, third.updated_at)
        self.assertEqual(len(tracker), 1)

    def test_remove(self):
        tracker = PaymentStatusTracker()
        tracker.set("ws_CO_1", "pending", "STK Push sent")
        tracker.set("ws_CO_2", "pending", "STK Push sent")
        tracker.remove("ws_CO_1")
        self.assertNotIn("ws_CO_1", tracker)
        self.assertIn("ws_CO_2", tracker)
        tracker.remove("never-existed")
        self.assertEqual(len(tracker), 1)

    def test_concurrent_writers_on_distinct_keys(self):
        tracker = PaymentStatusTracker()

        def write(n):
            key = f"ws_CO_{n}"
            tracker.set(key, "pending", "STK Push sent")
            tracker.set(key, "success", "ok")
            return tracker.get(key).status

        with ThreadPoolExecutor(max_workers=8) as pool:
            statuses = list(pool.map(write, range(200)))

        self.assertEqual(statuses, ["success"] * 200)
        self.assertEqual(len(tracker), 200)


class TestTrackerTransactions(unittest.IsolatedAsyncioTestCase):
    async def test_same_checkout_id_is_serialized(self):
        tracker = PaymentStatusTracker()
        events = []

        async def worker(name):
            async with tracker.transaction("ws_CO_1"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        await asyncio.gather(worker("a"), worker("b"))
        self.assertEqual(events, ["a-start", "a-end", "b-start", "b-end"])

    async def test_distinct_checkout_ids_do_not_block_each_other(self):
        tracker = PaymentStatusTracker()
        entered = asyncio.Event()

        async def holder():
            async with tracker.transaction("ws_CO_1"):
                await entered.wait()

        async def other():
            async with tracker.transaction("ws_CO_2"):
                entered.set()

        await asyncio.wait_for(asyncio.gather(holder(), other()), timeout=1)

    async def test_remove_keeps_lock_held_by_active_transaction(self):
        tracker = PaymentStatusTracker()
        async with tracker.transaction("ws_CO_1"):
            tracker.set("ws_CO_1", "pending", "STK Push sent")
            tracker.remove("ws_CO_1")
            waiter = asyncio.create_task(self._enter(tracker, "ws_CO_1"))
            await asyncio.sleep(0)
            self.assertFalse(waiter.done())
        await asyncio.wait_for(waiter, timeout=1)

    async def test_lock_slots_are_released(self):
        tracker = PaymentStatusTracker()
        for n in range(100):
            async with tracker.transaction(f"bogus-{n}"):
                pass
        self.assertEqual(tracker._key_locks, {})

    async def test_lock_slot_released_after_contended_transactions(self):
        tracker = PaymentStatusTracker()

        async def worker():
            async with tracker.transaction("ws_CO_1"):
                await asyncio.sleep(0)

        await asyncio.gather(*(worker() for _ in range(5)))
        self.assertEqual(tracker._key_locks, {})

    async def test_lock_slot_released_when_body_raises(self):
        tracker = PaymentStatusTracker()
        with self.assertRaises(RuntimeError):
            async with tracker.transaction("ws_CO_1"):
                raise RuntimeError("boom")
        self.assertEqual(tracker._key_locks, {})

    @staticmethod
    async def _enter(tracker, key):
        async with tracker.transaction(key):
            return True


if __name__ == "__main__":
    unittest.main()
