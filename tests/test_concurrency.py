import asyncio
import unittest

from rapport.concurrency import best_effort, map_bounded, required, with_deadline
from rapport.errors import TransportFailure, TransportTimeout


class TestMapBounded(unittest.IsolatedAsyncioTestCase):
    async def test_preserves_input_order_when_completion_order_differs(self):
        async def mapper(n):
            await asyncio.sleep(0.01 * (5 - n))
            return n * 10

        result = await map_bounded([1, 2, 3, 4], 4, mapper)
        self.assertEqual(result, [10, 20, 30, 40])

    async def test_never_exceeds_limit(self):
        in_flight = 0
        peak = 0

        async def mapper(n):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1
            return n

        result = await map_bounded(range(10), 3, mapper)
        self.assertEqual(result, list(range(10)))
        self.assertLessEqual(peak, 3)
        self.assertGreaterEqual(peak, 2)

    async def test_empty_input_returns_empty_list(self):
        async def mapper(n):  # pragma: no cover - never called
            raise AssertionError("should not be called")

        self.assertEqual(await map_bounded([], 2, mapper), [])

    async def test_limit_below_one_rejected(self):
        async def mapper(n):
            return n

        with self.assertRaises(ValueError):
            await map_bounded([1], 0, mapper)

    async def test_mapper_error_propagates(self):
        async def mapper(n):
            if n == 2:
                raise TransportFailure("boom")
            return n

        with self.assertRaises(TransportFailure):
            await map_bounded([1, 2, 3], 2, mapper)


class TestDeadlines(unittest.IsolatedAsyncioTestCase):
    async def test_with_deadline_returns_value(self):
        async def quick():
            return "ok"

        self.assertEqual(await with_deadline(quick(), 1.0, "late"), "ok")

    async def test_with_deadline_raises_transport_timeout_with_message(self):
        with self.assertRaises(TransportTimeout) as ctx:
            await with_deadline(asyncio.sleep(1), 0.01, "Geo lookup timed out.")
        self.assertEqual(str(ctx.exception), "Geo lookup timed out.")

    async def test_required_propagates_errors(self):
        async def failing():
            raise TransportFailure("upstream down")

        with self.assertRaises(TransportFailure):
            await required(failing(), deadline=1.0, message="late")

    async def test_best_effort_returns_default_on_error(self):
        async def failing():
            raise TransportFailure("upstream down")

        with self.assertLogs("rapport.concurrency", level="WARNING"):
            result = await best_effort(failing(), default=list, label="OSM lookup")
        self.assertEqual(result, [])

    async def test_best_effort_returns_default_on_deadline(self):
        result = await best_effort(asyncio.sleep(1, result=["late"]), default=list, label="slow", deadline=0.01)
        self.assertEqual(result, [])

    async def test_best_effort_passes_through_success(self):
        async def ok():
            return ["a"]

        self.assertEqual(await best_effort(ok(), default=list, label="ok", deadline=1.0), ["a"])


if __name__ == "__main__":
    unittest.main()
