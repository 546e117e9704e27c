from __future__ import annotations

import asyncio
import unittest

from repotree.cancellation import CancellationToken, cancellable, is_cancelled


class CancellableTests(unittest.IsolatedAsyncioTestCase):
    async def test_result_is_returned_when_not_cancelled(self) -> None:
        token = CancellationToken()

        async def work() -> int:
            await asyncio.sleep(0)
            return 42

        self.assertEqual(await cancellable(work(), token, default=-1), 42)

    async def test_cancel_returns_default_and_leaves_work_running(self) -> None:
        token = CancellationToken()
        gate = asyncio.Event()
        finished: list[bool] = []

        async def work() -> int:
            await gate.wait()
            finished.append(True)
            return 1

        pending = asyncio.ensure_future(cancellable(work(), token, default=-1))
        await asyncio.sleep(0.01)
        token.cancel()

        self.assertEqual(await pending, -1)
        gate.set()
        await asyncio.sleep(0.01)
        self.assertEqual(finished, [True])

    async def test_pre_cancelled_token_returns_default(self) -> None:
        token = CancellationToken()
        token.cancel()

        async def work() -> int:
            return 1

        self.assertEqual(await cancellable(work(), token, default=0), 0)
        self.assertTrue(is_cancelled(token))

    async def test_timeout_applies_without_token(self) -> None:
        async def work() -> str:
            await asyncio.sleep(1)
            return "late"

        self.assertEqual(await cancellable(work(), None, default="timeout", timeout_seconds=0.01), "timeout")

    def test_is_cancelled_handles_missing_token(self) -> None:
        self.assertFalse(is_cancelled(None))
        self.assertFalse(is_cancelled(CancellationToken()))


if __name__ == "__main__":
    unittest.main()
