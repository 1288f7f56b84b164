"""
CrawlControl / RateLimiter 单元测试
"""
import unittest
import asyncio
import time

from core.control import CrawlControl
from core.rate_limiter import RateLimiter


class TestCrawlControl(unittest.TestCase):
    """暂停 / 取消"""

    def test_initial_state(self):
        async def run():
            control = CrawlControl()
            self.assertFalse(control.is_cancelled)
            self.assertFalse(control.is_paused)

        asyncio.run(run())

    def test_pause_blocks_until_resume(self):
        async def run():
            control = CrawlControl()
            control.pause()
            waiter = asyncio.create_task(control.wait_while_paused())
            await asyncio.sleep(0.01)
            self.assertFalse(waiter.done())
            control.resume()
            await asyncio.wait_for(waiter, timeout=1)
            self.assertFalse(control.is_paused)

        asyncio.run(run())

    def test_cancel_wakes_paused_worker(self):
        async def run():
            control = CrawlControl()
            control.pause()
            waiter = asyncio.create_task(control.wait_while_paused())
            await asyncio.sleep(0.01)
            control.cancel()
            await asyncio.wait_for(waiter, timeout=1)
            self.assertTrue(control.is_cancelled)

        asyncio.run(run())

    def test_pause_after_cancel_ignored(self):
        async def run():
            control = CrawlControl()
            control.cancel()
            control.pause()
            self.assertFalse(control.is_paused)

        asyncio.run(run())


class TestRateLimiter(unittest.TestCase):
    """令牌桶限速"""

    def test_spacing(self):
        async def run():
            limiter = RateLimiter(qps=20)
            start = time.monotonic()
            for _ in range(3):
                await limiter.acquire()
            return time.monotonic() - start

        elapsed = asyncio.run(run())
        # 第一次立即放行，之后每次间隔 0.05s
        self.assertGreaterEqual(elapsed, 0.09)

    def test_zero_qps_unlimited(self):
        async def run():
            limiter = RateLimiter(qps=0)
            start = time.monotonic()
            for _ in range(50):
                await limiter.acquire()
            return time.monotonic() - start

        self.assertLess(asyncio.run(run()), 0.5)


if __name__ == "__main__":
    unittest.main()
