"""
异步令牌桶限速器
"""
import asyncio
import time


class RateLimiter:
    """按 QPS 限速的异步令牌桶

    acquire() 在下一次请求被允许之前挂起当前协程，
    多个 worker 共享同一个实例即可实现全局限速。"""

    def __init__(self, qps: float):
        self._interval = 1.0 / qps if qps > 0 else 0.0
        self._lock = asyncio.Lock()
        self._next_allowed = 0.0

    async def acquire(self):
        """挂起直到允许下一次请求"""
        if self._interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            if now < self._next_allowed:
                await asyncio.sleep(self._next_allowed - now)
            self._next_allowed = max(self._next_allowed, time.monotonic()) + self._interval
