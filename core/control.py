"""
协作式暂停 / 取消控制
"""
import asyncio
from loguru import logger


class CrawlControl:
    """
    爬取控制信号

    worker 在页面边界和每个下载条目开始前检查：
    - is_cancelled: 已请求取消，立即返回
    - wait_while_paused(): 暂停时挂起（不占用CPU），恢复或取消后返回

    取消会同时唤醒所有暂停中的 worker。
    """

    def __init__(self):
        self._cancelled = asyncio.Event()
        self._running = asyncio.Event()
        self._running.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def is_paused(self) -> bool:
        return not self._running.is_set()

    def cancel(self):
        """请求取消"""
        if not self._cancelled.is_set():
            logger.info("🛑 已请求取消爬取")
        self._cancelled.set()
        self._running.set()

    def pause(self):
        """暂停"""
        if self.is_cancelled:
            return
        logger.info("⏸️  暂停爬取")
        self._running.clear()

    def resume(self):
        """恢复"""
        if self.is_paused:
            logger.info("▶️  恢复爬取")
        self._running.set()

    async def wait_while_paused(self):
        """暂停期间挂起，直到恢复或取消"""
        await self._running.wait()
