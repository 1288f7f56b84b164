"""
下载队列模块

页面提取（生产者）与媒体下载（消费者）之间的有界通道：
- 生产者在关闭前可以持续添加
- close() 只生效一次，之后 put 会抛出 QueueClosedError
- 消费者把剩余条目取完后退出
"""
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional
from collections import deque
from loguru import logger

from core.exceptions import QueueClosedError


class DownloadQueue:
    """
    可关闭的下载队列

    使用 asyncio.Queue 实现生产者-消费者模式，支持：
    - 多个生产者并发添加（队列满时挂起）
    - 多个消费者并发下载
    - 一次性关闭信号，对所有消费者可见
    - 进度统计和错误记录

    Example:
        queue = DownloadQueue(queue_size=1000)
        await queue.put(item)
        queue.close()
        await queue.run_consumers(pipeline.download_item, workers=8)
    """

    def __init__(self, queue_size: int = 1000):
        """
        初始化下载队列

        Args:
            queue_size: 队列最大容量（满时生产者挂起）
        """
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = asyncio.Event()

        # 统计信息
        self.stats = {
            'total_tasks': 0,
            'completed_tasks': 0,
            'failed_tasks': 0,
            'discarded_tasks': 0,
            'active_workers': 0
        }

        # 错误记录
        self.errors = deque(maxlen=100)

        logger.debug(f"初始化下载队列: queue_size={queue_size}")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def put(self, item: Any):
        """
        添加条目（队列满时挂起）

        Raises:
            QueueClosedError: 队列已关闭
        """
        if self.closed:
            raise QueueClosedError("download queue is closed for writes")
        await self.queue.put(item)
        self.stats['total_tasks'] += 1

    def close(self):
        """关闭队列（幂等）"""
        if not self.closed:
            self._closed.set()
            logger.debug(f"下载队列已关闭，共 {self.stats['total_tasks']} 个条目")

    async def get(self) -> Optional[Any]:
        """
        取下一个条目

        Returns:
            条目；队列已关闭且为空时返回 None
        """
        while True:
            if not self.queue.empty():
                return self.queue.get_nowait()
            if self.closed:
                return None

            getter = asyncio.ensure_future(self.queue.get())
            closer = asyncio.ensure_future(self._closed.wait())
            try:
                done, _ = await asyncio.wait({getter, closer}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                closer.cancel()
                if not getter.done():
                    getter.cancel()
            if getter in done and not getter.cancelled():
                return getter.result()
            # 已关闭：回到循环顶部把剩余条目取完

    async def consumer(
        self,
        worker_func: Callable[[Any], Awaitable[Any]],
        worker_id: int,
        should_stop: Optional[Callable[[], bool]] = None
    ):
        """
        消费者：从队列取条目并执行

        Args:
            worker_func: 工作函数（异步）
            worker_id: 消费者ID（用于日志）
            should_stop: 每个条目开始前检查，返回 True 时丢弃该条目
        """
        logger.debug(f"🔧 下载消费者 {worker_id} 启动")
        self.stats['active_workers'] += 1

        try:
            while True:
                item = await self.get()
                if item is None:
                    break

                # 取消后继续取出条目但不执行，避免生产者阻塞在满队列上
                if should_stop and should_stop():
                    self.stats['discarded_tasks'] += 1
                    continue

                try:
                    await worker_func(item)
                    self.stats['completed_tasks'] += 1
                except Exception as e:
                    self.stats['failed_tasks'] += 1
                    self.errors.append({
                        'item': str(item)[:100],
                        'error': str(e),
                        'worker_id': worker_id
                    })
                    logger.error(f"   ❌ 下载消费者 {worker_id} 任务失败: {e}")
        finally:
            self.stats['active_workers'] -= 1
            logger.debug(f"🔒 下载消费者 {worker_id} 退出")

    async def run_consumers(
        self,
        worker_func: Callable[[Any], Awaitable[Any]],
        workers: int,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> Dict[str, Any]:
        """
        启动多个消费者并等待全部退出

        Args:
            worker_func: 工作函数（异步）
            workers: 消费者数量
            should_stop: 取消检查

        Returns:
            统计信息字典
        """
        logger.info(f"🚀 启动 {workers} 个下载消费者")

        consumer_tasks = [
            asyncio.create_task(self.consumer(worker_func, worker_id=i, should_stop=should_stop))
            for i in range(workers)
        ]
        await asyncio.gather(*consumer_tasks)

        logger.info(f"📊 下载队列统计: 总数={self.stats['total_tasks']}, "
                    f"完成={self.stats['completed_tasks']}, "
                    f"失败={self.stats['failed_tasks']}")

        if self.errors:
            logger.warning(f"⚠️  失败条目数: {len(self.errors)}")
            for i, error in enumerate(list(self.errors)[:5]):
                logger.debug(f"   错误 {i+1}: {error['error']}")

        return self.stats.copy()
