"""
单次爬取的运行上下文

计数器、下载队列和统计集合都属于某一次爬取，显式传给各个 worker，
爬取结束后丢弃。
"""
from typing import Dict, Optional

from core.crawl_queue import DownloadQueue
from core.deduplicator import StatisticsCollection
from core.models import CrawlItem, SearchTarget

COUNTER_NAMES = (
    "pages_crawled",
    "photos",
    "videos",
    "audios",
    "total_downloads",
    "skipped",
    "failed",
)


class CrawlContext:
    """运行上下文"""

    def __init__(self, queue_size: int = 1000, initial: Optional[Dict[str, int]] = None):
        self.queue = DownloadQueue(queue_size=queue_size)
        self.statistics = StatisticsCollection()
        self._counters: Dict[str, int] = {name: 0 for name in COUNTER_NAMES}
        for name, value in (initial or {}).items():
            self._counters[name] = value

    @classmethod
    def for_target(cls, target: SearchTarget, queue_size: int = 1000) -> "CrawlContext":
        """已下载计数从目标的已有值开始累加"""
        return cls(queue_size=queue_size, initial={
            "photos": target.downloaded_photos,
            "videos": target.downloaded_videos,
            "audios": target.downloaded_audios,
            "total_downloads": target.downloaded_images,
        })

    def increment(self, name: str) -> int:
        """计数器加一并返回新值（单步完成，中间没有挂起点）"""
        self._counters[name] += 1
        return self._counters[name]

    def counter(self, name: str) -> int:
        return self._counters[name]

    def get_counters(self) -> Dict[str, int]:
        return dict(self._counters)

    async def add_to_download_list(self, item: CrawlItem):
        """
        条目同时进入下载队列和统计集合

        put 成功后立即追加统计，中间没有 await；put 被拒绝（队列已关闭）时
        统计集合也不追加。
        """
        await self.queue.put(item)
        self.statistics.add(item)
