"""
统计集合与重复计算模块

爬取过程中发现的每个条目（包括重复的）都追加到 StatisticsCollection，
提取结束后按 URL 分组计算各类型的重复数。
"""
from collections import Counter
from typing import Dict, Iterator, List

from loguru import logger

from core.models import CrawlItem, PostType

# 参与重复统计的类型
DUPLICATE_TYPES = (PostType.PHOTO, PostType.VIDEO, PostType.AUDIO)


class StatisticsCollection:
    """只追加的条目集合（本次爬取内有效）"""

    def __init__(self):
        self._items: List[CrawlItem] = []

    def add(self, item: CrawlItem):
        self._items.append(item)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[CrawlItem]:
        return iter(list(self._items))

    def count(self, post_type: PostType) -> int:
        """某类型的条目数（含重复）"""
        return sum(1 for item in self._items if item.post_type == post_type)

    def determine_duplicates(self, post_type: PostType) -> int:
        """
        计算某类型的重复数

        按 URL 分组，对数量大于 1 的组累加 (组大小 - 1)。
        """
        groups = Counter(item.url for item in self._items if item.post_type == post_type)
        return sum(size - 1 for size in groups.values() if size > 1)

    def clear(self):
        self._items.clear()


def reconcile_duplicates(statistics: StatisticsCollection, raw_total: int) -> Dict[str, int]:
    """
    计算图片/视频/音频的重复数及去重后的总数

    Args:
        statistics: 统计集合
        raw_total: 去重前的总数

    Returns:
        {"photo": n, "video": n, "audio": n, "total": raw_total - 重复总数}
    """
    result = {post_type.value: statistics.determine_duplicates(post_type) for post_type in DUPLICATE_TYPES}
    result["total"] = raw_total - sum(result[post_type.value] for post_type in DUPLICATE_TYPES)
    logger.info(
        "🔄 去重统计: 图片重复={}, 视频重复={}, 音频重复={}, 去重后总数={}",
        result["photo"], result["video"], result["audio"], result["total"]
    )
    return result
