"""
核心模块

包含基础组件：
- models: 搜索目标与条目模型
- control: 暂停/取消控制
- rate_limiter: 全局限速
- crawl_queue: 可关闭的下载队列
- context: 单次爬取的运行上下文
- deduplicator: 统计集合与重复计数
- storage: 数据存储（目标状态、链接索引）
- existence: 文件存在性检查
- downloader: 二进制文件下载器
- progress: 进度与错误上报
"""
from .models import PostType, CrawlItem, SearchTarget
from .exceptions import CrawlerError, AuthenticationRequiredError, RateLimitedError, QueueClosedError
from .control import CrawlControl
from .rate_limiter import RateLimiter
from .crawl_queue import DownloadQueue
from .context import CrawlContext
from .deduplicator import StatisticsCollection, reconcile_duplicates
from .storage import Storage
from .existence import ExistenceChecker
from .downloader import BinaryDownloader
from .progress import ProgressReporter, TqdmProgressReporter

__all__ = [
    'PostType',
    'CrawlItem',
    'SearchTarget',
    'CrawlerError',
    'AuthenticationRequiredError',
    'RateLimitedError',
    'QueueClosedError',
    'CrawlControl',
    'RateLimiter',
    'DownloadQueue',
    'CrawlContext',
    'StatisticsCollection',
    'reconcile_duplicates',
    'Storage',
    'ExistenceChecker',
    'BinaryDownloader',
    'ProgressReporter',
    'TqdmProgressReporter',
]
