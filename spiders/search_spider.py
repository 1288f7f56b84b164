"""
Tumblr 搜索爬虫
并发抓取搜索结果分页，提取媒体链接并交给下载流水线
"""
import asyncio
import itertools
import aiohttp
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote
from loguru import logger
from fake_useragent import UserAgent

from config import Config
from core.context import CrawlContext
from core.control import CrawlControl
from core.deduplicator import StatisticsCollection, reconcile_duplicates
from core.downloader import BinaryDownloader
from core.exceptions import AuthenticationRequiredError, RateLimitedError
from core.existence import ExistenceChecker
from core.models import DISCOVERED_COUNTERS, SearchTarget
from core.progress import ProgressReporter
from core.rate_limiter import RateLimiter
from core.storage import Storage, storage as default_storage
from parsers.search_parser import SearchPageParser
from spiders.media_pipeline import MediaPipeline


def range_to_sequence(pages: str) -> List[int]:
    """
    展开页码表达式

    Examples:
        >>> range_to_sequence("2,5-7")
        [2, 5, 6, 7]

    Raises:
        ValueError: 页码格式错误
    """
    result = []
    for part in pages.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" not in part:
            result.append(int(part))
            continue
        start, end = (int(bound) for bound in part.split("-", 1))
        result.extend(range(start, end + 1))
    return result


def stripe_pages(worker: int, workers: int) -> Iterable[int]:
    """第 worker 个 worker（从 1 开始）依次访问 worker, worker+N, worker+2N, ..."""
    return itertools.count(worker, workers)


class TumblrSearchCrawler:
    """
    Tumblr 搜索爬虫

    同时运行两个阶段：
    - 页面抓取：parallel_scans 个 worker 按条带方式分页抓取，提取条目放入下载队列
    - 媒体下载：parallel_downloads 个消费者从队列取条目下载

    Example:
        target = SearchTarget(name="cats", location=config.media.download_dir)
        async with TumblrSearchCrawler(config, target) as crawler:
            summary = await crawler.crawl()
    """

    def __init__(self, config: Config, target: SearchTarget, storage: Optional[Storage] = None):
        """
        初始化搜索爬虫

        Args:
            config: 配置对象
            target: 搜索目标
            storage: 存储（默认使用全局实例）
        """
        self.config = config
        self.target = target
        self.storage = storage or default_storage
        self.parser = SearchPageParser(config.media, target)
        self.downloader = BinaryDownloader(config.crawler)
        self.rate_limiter = RateLimiter(config.crawler.connections_per_second)
        self.session: Optional[aiohttp.ClientSession] = None
        self.ua = UserAgent()
        self.context: Optional[CrawlContext] = None
        self._discovered_stats_applied = False

        # 统计信息
        self.stats = {
            'requests_failed': 0,
        }

        logger.info(f"🚀 初始化搜索爬虫: {target.name}")

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()

    async def init(self):
        """初始化爬虫（HTTP会话、下载器、存储）"""
        logger.info("⚙️  初始化爬虫组件...")
        self.storage.connect()
        timeout = aiohttp.ClientTimeout(total=self.config.crawler.request_timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        await self.downloader.init_session()
        logger.debug("✓ HTTP会话已创建")

    async def close(self):
        """关闭爬虫（HTTP会话、下载器、存储）"""
        logger.info("🔒 关闭爬虫...")
        await self.downloader.close()
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug("✓ HTTP会话已关闭")
        self.storage.close()
        logger.info(f"📊 爬虫统计: {self.get_statistics()}")

    def get_headers(self) -> Dict[str, str]:
        """获取请求头"""
        base_url = self.config.search.base_url
        headers = {
            "User-Agent": self.ua.random if self.config.crawler.rotate_user_agent else self.ua.chrome,
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "Referer": f"{base_url}/search/{quote(self.target.name)}",
            "X-Requested-With": "XMLHttpRequest",
        }
        if self.config.search.cookie:
            headers["Cookie"] = self.config.search.cookie
        return headers

    # ==================== 分页策略 ====================

    def get_page_numbers(self) -> Optional[List[int]]:
        """指定页码列表，未指定返回 None（条带遍历）"""
        if not self.target.download_pages:
            return None
        return range_to_sequence(self.target.download_pages)

    def get_last_post_id(self) -> int:
        """
        获取增量扫描的水位

        强制重扫或指定页码时清零（全量扫描），否则保留上次的值。
        """
        if self.target.force_rescan or self.target.download_pages:
            self.target.force_rescan = False
            self.target.last_id = 0
            return 0
        return self.target.last_id

    def page_plan(self, worker: int, workers: int, explicit_pages: Optional[List[int]]) -> Iterable[int]:
        """某个 worker 要访问的页码"""
        if explicit_pages is not None:
            return explicit_pages[worker - 1::workers]
        return stripe_pages(worker, workers)

    # ==================== 页面抓取 ====================

    async def request_data(self, page: int) -> str:
        """
        请求一页搜索结果

        Raises:
            AuthenticationRequiredError: HTTP 503 或返回登录页
            RateLimitedError: HTTP 429
            aiohttp.ClientError: 其他HTTP/网络错误
        """
        url = f"{self.config.search.base_url}/search/{quote(self.target.name)}/post_page/{page}"
        form = {
            "q": self.target.name,
            "sort": self.config.search.sort,
            "post_view": "masonry",
            "blogs_before": "1",
            "num_blogs_shown": "1",
            "num_posts_shown": "1",
            "before": "1",
            "blog_page": str(page),
            "safe_mode": str(self.config.search.safe_mode).lower(),
            "post_page": "3",
            "filter_nsfw": "true",
            "filter_post_type": "",
            "next_ad_offset": "0",
            "ad_placement_id": "0",
            "more_posts": "true",
        }
        logger.debug(f"📄 获取搜索页: {url}")

        async with self.session.post(
            url,
            data=form,
            headers=self.get_headers(),
            proxy=self.config.crawler.proxy
        ) as response:
            if response.status == 503:
                raise AuthenticationRequiredError(f"HTTP 503: {url}")
            if response.status == 429:
                raise RateLimitedError(f"HTTP 429: {url}")
            response.raise_for_status()
            document = await response.text()

        if not self.parser.is_logged_in(document):
            raise AuthenticationRequiredError(f"login page returned: {url}")

        return document

    async def get_search_page(self, page: int) -> str:
        """启用限速时先取令牌再请求"""
        if self.config.crawler.limit_connections:
            await self.rate_limiter.acquire()
        return await self.request_data(page)

    async def crawl_pages(
        self,
        worker: int,
        pages: Iterable[int],
        context: CrawlContext,
        tags: List[str],
        progress: ProgressReporter,
        control: CrawlControl
    ):
        """
        单个 worker 的抓取循环

        每页开始前检查取消和暂停；任何错误只停止本 worker。
        连续 max_empty_pages 个空页后停止（0 表示不停止）。
        """
        max_empty_pages = self.config.crawler.max_empty_pages
        empty_pages = 0
        page = None

        try:
            for page in pages:
                if control.is_cancelled:
                    return
                await control.wait_while_paused()
                if control.is_cancelled:
                    return

                document = await self.get_search_page(page)
                try:
                    items = self.parser.parse(document, tags)
                except (TypeError, ValueError) as e:
                    logger.warning(f"⚠️  第{page}页内容无法解析: {e}")
                    items = []

                for item in items:
                    await context.add_to_download_list(item)
                progress.page_crawled(context.increment("pages_crawled"))

                if items:
                    empty_pages = 0
                    continue
                empty_pages += 1
                if max_empty_pages and empty_pages >= max_empty_pages:
                    logger.info(f"✅ worker {worker}: 连续 {empty_pages} 页没有内容，停止（最后一页: {page}）")
                    return

        except AuthenticationRequiredError as e:
            logger.error(f"❌ worker {worker}: 未登录 ({e})")
            progress.show_error(e, "未登录，无法获取搜索结果")
        except RateLimitedError as e:
            # 不自动重试
            logger.warning(f"⚠️  worker {worker}: 请求被限流 ({e})")
            progress.show_error(e, "请求过于频繁，已被限流")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.stats['requests_failed'] += 1
            logger.error(f"❌ worker {worker}: 获取第{page}页失败: {e!r}")
            progress.show_error(e, f"获取第{page}页失败")

    async def get_urls(self, context: CrawlContext, progress: ProgressReporter, control: CrawlControl):
        """
        启动页面抓取 worker，全部停止后关闭下载队列

        未取消时把发现统计写回目标。
        """
        workers = self.config.crawler.parallel_scans
        explicit_pages = self.get_page_numbers()
        tags = self.target.tag_list()
        gate = asyncio.Semaphore(workers)
        tracked_tasks = []

        async def run_worker(worker: int):
            try:
                await self.crawl_pages(
                    worker, self.page_plan(worker, workers, explicit_pages),
                    context, tags, progress, control
                )
            finally:
                gate.release()

        try:
            for worker in range(1, workers + 1):
                await gate.acquire()
                tracked_tasks.append(asyncio.create_task(run_worker(worker)))

            results = await asyncio.gather(*tracked_tasks, return_exceptions=True)
            for worker, result in enumerate(results, 1):
                if isinstance(result, Exception):
                    logger.error(f"❌ worker {worker} 异常退出: {result!r}")
                    progress.show_error(result, f"抓取 worker {worker} 异常退出")
        finally:
            for task in tracked_tasks:
                if not task.done():
                    task.cancel()
            context.queue.close()

        if not control.is_cancelled:
            self.update_target_stats(context.statistics)

    def update_target_stats(self, statistics: StatisticsCollection):
        """把本次发现的条目数写回目标"""
        self.target.total_count = len(statistics)
        for post_type, field in DISCOVERED_COUNTERS.items():
            setattr(self.target, field, statistics.count(post_type))
        self._discovered_stats_applied = True

    def reconcile_duplicates(self, statistics: StatisticsCollection):
        """提取结束后计算重复数，总数减去图片/视频/音频的重复"""
        result = reconcile_duplicates(statistics, self.target.total_count)
        self.target.duplicate_photos = result["photo"]
        self.target.duplicate_videos = result["video"]
        self.target.duplicate_audios = result["audio"]
        if self._discovered_stats_applied:
            self.target.total_count = result["total"]

    # ==================== 总调度 ====================

    async def crawl(
        self,
        progress: Optional[ProgressReporter] = None,
        control: Optional[CrawlControl] = None
    ) -> Dict:
        """
        爬取搜索目标

        Args:
            progress: 进度上报（默认写日志）
            control: 暂停/取消控制

        Returns:
            本次爬取的统计
        """
        progress = progress or ProgressReporter(self.target.name)
        control = control or CrawlControl()
        self.context = context = CrawlContext.for_target(self.target, self.config.crawler.queue_size)
        self._discovered_stats_applied = False

        last_id = self.get_last_post_id()
        logger.info(f"🚀 开始爬取搜索: {self.target.name}")
        logger.info(f"   页面 worker: {self.config.crawler.parallel_scans}, "
                    f"下载消费者: {self.config.crawler.parallel_downloads}, "
                    f"指定页码: {self.target.download_pages or '无'}, 水位: {last_id}")

        checker = ExistenceChecker(self.target, self.storage)
        pipeline = MediaPipeline(
            self.target, context, checker, self.downloader, self.parser,
            self.config.media, progress, control
        )

        grabber = asyncio.create_task(self.get_urls(context, progress, control))
        downloader = asyncio.create_task(pipeline.run(self.config.crawler.parallel_downloads))

        try:
            await grabber
            progress.update("正在计算去重统计")
            items_found = len(context.statistics)
            self.reconcile_duplicates(context.statistics)
            context.statistics.clear()
            download_stats = await downloader
        except BaseException:
            grabber.cancel()
            downloader.cancel()
            raise

        if not control.is_cancelled:
            self.target.last_complete_crawl = datetime.now()
        else:
            logger.warning(f"⚠️  爬取已取消: {self.target.name}")

        self.storage.save_target(self.target)
        progress.update("")

        summary = {
            **self.get_statistics(),
            "items_found": items_found,
            "queued": download_stats["total_tasks"],
            "cancelled": control.is_cancelled,
            "total_count": self.target.total_count,
            "duplicate_photos": self.target.duplicate_photos,
            "duplicate_videos": self.target.duplicate_videos,
            "duplicate_audios": self.target.duplicate_audios,
        }
        logger.success(f"🎉 爬取结束: {self.target.name}，下载 {summary['total_downloads']} 个文件")
        return summary

    def get_statistics(self) -> Dict:
        """获取统计信息（请求失败数 + 本次运行计数器）"""
        stats = dict(self.stats)
        if self.context:
            stats.update(self.context.get_counters())
        return stats
