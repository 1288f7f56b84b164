"""
媒体下载流水线

从下载队列取条目，解析最终下载地址，检查是否已存在，下载并更新计数器。
"""
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from loguru import logger

from config import MediaConfig
from core.context import CrawlContext
from core.control import CrawlControl
from core.downloader import BinaryDownloader, set_file_date
from core.existence import ExistenceChecker, filename_from_url
from core.models import CrawlItem, PostType, SearchTarget
from core.progress import ProgressReporter
from parsers.search_parser import SearchPageParser


class DownloadOutcome(str, Enum):
    """单个文件的下载结果"""
    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def succeeded(self) -> bool:
        return self is not DownloadOutcome.FAILED


# 类型 -> (本次运行计数器, 目标的已下载计数字段)
BINARY_COUNTERS = {
    PostType.PHOTO: ("photos", "downloaded_photos"),
    PostType.VIDEO: ("videos", "downloaded_videos"),
    PostType.AUDIO: ("audios", "downloaded_audios"),
}


class MediaPipeline:
    """
    媒体下载流水线

    - 图片：可选尺寸改写；raw 模式下依次尝试 tumblr_hosts，
      全部失败后用原始URL再试一次
    - 视频/音频：直接下载
    - 已存在（目录或链接索引命中）视为成功，不发起下载
    """

    def __init__(
        self,
        target: SearchTarget,
        context: CrawlContext,
        checker: ExistenceChecker,
        downloader: BinaryDownloader,
        parser: SearchPageParser,
        media_config: MediaConfig,
        progress: ProgressReporter,
        control: Optional[CrawlControl] = None
    ):
        self.target = target
        self.context = context
        self.checker = checker
        self.downloader = downloader
        self.parser = parser
        self.media_config = media_config
        self.progress = progress
        self.control = control or CrawlControl()

    async def run(self, workers: int) -> Dict:
        """消费下载队列直到队列关闭且取空"""
        return await self.context.queue.run_consumers(
            self.download_item,
            workers=workers,
            should_stop=lambda: self.control.is_cancelled
        )

    async def download_item(self, item: CrawlItem) -> bool:
        """按类型分发，返回是否成功"""
        await self.control.wait_while_paused()
        if self.control.is_cancelled:
            return False

        if item.post_type == PostType.PHOTO:
            return await self.download_photo(item)
        if item.post_type in (PostType.VIDEO, PostType.AUDIO):
            outcome = await self.download_detected_url(item.url, item)
            return outcome.succeeded

        logger.debug(f"忽略不支持下载的类型: {item.post_type.value} {item.url}")
        return False

    async def download_photo(self, item: CrawlItem) -> bool:
        """下载图片（raw 模式下轮换主机）"""
        url = item.url
        if self.target.force_size:
            url = self.parser.resize_image_url(url)

        if self.media_config.image_size == "raw":
            candidates = [self.parser.build_raw_image_url(url, host) for host in self.media_config.tumblr_hosts]
        elif url != item.url:
            candidates = [url]
        else:
            candidates = []

        for candidate in candidates:
            outcome = await self.download_detected_url(candidate, item)
            if outcome.succeeded:
                return True
            if self.control.is_cancelled:
                return False

        # 所有候选地址都失败，用原始地址再试一次
        outcome = await self.download_detected_url(item.url, item)
        return outcome.succeeded

    async def download_detected_url(self, url: str, item: CrawlItem) -> DownloadOutcome:
        """
        检查并下载单个地址

        Returns:
            SKIPPED: 已存在或正在被其他消费者下载，未下载
            DOWNLOADED: 下载成功，计数器和链接索引已更新
            FAILED: 下载失败
        """
        if await self.checker.is_present_or_claim(url):
            self.context.increment("skipped")
            return DownloadOutcome.SKIPPED

        filename = filename_from_url(url)
        file_location = self.target.download_location() / filename
        self.progress.update("正在下载 {}", filename)

        ok = await self.downloader.download_file(
            url, file_location, should_stop=lambda: self.control.is_cancelled
        )
        if not ok:
            await self.checker.release(filename)
            self.context.increment("failed")
            return DownloadOutcome.FAILED

        await self.checker.register(filename)
        set_file_date(file_location, item.post_date)
        self._update_counters(item.post_type)
        self._update_preview(item.post_type, file_location)
        self.progress.file_downloaded(filename, self.context.counter("total_downloads"))
        return DownloadOutcome.DOWNLOADED

    def _update_counters(self, post_type: PostType):
        run_counter, target_field = BINARY_COUNTERS[post_type]
        setattr(self.target, target_field, self.context.increment(run_counter))

        total_downloads = self.context.increment("total_downloads")
        self.target.downloaded_images = total_downloads
        if self.target.total_count:
            self.target.progress = min(100, total_downloads * 100 // self.target.total_count)

    def _update_preview(self, post_type: PostType, file_location: Path):
        if not self.media_config.enable_preview:
            return
        full_path = str(file_location.resolve())
        if post_type == PostType.PHOTO and not file_location.name.endswith(".gif"):
            self.target.last_downloaded_photo = full_path
        elif post_type in (PostType.PHOTO, PostType.VIDEO):
            self.target.last_downloaded_video = full_path
