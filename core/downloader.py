"""
二进制文件下载器模块
"""
import aiohttp
import asyncio
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional
from loguru import logger
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential
from fake_useragent import UserAgent

from config import CrawlerConfig, config

CHUNK_SIZE = 128 * 1024

# 只有连接类错误会重试，HTTP 错误码直接失败
TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)


class DownloadCancelled(Exception):
    """下载过程中收到取消信号"""


class BinaryDownloader:
    """二进制文件下载器"""

    def __init__(self, crawler_config: Optional[CrawlerConfig] = None):
        self.crawler_config = crawler_config or config.crawler
        self.ua = UserAgent()
        self.session: Optional[aiohttp.ClientSession] = None
        self.download_stats = {
            "total": 0,
            "success": 0,
            "failed": 0,
            "cancelled": 0
        }

    async def __aenter__(self):
        """异步上下文管理器入口"""
        await self.init_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """异步上下文管理器出口"""
        await self.close()

    async def init_session(self):
        """初始化HTTP会话"""
        timeout = aiohttp.ClientTimeout(total=self.crawler_config.request_timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        logger.info("Binary downloader initialized")

    async def close(self):
        """关闭会话"""
        if self.session:
            await self.session.close()
            self.session = None
            logger.info(f"Download stats: {self.download_stats}")

    def get_headers(self) -> Dict[str, str]:
        """获取请求头"""
        return {
            "User-Agent": self.ua.random if self.crawler_config.rotate_user_agent else self.ua.chrome,
            "Accept": "image/webp,image/apng,image/*,video/*,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def download_file(
        self,
        url: str,
        save_path: Path,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> bool:
        """
        下载单个文件

        先写入同目录下的临时文件，完成后再改名，失败或取消时删除临时文件。

        Args:
            url: 文件URL
            save_path: 保存路径
            should_stop: 取消检查，在每个数据块之间调用

        Returns:
            是否下载成功
        """
        self.download_stats["total"] += 1

        try:
            logger.debug(f"Downloading file: {url}")
            file_size = 0
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.crawler_config.max_retries),
                wait=wait_exponential(multiplier=1, min=2, max=10),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                reraise=True
            ):
                with attempt:
                    file_size = await self._fetch_to_file(url, save_path, should_stop)

            self.download_stats["success"] += 1
            logger.success(f"Downloaded: {save_path.name} ({file_size} bytes)")
            return True

        except DownloadCancelled:
            self.download_stats["cancelled"] += 1
            logger.info(f"Download cancelled: {url}")
            return False
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            self.download_stats["failed"] += 1
            logger.error(f"Failed to download {url}: {e}")
            return False

    async def _fetch_to_file(
        self,
        url: str,
        save_path: Path,
        should_stop: Optional[Callable[[], bool]] = None
    ) -> int:
        """请求并写入文件，返回写入的字节数"""
        save_path.parent.mkdir(parents=True, exist_ok=True)
        # 临时文件名不包含目标文件名，避免被目录检查误判为已下载
        part_path = save_path.parent / f".{uuid.uuid4().hex}.part"
        try:
            async with self.session.get(
                url,
                headers=self.get_headers(),
                proxy=self.crawler_config.proxy
            ) as response:
                response.raise_for_status()
                written = 0
                with open(part_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        if should_stop and should_stop():
                            raise DownloadCancelled(url)
                        f.write(chunk)
                        written += len(chunk)
            part_path.replace(save_path)
            return written
        finally:
            if part_path.exists():
                part_path.unlink()

    def get_stats(self) -> Dict[str, int]:
        """获取下载统计"""
        return self.download_stats.copy()


def set_file_date(path: Path, post_date: Optional[datetime] = None):
    """把文件修改时间设置为帖子时间"""
    timestamp = (post_date or datetime.now()).timestamp()
    os.utime(path, (timestamp, timestamp))
